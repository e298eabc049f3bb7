from dataclasses import dataclass
from decimal import Decimal, ROUND_FLOOR
from typing import Iterable, Sequence

from insights.core.money import MONEY_QUANT, ZERO_MONEY
from insights.services.aggregation import ProductTotals

_FULL_SHARE = 10000  # 100% in hundredths of a percent


@dataclass(frozen=True)
class RankedProduct:
    rank: int
    totals: ProductTotals
    market_share: Decimal


def ranking_key(totals: ProductTotals) -> tuple:
    product = totals.product
    return (
        -totals.quantity_sold,
        -totals.revenue,
        product.name if product else "",
        product.id if product else 0,
    )


def apportion_shares(revenues: Sequence[Decimal]) -> list[Decimal]:
    """Percent shares at two decimals that add up to exactly 100.

    Every share is floored to the cent and the leftover cents go to the
    largest remainders, earlier rows first on ties.
    """
    total = sum(revenues, ZERO_MONEY)
    if total <= 0:
        return [ZERO_MONEY for _ in revenues]
    exact = [max(value, ZERO_MONEY) * _FULL_SHARE / total for value in revenues]
    cents = [int(value.to_integral_value(rounding=ROUND_FLOOR)) for value in exact]
    leftover = _FULL_SHARE - sum(cents)
    by_remainder = sorted(range(len(exact)), key=lambda i: (-(exact[i] - cents[i]), i))
    for i in by_remainder[: max(leftover, 0)]:
        cents[i] += 1
    return [(Decimal(value) * MONEY_QUANT).quantize(MONEY_QUANT) for value in cents]


def rank_products(
    totals: Iterable[ProductTotals],
    *,
    top_n: int,
    whole_catalog_share: bool = False,
) -> list[RankedProduct]:
    """Top-N by quantity sold; ties fall back to revenue, then name.

    Ranks are contiguous (1, 2, 3...) even across ties. Market share is
    measured against the returned rows unless ``whole_catalog_share`` is set.
    """
    ordered = sorted(totals, key=ranking_key)
    selected = ordered[:top_n]
    basis = ordered if whole_catalog_share else selected
    shares = apportion_shares([row.revenue for row in basis])
    return [
        RankedProduct(rank=position, totals=row, market_share=share)
        for position, (row, share) in enumerate(zip(selected, shares), start=1)
    ]
