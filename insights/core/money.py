from decimal import Decimal, ROUND_HALF_UP

MONEY_QUANT = Decimal("0.01")
ZERO_MONEY = Decimal("0.00")


def to_money(value: Decimal | int | float | str | None) -> Decimal:
    if value is None:
        return ZERO_MONEY
    return Decimal(str(value)).quantize(MONEY_QUANT, rounding=ROUND_HALF_UP)


def safe_div(numerator: Decimal | int, denominator: Decimal | int) -> Decimal:
    """Division that resolves every zero denominator to 0."""
    if not denominator:
        return ZERO_MONEY
    return Decimal(numerator) / Decimal(denominator)


def pct(part: Decimal | int, whole: Decimal | int) -> float:
    return float(to_money(safe_div(part, whole) * 100))
