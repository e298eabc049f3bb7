from insights.schemas.common import ErrorOut

# status -> (error code, description, example details)
_DOCUMENTED_ERRORS: dict[int, tuple[str, str, list[dict] | None]] = {
    400: (
        "invalid_query",
        "The query is inconsistent (for example end_date before start_date)",
        [{"field": "end_date", "message": "end_date cannot be before start_date"}],
    ),
    404: ("batch_not_found", "No batch with that code exists in the snapshot", None),
    422: (
        "validation_error",
        "A parameter could not be parsed",
        [{"field": "start_date", "message": "Input should be a valid date", "type": "date_from_datetime_parsing"}],
    ),
    500: ("internal_error", "Internal server error", None),
    503: (
        "data_unavailable",
        "The backend snapshot could not be loaded; retry after the Retry-After delay",
        [{"field": "sales", "message": "Could not load sales from backend"}],
    ),
}


def error_responses(*status_codes: int, path: str = "/reports/sales") -> dict[int, dict]:
    """OpenAPI `responses` entries showing the error envelope for each status."""
    responses: dict[int, dict] = {}
    for status_code in status_codes:
        code, description, details = _DOCUMENTED_ERRORS.get(
            status_code, ("http_error", "HTTP error", None)
        )
        example = {
            "code": code,
            "message": description,
            "request_id": "8d8f2b00-6c79-4a45-8ff4-b0a5f2bc4bc2",
            "path": path,
            "details": details,
        }
        responses[status_code] = {
            "model": ErrorOut,
            "description": description,
            "content": {"application/json": {"example": {"error": example}}},
        }
    return responses
