from pydantic import BaseModel, ConfigDict


class DataQualityWarningOut(BaseModel):
    code: str
    message: str
    entity: str | None = None
    entity_id: int | None = None

    model_config = ConfigDict(frozen=True)


class ValidationIssueOut(BaseModel):
    field: str | None = None
    message: str
    type: str | None = None


class ErrorDetailOut(BaseModel):
    code: str
    message: str
    request_id: str
    path: str
    details: list[ValidationIssueOut] | None = None


class ErrorOut(BaseModel):
    error: ErrorDetailOut

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "error": {
                    "code": "invalid_query",
                    "message": "end_date cannot be before start_date",
                    "request_id": "8d8f2b00-6c79-4a45-8ff4-b0a5f2bc4bc2",
                    "path": "/reports/sales",
                    "details": None,
                }
            }
        }
    )
