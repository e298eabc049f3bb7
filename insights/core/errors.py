class ReportError(Exception):
    code = "report_error"
    status_code = 500

    def __init__(self, message: str, *, details: list[dict] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details


class DataUnavailable(ReportError):
    """The snapshot source could not be read. Callers decide whether to retry."""

    code = "data_unavailable"
    status_code = 503

    def __init__(self, message: str, *, collection: str | None = None):
        details = [{"field": collection, "message": message}] if collection else None
        super().__init__(message, details=details)
        self.collection = collection


class InvalidQuery(ReportError):
    code = "invalid_query"
    status_code = 400

    def __init__(self, message: str, *, field: str | None = None):
        details = [{"field": field, "message": message}] if field else None
        super().__init__(message, details=details)
        self.field = field


class BatchNotFound(ReportError):
    code = "batch_not_found"
    status_code = 404

    def __init__(self, batch_code: str):
        super().__init__(f"Batch '{batch_code}' not found")
        self.batch_code = batch_code
