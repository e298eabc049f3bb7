import json
import logging
import time
import traceback
from contextvars import ContextVar
from uuid import uuid4

from fastapi import HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from insights.core.errors import ReportError

request_id_ctx: ContextVar[str] = ContextVar("request_id", default="-")
logger = logging.getLogger("insights.api")
engine_logger = logging.getLogger("insights.engine")

RETRY_AFTER_SECONDS = 5

_HTTP_ERROR_CODES = {
    400: "bad_request",
    404: "not_found",
    405: "method_not_allowed",
    422: "validation_error",
}


def setup_observability() -> None:
    """One JSON object per line on stderr for both the API and engine loggers."""
    for target in (logger, engine_logger):
        if target.handlers:
            continue
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter("%(message)s"))
        target.addHandler(handler)
        target.setLevel(logging.INFO)
        target.propagate = False


def get_request_id() -> str:
    return request_id_ctx.get()


def _emit(target: logging.Logger, level: int, event: str, fields: dict) -> None:
    target.log(level, json.dumps({"event": event, **fields}, default=str))


def log_event(event: str, *, level: int = logging.INFO, **fields) -> None:
    """Structured engine log line tagged with the current request id."""
    _emit(engine_logger, level, event, {"request_id": get_request_id(), **fields})


def _request_id_for(request: Request) -> str:
    return (
        getattr(request.state, "request_id", None)
        or request.headers.get("x-request-id")
        or get_request_id()
    )


def error_envelope(
    request: Request,
    *,
    status_code: int,
    code: str,
    message: str,
    details: list[dict] | None = None,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    body = {
        "code": code,
        "message": message,
        "request_id": _request_id_for(request),
        "path": request.url.path,
        "details": details,
    }
    return JSONResponse(status_code=status_code, headers=headers, content={"error": body})


async def request_logging_middleware(request: Request, call_next):
    request_id = request.headers.get("x-request-id") or str(uuid4())
    request.state.request_id = request_id
    token = request_id_ctx.set(request_id)
    started = time.perf_counter()
    status_code = 500
    try:
        response = await call_next(request)
        status_code = response.status_code
    finally:
        _emit(
            logger,
            logging.INFO,
            "request",
            {
                "request_id": request_id,
                "method": request.method,
                "path": request.url.path,
                "query": str(request.url.query) or None,
                "status_code": status_code,
                "duration_ms": round((time.perf_counter() - started) * 1000, 2),
            },
        )
        request_id_ctx.reset(token)

    response.headers["X-Request-ID"] = request_id
    return response


async def report_error_handler(request: Request, exc: ReportError):
    headers = None
    if exc.status_code == 503:
        headers = {"Retry-After": str(RETRY_AFTER_SECONDS)}
        _emit(
            logger,
            logging.WARNING,
            "report_unavailable",
            {"request_id": _request_id_for(request), "path": request.url.path, "error": exc.message},
        )
    return error_envelope(
        request,
        status_code=exc.status_code,
        code=exc.code,
        message=exc.message,
        details=exc.details,
        headers=headers,
    )


async def http_exception_handler(request: Request, exc: HTTPException):
    plain = isinstance(exc.detail, str)
    return error_envelope(
        request,
        status_code=exc.status_code,
        code=_HTTP_ERROR_CODES.get(exc.status_code, "http_error"),
        message=exc.detail if plain else "HTTP error",
        details=None if plain else exc.detail,
        headers=exc.headers,
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    details = []
    for err in exc.errors():
        # drop the "query"/"path" prefix so the field reads like the parameter name
        location = [str(part) for part in err.get("loc", ()) if part not in ("query", "path", "body")]
        details.append(
            {
                "field": ".".join(location) or None,
                "message": err.get("msg", "Invalid value"),
                "type": err.get("type"),
            }
        )
    return error_envelope(
        request,
        status_code=422,
        code="validation_error",
        message="Validation failed",
        details=details,
    )


async def unhandled_exception_handler(request: Request, exc: Exception):
    _emit(
        logger,
        logging.ERROR,
        "unhandled_exception",
        {
            "request_id": _request_id_for(request),
            "path": request.url.path,
            "error": str(exc),
            "traceback": traceback.format_exc(limit=10),
        },
    )
    return error_envelope(
        request,
        status_code=500,
        code="internal_error",
        message="Internal server error",
    )
