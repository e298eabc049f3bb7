from fastapi import Depends, FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from insights.core.config import settings
from insights.core.deps import get_report_service
from insights.core.errors import ReportError
from insights.core.observability import (
    http_exception_handler,
    report_error_handler,
    request_logging_middleware,
    setup_observability,
    unhandled_exception_handler,
    validation_exception_handler,
)
from insights.routers import reports
from insights.schemas.reports import ReportQuery
from insights.services.report_service import ReportService

app = FastAPI(
    title=settings.app_name,
    version="0.1.0",
    description=(
        "Read-only report engine for the inventory and sales console.\n\n"
        "Every report is computed from one consistent snapshot of the backend "
        "collections (catalog, stock, batches, movements, sales)."
    ),
    swagger_ui_parameters={
        "displayRequestDuration": True,
        "defaultModelsExpandDepth": 1,
    },
    openapi_tags=[
        {"name": "health", "description": "Service status and quick links."},
        {"name": "reports", "description": "Sales, inventory, profitability, best-seller, traceability and dashboard reports."},
    ],
)

setup_observability()
app.middleware("http")(request_logging_middleware)
app.add_exception_handler(ReportError, report_error_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)

cors_origins = settings.cors_origins or ["http://localhost:3000"]
allow_all_origins = "*" in cors_origins
env_value = settings.env.lower().strip()
allow_origin_regex = settings.cors_origin_regex

if (
    not allow_origin_regex
    and env_value in {"dev", "development", "staging", "stage"}
):
    # Local console dev servers pick arbitrary localhost ports.
    allow_origin_regex = r"^https?://(localhost|127\.0\.0\.1)(:\d+)?$"

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if allow_all_origins else cors_origins,
    allow_origin_regex=allow_origin_regex,
    allow_credentials=not allow_all_origins,
    allow_methods=["GET"],
    allow_headers=["*"],
)

app.include_router(reports.router)


@app.get("/", tags=["health"])
def root():
    return {
        "app": settings.app_name,
        "docs": "/docs",
        "redoc": "/redoc",
        "health": "/health",
        "ready": "/ready",
        "reports": "/reports",
    }


@app.get("/health", tags=["health"])
def health():
    return {"ok": True}


@app.get("/ready", tags=["health"])
def ready(service: ReportService = Depends(get_report_service)):
    try:
        snapshot = service.provider.fetch(ReportQuery())
    except ReportError:
        return {"ok": False}
    return {"ok": True, "snapshot_version": snapshot.version[:12]}
