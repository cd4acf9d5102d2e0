import logging
import sys

import sentry_sdk
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_fastapi_instrumentator import Instrumentator
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.logging import LoggingIntegration
from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration

from .config import settings
from .middleware import RequestLoggingMiddleware
from .middleware.logging import ACCESS_LOGGER_NAME
from .routers import documents, health
from .services.errors import DocumentError, ErrorKind

logging.basicConfig(level=logging.INFO, handlers=[logging.StreamHandler(sys.stdout)])
logging.getLogger(ACCESS_LOGGER_NAME).setLevel(logging.INFO)

logger = logging.getLogger(__name__)

if settings.sentry_dsn and str(settings.sentry_dsn).strip().lower().startswith(("http://", "https://")):
    sentry_sdk.init(
        dsn=str(settings.sentry_dsn).strip(),
        environment=settings.environment,
        integrations=[
            FastApiIntegration(transaction_style="endpoint"),
            SqlalchemyIntegration(),
            LoggingIntegration(level=logging.INFO, event_level=logging.ERROR),
        ],
        traces_sample_rate=settings.sentry_traces_sample_rate,
        profiles_sample_rate=settings.sentry_profiles_sample_rate,
    )

ERROR_STATUS = {
    ErrorKind.VALIDATION_INVALID_FILE_TYPE: 400,
    ErrorKind.VALIDATION_FILE_TOO_LARGE: 400,
    ErrorKind.RESOURCE_NOT_FOUND: 404,
    ErrorKind.STORAGE_NOT_CONFIGURED: 503,
    ErrorKind.STORAGE_OPERATION_FAILED: 502,
    ErrorKind.METADATA_OPERATION_FAILED: 500,
}

app = FastAPI(title="Compliance DocVault API", version="0.1.0")

app.add_middleware(RequestLoggingMiddleware)

if settings.metrics_enabled:
    instrumentator = Instrumentator(should_group_status_codes=True, should_ignore_untemplated=True)
    instrumentator.instrument(app).expose(app, include_in_schema=False)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allow_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(DocumentError)
async def document_error_handler(request: Request, exc: DocumentError) -> JSONResponse:
    status_code = ERROR_STATUS[exc.kind]
    if status_code >= 500:
        logger.error("document_operation_failed path=%s kind=%s error=%s", request.url.path, exc.kind.value, exc.message)
    return JSONResponse(
        status_code=status_code,
        content={"error": {"code": exc.kind.value, "message": exc.message}},
    )


app.include_router(health.router, tags=["health"])
app.include_router(documents.router, tags=["documents"])
