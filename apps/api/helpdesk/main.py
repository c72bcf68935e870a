"""FastAPI application entry point."""
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import OperationalError

from helpdesk.core.config import settings
from helpdesk.core.errors import HelpdeskError, StorageUnavailableError
from helpdesk.core.structured_logging import build_log_context
from helpdesk.db.session import engine

logger = logging.getLogger(__name__)

# Seconds clients should wait before retrying a 503
RETRY_AFTER_SECONDS = 1

# ============================================================================
# Sentry Integration (optional, for production error tracking)
# ============================================================================

if settings.SENTRY_DSN and settings.ENV != "dev":
    import sentry_sdk
    from sentry_sdk.integrations.fastapi import FastApiIntegration
    from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration

    sentry_sdk.init(
        dsn=settings.SENTRY_DSN,
        environment=settings.ENV,
        integrations=[
            FastApiIntegration(transaction_style="endpoint"),
            SqlalchemyIntegration(),
        ],
        traces_sample_rate=0.1,
        send_default_pii=False,  # Ticket content never leaves the service
    )
    logging.info("Sentry initialized for error tracking")

# ============================================================================
# Rate Limiting
# ============================================================================

from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from helpdesk.core.rate_limit import limiter

# ============================================================================
# FastAPI App
# ============================================================================

app = FastAPI(
    title="Help Desk API",
    description="Multi-tenant help desk: tickets, responses, users and plans",
    version=settings.VERSION,
    docs_url="/docs" if settings.ENV == "dev" else None,
    redoc_url="/redoc" if settings.ENV == "dev" else None,
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=False,  # Bearer tokens, no cookies
    allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
    expose_headers=["Retry-After"],
)

# ============================================================================
# Error Mapping
# ============================================================================


def _error_response(exc: HelpdeskError) -> JSONResponse:
    headers = {"Retry-After": str(RETRY_AFTER_SECONDS)} if exc.retryable else None
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.kind.value, "detail": exc.message},
        headers=headers,
    )


@app.exception_handler(HelpdeskError)
async def helpdesk_error_handler(request: Request, exc: HelpdeskError) -> JSONResponse:
    return _error_response(exc)


@app.exception_handler(OperationalError)
async def storage_error_handler(request: Request, exc: OperationalError) -> JSONResponse:
    """Database unreachable or statement timeout."""
    logger.error(
        "Storage unavailable",
        extra=build_log_context(route=request.url.path, method=request.method),
        exc_info=exc,
    )
    return _error_response(StorageUnavailableError("Storage temporarily unavailable, retry the request"))


# ============================================================================
# Routers
# ============================================================================

from helpdesk.routers import auth, billing, platform, tickets, users

app.include_router(auth.router)
app.include_router(tickets.router)
app.include_router(users.router)
app.include_router(billing.router)
app.include_router(platform.router)


# ============================================================================
# Health Check
# ============================================================================

@app.get("/health")
def health():
    """
    Health check endpoint.

    Verifies database connectivity and returns environment info.
    """
    with engine.connect() as conn:
        conn.execute(text("SELECT 1"))
    return {"status": "ok", "env": settings.ENV, "version": settings.VERSION}
