from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from typing import Any, Optional
from uuid import uuid4

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.exceptions import HTTPException as StarletteHTTPException

from property_api.core.errors import DomainError, ErrorKind
from property_api.core.logging import caller_id_var, configure_logging, correlation_id_var
from property_api.core.settings import get_app_settings
from property_api.db.run_migrations import main as run_alembic
from property_api.db.seed import seed_all
from property_api.db.session import get_async_session
from property_api.schemas.common import ErrorInfo, ErrorResponse, FieldIssue, MessageResponse
from property_api.services.gateway import configure_stripe

# Routers
from property_api.api.routes.auth import router as auth_router
from property_api.api.routes.buildings import router as buildings_router
from property_api.api.routes.payments import router as payments_router
from property_api.api.routes.tenants import router as tenants_router
from property_api.api.routes.units import router as units_router

settings = get_app_settings()

configure_logging(settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

CORRELATION_HEADER = "X-Correlation-ID"

openapi_tags = [
    {"name": "Health", "description": "Liveness and readiness probes."},
    {"name": "Auth", "description": "Owner registration, login and token endpoints."},
    {"name": "Buildings", "description": "Owner-scoped buildings."},
    {"name": "Units", "description": "Units and their room codes."},
    {"name": "Tenants", "description": "Room-code validation and tenant self-registration."},
    {"name": "Payments", "description": "Payment ledger, gateway charges, refunds and reconciliation."},
]

app = FastAPI(
    title=settings.APP_NAME,
    description=settings.APP_DESCRIPTION,
    version=settings.APP_VERSION,
    openapi_tags=openapi_tags,
)

# Browsers reject credentialed requests against a wildcard origin.
allow_credentials = settings.CORS_ALLOW_CREDENTIALS and settings.CORS_ORIGINS != ["*"]
if settings.CORS_ALLOW_CREDENTIALS and not allow_credentials:
    logger.warning("CORS credentials disabled because CORS_ORIGINS is '*'")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=allow_credentials,
    allow_methods=settings.CORS_ALLOW_METHODS,
    allow_headers=settings.CORS_ALLOW_HEADERS,
)


@app.middleware("http")
async def request_context_middleware(request: Request, call_next):
    """
    Bind a correlation id (client supplied or generated) for logs and error bodies,
    log one access line per request, and echo the id back in X-Correlation-ID.
    """
    corr = request.headers.get(CORRELATION_HEADER) or request.headers.get("X-Request-ID") or str(uuid4())
    corr_token = correlation_id_var.set(corr)
    caller_token = caller_id_var.set(None)
    request.state.correlation_id = corr
    request.state.caller_id = None

    started = time.perf_counter()
    try:
        response = await call_next(request)
        logger.info(
            "%s %s -> %s (%.1f ms)",
            request.method,
            request.url.path,
            response.status_code,
            (time.perf_counter() - started) * 1000,
        )
    finally:
        correlation_id_var.reset(corr_token)
        caller_id_var.reset(caller_token)

    response.headers[CORRELATION_HEADER] = corr
    return response


def _error_response(
    request: Request,
    status_code: int,
    error_type: str,
    message: str,
    details: Optional[Any] = None,
) -> JSONResponse:
    """Render an ErrorResponse envelope carrying the request's correlation and caller ids."""
    body = ErrorResponse(
        status=status_code,
        error=ErrorInfo(type=error_type, message=message, details=details),
        correlation_id=getattr(request.state, "correlation_id", None),
        caller_id=getattr(request.state, "caller_id", None),
        path=request.url.path,
        method=request.method,
        timestamp=datetime.now(tz=timezone.utc),
    )
    headers = {CORRELATION_HEADER: body.correlation_id} if body.correlation_id else None
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"), headers=headers)


@app.exception_handler(DomainError)
async def domain_exception_handler(request: Request, exc: DomainError):
    """
    The error's kind picks the status code; its specific code (``invalid_refund``,
    ``unit_unavailable`` ...) becomes the envelope's error type.
    """
    if exc.kind == ErrorKind.GATEWAY_FAILURE:
        logger.warning("Gateway failure: %s (details=%s)", exc.message, exc.details)
    else:
        logger.info("Rejected with %s: %s", exc.code, exc.message)
    return _error_response(request, exc.kind.http_status, exc.code, exc.message, exc.details)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    """Authentication and role-gate failures raised as HTTPException."""
    if isinstance(exc.detail, str):
        message, details = exc.detail, None
    else:
        message, details = "HTTP Error", exc.detail
    response = _error_response(request, exc.status_code, "http_error", message, details)
    if exc.headers:
        response.headers.update(exc.headers)
    return response


def field_issues(exc: RequestValidationError) -> list:
    """Flatten pydantic errors into FieldIssue dicts, dropping the 'body'/'query' prefix."""
    issues = []
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ())]
        if loc and loc[0] in ("body", "query", "path", "header"):
            loc = loc[1:]
        issue = FieldIssue(field=".".join(loc) or "request", message=err.get("msg", ""), type=err.get("type"))
        issues.append(issue.model_dump())
    return issues


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Request bodies that fail schema validation: 422 with per-field issues."""
    return _error_response(
        request, 422, ErrorKind.VALIDATION.value, "Request validation failed", field_issues(exc)
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    """Anything unexpected is logged with its traceback and reported without one."""
    logger.exception("Unhandled error processing %s %s", request.method, request.url.path)
    return _error_response(request, 500, "internal_error", "An unexpected error occurred")


@app.on_event("startup")
async def on_startup() -> None:
    """
    Configure the payment SDK, bring the schema to head and optionally seed demo data.

    Failures are logged rather than raised so a database that is still starting
    does not stop the process; the readiness probe reports it instead.
    """
    configure_stripe(settings)

    if settings.RUN_MIGRATIONS_ON_STARTUP:
        try:
            logger.info("Running Alembic migrations: upgrade head")
            # env.py drives its own event loop, so keep it off the server's loop.
            await run_in_threadpool(run_alembic, ["upgrade", "head"])
            logger.info("Migrations completed")
        except Exception:
            logger.exception("Migration step failed")

    if settings.AUTO_SEED:
        try:
            await seed_all()
        except Exception:
            logger.exception("Seeding step failed")


api_v1 = APIRouter(prefix="/api/v1")


# PUBLIC_INTERFACE
@api_v1.get(
    "/health",
    response_model=MessageResponse,
    summary="Health Check",
    tags=["Health"],
)
def health_check() -> MessageResponse:
    """Liveness probe: the process is up and serving requests."""
    return MessageResponse(message="Healthy")


# PUBLIC_INTERFACE
@api_v1.get(
    "/health/ready",
    response_model=MessageResponse,
    summary="Readiness Check",
    tags=["Health"],
    responses={503: {"model": ErrorResponse}},
)
async def readiness_check(session: AsyncSession = Depends(get_async_session)) -> MessageResponse:
    """
    Readiness probe: the database answers a trivial query.

    Returns 503 while the database is unreachable.
    """
    try:
        await session.execute(text("SELECT 1"))
    except SQLAlchemyError:
        logger.warning("Readiness check failed: database unreachable")
        raise HTTPException(status_code=503, detail="Database unavailable")
    return MessageResponse(message="Ready")


api_v1.include_router(auth_router)
api_v1.include_router(buildings_router)
api_v1.include_router(units_router)
api_v1.include_router(tenants_router)
api_v1.include_router(payments_router)

app.include_router(api_v1)
