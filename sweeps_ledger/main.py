"""FastAPI application entry point.

Sweepstakes casino ledger API: wallet, bonuses, games, tickets, redemptions,
friends and tournaments.
"""

import time
import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware

from sweeps_ledger import __version__
from sweeps_ledger.api import (
    admin_router,
    bonuses_router,
    games_router,
    social_router,
    tickets_router,
    tournaments_router,
    wallet_router,
)
from sweeps_ledger.config import Settings, get_settings
from sweeps_ledger.container import build_services
from sweeps_ledger.logging_config import (
    bind_context,
    clear_context,
    configure_logging,
    get_logger,
)
from sweeps_ledger.services.notifications import NullNotifier, RedisNotifier
from sweeps_ledger.utils.db import LedgerStore
from sweeps_ledger.utils.errors import (
    ConflictError,
    LedgerError,
    NotFoundError,
    PermissionDeniedError,
    RateLimitedError,
    SchedulerFault,
    StorageFault,
)
from sweeps_ledger.utils.json_utils import ORJSONResponse
from sweeps_ledger.utils.redis_client import close_redis, get_redis, init_redis

logger = get_logger(__name__)

API_V1_PREFIX = "/api/v1"


# =============================================================================
# Middleware
# =============================================================================


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Tag each request with an id, bind it to the log context and echo it back.

    The acting player from ``X-Player-Id`` is bound as well, so every ledger
    event logged while handling the request carries both.
    """

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
        request.state.request_id = request_id
        started = time.perf_counter()

        context: dict[str, Any] = {"request_id": request_id}
        if player_id := request.headers.get("X-Player-Id"):
            context["player_id"] = player_id
        bind_context(**context)
        try:
            response = await call_next(request)
            logger.info(
                "request_completed",
                method=request.method,
                path=request.url.path,
                status_code=response.status_code,
                duration_ms=round((time.perf_counter() - started) * 1000, 1),
            )
        finally:
            clear_context()

        response.headers["X-Request-ID"] = request_id
        return response


# =============================================================================
# Error Handlers
# =============================================================================


def get_request_id(request: Request) -> str:
    return getattr(request.state, "request_id", None) or request.headers.get(
        "X-Request-ID", uuid.uuid4().hex
    )


def create_error_response(
    code: str,
    message: str,
    details: dict[str, Any] | None = None,
    trace_id: str | None = None,
) -> dict[str, Any]:
    """Error envelope shared by every failure response."""
    return {
        "error": {"code": code, "message": message, "details": details or {}},
        "traceId": trace_id,
    }


def status_for(exc: LedgerError) -> int:
    """HTTP status for a ledger error."""
    if isinstance(exc, RateLimitedError):
        return status.HTTP_429_TOO_MANY_REQUESTS
    if isinstance(exc, PermissionDeniedError):
        return status.HTTP_403_FORBIDDEN
    if isinstance(exc, NotFoundError):
        return status.HTTP_404_NOT_FOUND
    if isinstance(exc, ConflictError):
        return status.HTTP_409_CONFLICT
    if isinstance(exc, StorageFault):
        return status.HTTP_503_SERVICE_UNAVAILABLE
    if isinstance(exc, SchedulerFault):
        return status.HTTP_500_INTERNAL_SERVER_ERROR
    return status.HTTP_400_BAD_REQUEST


async def ledger_error_handler(request: Request, exc: LedgerError) -> ORJSONResponse:
    """Handle ledger errors."""
    trace_id = get_request_id(request)
    status_code = status_for(exc)

    if status_code >= 500:
        # Faults never leak storage details to the client
        logger.error("ledger_fault", code=exc.code, message=exc.message, trace_id=trace_id)
        details: dict[str, Any] = {"retryable": exc.retryable}
    else:
        logger.warning("ledger_error", code=exc.code, message=exc.message, trace_id=trace_id)
        details = exc.details

    headers = None
    if isinstance(exc, RateLimitedError):
        headers = {"Retry-After": str(exc.details.get("windowSeconds", 60))}

    return ORJSONResponse(
        status_code=status_code,
        content=create_error_response(exc.code, exc.message, details, trace_id),
        headers=headers,
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> ORJSONResponse:
    """Wrap HTTPException (auth, routing) in the same envelope."""
    trace_id = get_request_id(request)

    if isinstance(exc.detail, dict) and "error" in exc.detail:
        content = {**exc.detail, "traceId": trace_id}
    else:
        content = create_error_response("HTTP_ERROR", str(exc.detail), trace_id=trace_id)

    return ORJSONResponse(status_code=exc.status_code, content=content, headers=exc.headers)


def _general_exception_handler(debug: bool):
    async def general_exception_handler(request: Request, exc: Exception) -> ORJSONResponse:
        trace_id = get_request_id(request)
        logger.exception("unexpected_error", error_type=type(exc).__name__, trace_id=trace_id)

        # Tracebacks and messages stay in the log unless debugging
        message = f"{type(exc).__name__}: {exc}" if debug else "Internal server error"
        return ORJSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=create_error_response("INTERNAL_ERROR", message, trace_id=trace_id),
        )

    return general_exception_handler


# =============================================================================
# Lifespan Events
# =============================================================================


def _lifespan(settings: Settings):
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan handler for startup and shutdown events."""
        logger.info("application_starting", app_env=settings.app_env)

        redis = await init_redis(settings.redis_url)
        notifier = RedisNotifier(redis) if redis is not None else NullNotifier()
        if redis is None:
            logger.warning("redis_not_configured", detail="notifications disabled")

        store = LedgerStore(
            settings.database_url,
            notifier=notifier,
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            echo=settings.app_debug,
        )
        await store.create_all()

        services = build_services(
            store,
            settings.site,
            sweep_interval_seconds=settings.tournament_sweep_interval_seconds,
        )
        app.state.services = services

        if settings.tournament_scheduler_enabled:
            await services.scheduler.start()

        logger.info("application_started")

        yield

        logger.info("application_stopping")
        try:
            await services.scheduler.stop()
        finally:
            await store.dispose()
            await close_redis()
        logger.info("application_stopped")

    return lifespan


async def _check_ledger_store(services) -> str:
    if services is None:
        return "unhealthy: ledger store not initialized"
    try:
        await services.store.ping()
    except Exception as e:
        logger.error("database_health_check_failed", error=str(e))
        return f"unhealthy: {type(e).__name__}"
    return "healthy"


async def _check_redis() -> str:
    redis = get_redis()
    if redis is None:
        return "not configured"
    try:
        await redis.ping()
    except Exception as e:
        logger.error("redis_health_check_failed", error=str(e))
        return f"unhealthy: {type(e).__name__}"
    return "healthy"


# =============================================================================
# FastAPI Application
# =============================================================================


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build the API application.

    The lifespan owns the ledger store, Redis and the tournament scheduler.
    Tests may skip it and set ``app.state.services`` directly.
    """
    settings = settings or get_settings()

    configure_logging(
        log_level=settings.log_level,
        json_logs=settings.app_env == "production",
        app_env=settings.app_env,
    )

    app = FastAPI(
        title="Sweeps Ledger API",
        version=__version__,
        description="Sweepstakes casino wallet ledger, game settlement and tournaments",
        lifespan=_lifespan(settings),
        default_response_class=ORJSONResponse,
    )

    app.add_middleware(RequestIDMiddleware)

    cors_origins = [origin.strip() for origin in settings.cors_origins.split(",")]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "X-Request-ID", "X-Player-Id", "X-Player-Role"],
        expose_headers=["X-Request-ID"],
    )

    app.add_exception_handler(LedgerError, ledger_error_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(Exception, _general_exception_handler(settings.app_debug))

    @app.get("/health", tags=["Health"], summary="Ledger store and Redis connectivity")
    async def health_check(request: Request) -> dict[str, Any]:
        services = getattr(request.app.state, "services", None)
        checks = {
            "database": await _check_ledger_store(services),
            "redis": await _check_redis(),
        }
        degraded = any(v.startswith("unhealthy") for v in checks.values())
        return {
            "status": "degraded" if degraded else "healthy",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "version": __version__,
            "scheduler": bool(services and services.scheduler.is_running),
            "services": checks,
        }

    @app.get("/health/live", tags=["Health"], summary="Liveness probe")
    async def liveness_probe() -> dict[str, str]:
        return {"status": "alive"}

    for router in (
        wallet_router,
        bonuses_router,
        games_router,
        tickets_router,
        tournaments_router,
        social_router,
        admin_router,
    ):
        app.include_router(router, prefix=API_V1_PREFIX)

    return app


app = create_app()
