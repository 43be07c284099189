"""FitnessMealPlanner backend: FastAPI application entry point."""

import signal
import uuid
from contextlib import asynccontextmanager

# configure_structlog must run before the other app imports: structlog caches
# the processor chain on first use.
from mealplanner.core.logging import configure_structlog
from mealplanner.core.config import get_settings as _get_settings_early

_early_settings = _get_settings_early()
configure_structlog(
    log_level="DEBUG" if _early_settings.debug else "INFO",
    json_logs=not _early_settings.debug,
)

import structlog

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from redis.exceptions import RedisError
from sqlalchemy.exc import IntegrityError

from mealplanner.api.routes import api_router
from mealplanner.core.config import get_settings
from mealplanner.core.exceptions import MealPlannerError
from mealplanner.db import Base, close_db, close_redis, init_db, init_redis
from mealplanner.db.lifecycle import verify_cascade_rules
from mealplanner.db import models as _models  # noqa: F401  (populates Base.metadata)
from mealplanner.db.seed import seed_meal_types
from mealplanner.middleware.correlation import get_correlation_id, setup_correlation_middleware

logger = structlog.get_logger(__name__)


def validate_price_map() -> None:
    """Fail fast if any Stripe price ID is missing at startup."""
    settings = get_settings()
    if settings.debug:
        return  # Skip in dev/test mode
    required = {
        "stripe_price_starter": settings.stripe_price_starter,
        "stripe_price_professional": settings.stripe_price_professional,
        "stripe_price_enterprise": settings.stripe_price_enterprise,
    }
    missing = [k for k, v in required.items() if not v]
    if missing:
        raise RuntimeError(f"Missing Stripe price IDs at startup: {missing}")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown events."""
    # SIGTERM flips this so the health check returns 503 while connections drain
    app.state.shutting_down = False

    def handle_sigterm(signum, frame):
        app.state.shutting_down = True
        logger.info("sigterm_received", action="health_check_503_draining_connections")

    signal.signal(signal.SIGTERM, handle_sigterm)

    settings = get_settings()
    logger.info("startup_begin", app_name=settings.app_name, debug=settings.debug)

    verify_cascade_rules(Base.metadata)
    logger.info("cascade_policy_verified")

    await init_db()
    logger.info("db_initialized")

    try:
        await init_redis()
        logger.info("redis_initialized")
    except (RedisError, OSError) as e:
        # Entitlement cache is optional; requests fall back to the database
        await close_redis()
        logger.warning("redis_unavailable", error=str(e))

    added = await seed_meal_types()
    logger.info("meal_types_seeded", added=added)

    validate_price_map()
    logger.info("stripe_price_map_validated")

    yield

    logger.info("shutdown_begin")
    await close_redis()
    await close_db()
    logger.info("shutdown_complete")


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Global exception handler for HTTPException with debug_id tracking.

    Logs errors server-side with full context, returns sanitized response to client.
    """
    debug_id = str(uuid.uuid4())

    logger.error(
        "http_exception",
        status_code=exc.status_code,
        debug_id=debug_id,
        correlation_id=get_correlation_id(),
        path=request.url.path,
        method=request.method,
        user_id=getattr(request.state, "user_id", None),
        detail=exc.detail,
    )

    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "debug_id": debug_id},
        headers=getattr(exc, "headers", None),
    )


async def mealplanner_error_handler(request: Request, exc: MealPlannerError) -> JSONResponse:
    """Render domain errors (upgrade required, quota exceeded, bad branding input).

    Denials are expected traffic, so they log at info; anything 5xx logs as an error.
    """
    debug_id = str(uuid.uuid4())
    log = logger.error if exc.status_code >= 500 else logger.info

    log(
        "request_denied" if exc.status_code < 500 else "domain_error",
        code=exc.code,
        status_code=exc.status_code,
        debug_id=debug_id,
        correlation_id=get_correlation_id(),
        path=request.url.path,
        method=request.method,
        user_id=getattr(request.state, "user_id", None),
        error=str(exc),
    )

    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.to_detail(), "debug_id": debug_id},
    )


async def integrity_error_handler(request: Request, exc: IntegrityError) -> JSONResponse:
    """Constraint violations from concurrent writes surface as 409 Conflict."""
    debug_id = str(uuid.uuid4())

    logger.warning(
        "integrity_error",
        debug_id=debug_id,
        correlation_id=get_correlation_id(),
        path=request.url.path,
        method=request.method,
        user_id=getattr(request.state, "user_id", None),
        error=str(exc.orig),
    )

    return JSONResponse(
        status_code=409,
        content={"detail": "Conflicting change, please retry", "debug_id": debug_id},
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Global exception handler for unhandled errors with debug_id tracking.

    Logs full exception with traceback, returns generic 500 to client.
    """
    debug_id = str(uuid.uuid4())

    logger.error(
        "unhandled_exception",
        debug_id=debug_id,
        correlation_id=get_correlation_id(),
        path=request.url.path,
        method=request.method,
        user_id=getattr(request.state, "user_id", None),
        error=str(exc),
        error_type=type(exc).__name__,
        exc_info=True,
    )

    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error", "debug_id": debug_id},
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.exception_handler(HTTPException)(http_exception_handler)
    app.exception_handler(MealPlannerError)(mealplanner_error_handler)
    app.exception_handler(IntegrityError)(integrity_error_handler)
    app.exception_handler(Exception)(generic_exception_handler)


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        description="Meal planning for personal trainers with tier-based entitlements",
        version="0.1.0",
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.frontend_url, *settings.cors_allowed_origins],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Correlation ID middleware (runs first on incoming requests)
    setup_correlation_middleware(app)

    register_exception_handlers(app)

    app.include_router(api_router, prefix="/api")

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "mealplanner.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
    )
