"""Liveness and readiness probes.

Readiness needs the database and a fully seeded meal-type catalogue. Redis
only backs the entitlement cache, so a Redis outage is reported but does not
take the instance out of rotation.
"""

import structlog
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from redis.exceptions import RedisError
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError

from mealplanner.db.base import get_session_factory
from mealplanner.db.models.recipe_type_category import RecipeTypeCategory
from mealplanner.db.redis import get_redis_or_none
from mealplanner.domain.meal_types import MEAL_TYPE_CATALOGUE

logger = structlog.get_logger(__name__)

router = APIRouter()

SERVICE_NAME = "mealplanner-backend"


@router.get("/health")
async def health_check(request: Request):
    """Liveness probe; 503 once SIGTERM has started the drain."""
    if getattr(request.app.state, "shutting_down", False):
        return JSONResponse(status_code=503, content={"status": "shutting_down", "service": SERVICE_NAME})
    return {"status": "healthy", "service": SERVICE_NAME}


@router.get("/ready")
async def readiness_check():
    checks: dict[str, bool] = {"database": False, "meal_types": False}
    cache = "disabled"

    try:
        async with get_session_factory()() as session:
            seeded = await session.scalar(select(func.count()).select_from(RecipeTypeCategory))
        checks["database"] = True
        checks["meal_types"] = seeded == len(MEAL_TYPE_CATALOGUE)
    except (RuntimeError, SQLAlchemyError, OSError) as e:
        logger.error("readiness_database_failed", error=str(e))

    redis = get_redis_or_none()
    if redis is not None:
        try:
            await redis.ping()
            cache = "ok"
        except (RedisError, OSError) as e:
            cache = "unavailable"
            logger.warning("readiness_cache_unavailable", error=str(e))

    ready = all(checks.values())
    return JSONResponse(
        status_code=200 if ready else 503,
        content={"status": "ready" if ready else "not_ready", "checks": checks, "entitlement_cache": cache},
    )
