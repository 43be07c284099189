from fastapi import APIRouter, Depends

from mealplanner.core.access_gate import TrainerContext, require_feature
from mealplanner.db.base import get_session_factory
from mealplanner.domain.entitlements import Feature
from mealplanner.schemas.accounts import AnalyticsSummaryResponse
from mealplanner.services.analytics_service import AnalyticsService

router = APIRouter()


@router.get("/summary", response_model=AnalyticsSummaryResponse)
async def get_analytics_summary(ctx: TrainerContext = Depends(require_feature(Feature.ANALYTICS))):
    service = AnalyticsService(get_session_factory())
    return await service.get_summary(ctx.trainer_id, ctx.entitlements)
