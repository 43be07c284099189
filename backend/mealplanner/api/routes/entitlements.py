"""Entitlements route: the caller's resolved tier capabilities."""

from fastapi import APIRouter, Depends

from mealplanner.core.access_gate import TrainerContext, get_trainer_context
from mealplanner.schemas.billing import EntitlementsResponse

router = APIRouter()


@router.get("/entitlements", response_model=EntitlementsResponse)
async def get_entitlements(ctx: TrainerContext = Depends(get_trainer_context)):
    """Ceilings, meal types, export formats and features for the caller's subscription.

    A lapsed or missing subscription reports the baseline (everything empty).
    """
    return EntitlementsResponse(status=ctx.snapshot.status, **ctx.entitlements.as_dict())
