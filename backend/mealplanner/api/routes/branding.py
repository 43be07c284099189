"""Branding routes: trainer settings, domain verification, public view."""

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, Field

from mealplanner.core.access_gate import TrainerContext, get_trainer_context
from mealplanner.db.base import get_session_factory
from mealplanner.schemas.branding import BrandingResponse, PublicBrandingResponse, UpdateBrandingRequest
from mealplanner.services.branding_service import BrandingService

router = APIRouter()


class VerifyDomainRequest(BaseModel):
    token: str = Field(min_length=1, max_length=128)


@router.get("", response_model=BrandingResponse)
async def get_branding(ctx: TrainerContext = Depends(get_trainer_context)):
    service = BrandingService(get_session_factory())
    return await service.get_branding(ctx.trainer_id, ctx.entitlements)


@router.put("", response_model=BrandingResponse)
async def update_branding(
    body: UpdateBrandingRequest,
    request: Request,
    ctx: TrainerContext = Depends(get_trainer_context),
):
    """Partial update. Each field is checked against the caller's tier."""
    service = BrandingService(get_session_factory())
    return await service.update_branding(
        ctx.trainer_id,
        body,
        ip_address=request.client.host if request.client else None,
        user_agent=request.headers.get("user-agent"),
    )


@router.post("/domain/verify", response_model=BrandingResponse)
async def verify_custom_domain(
    body: VerifyDomainRequest,
    ctx: TrainerContext = Depends(get_trainer_context),
):
    service = BrandingService(get_session_factory())
    return await service.mark_domain_verified(ctx.trainer_id, body.token)


@router.get("/public/{trainer_id}", response_model=PublicBrandingResponse)
async def get_public_branding(trainer_id: str):
    """Branding shown to a trainer's customers. No authentication."""
    service = BrandingService(get_session_factory())
    return await service.get_public_branding(trainer_id)
