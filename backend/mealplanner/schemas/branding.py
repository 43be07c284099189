"""Branding schemas."""

from datetime import datetime

from pydantic import BaseModel, Field


class UpdateBrandingRequest(BaseModel):
    """Partial update; omitted fields are left unchanged."""

    logo_url: str | None = Field(default=None, max_length=2048)
    primary_color: str | None = None
    secondary_color: str | None = None
    accent_color: str | None = None
    white_label_enabled: bool | None = None
    custom_domain: str | None = Field(default=None, max_length=255)


class BrandingResponse(BaseModel):
    logo_url: str | None
    primary_color: str | None
    secondary_color: str | None
    accent_color: str | None
    white_label_enabled: bool
    custom_domain: str | None
    custom_domain_verified: bool
    domain_verification_token: str | None
    domain_verified_at: datetime | None
    # Which fields the trainer's tier lets them edit
    can_customize: bool
    can_white_label: bool


class PublicBrandingResponse(BaseModel):
    logo_url: str | None
    primary_color: str | None
    secondary_color: str | None
    accent_color: str | None
    show_platform_branding: bool
    platform_name: str | None
