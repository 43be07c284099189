"""Billing, usage and entitlement schemas."""

from pydantic import BaseModel


class BillingStatusResponse(BaseModel):
    tier: str | None
    status: str | None
    has_subscription: bool
    is_entitled: bool
    current_period_end: str | None
    cancel_at_period_end: bool


class UsageCounterResponse(BaseModel):
    used: int
    limit: int | None  # None = unlimited
    percentage: int


class UsageResponse(BaseModel):
    tier: str | None
    status: str | None
    period_start: str
    period_end: str
    counters: dict[str, UsageCounterResponse]


class EntitlementsResponse(BaseModel):
    tier: str | None
    status: str | None
    max_customers: int | None
    max_meal_plans: int | None
    max_ai_generations: int | None
    max_recipes_visible: int
    accessible_meal_types: list[str]
    export_formats: list[str]
    features: list[str]
