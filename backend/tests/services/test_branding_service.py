"""Tests for tier-checked branding updates, masking and domain verification."""

import pytest

from mealplanner.core.exceptions import AuthorizationError, BrandingValidationError
from mealplanner.domain.entitlements import resolve_entitlements
from mealplanner.domain.tiers import SubscriptionStatus, Tier
from mealplanner.schemas.branding import UpdateBrandingRequest
from mealplanner.services.branding_service import BrandingService

pytestmark = pytest.mark.integration


async def test_starter_cannot_set_colors(session_factory, create_trainer):
    trainer = await create_trainer(Tier.STARTER)

    with pytest.raises(AuthorizationError) as exc_info:
        await BrandingService(session_factory).update_branding(
            trainer.id, UpdateBrandingRequest(primary_color="#112233")
        )

    assert exc_info.value.resource == "branding:primary_color"
    assert exc_info.value.required_tier == "professional"


async def test_professional_sets_colors_and_logo(session_factory, create_trainer):
    trainer = await create_trainer(Tier.PROFESSIONAL)
    service = BrandingService(session_factory)

    response = await service.update_branding(
        trainer.id,
        UpdateBrandingRequest(primary_color="#a1b2c3", logo_url="https://cdn.example.com/logo.png"),
        ip_address="10.0.0.1",
    )

    assert response.primary_color == "#A1B2C3"
    assert response.logo_url == "https://cdn.example.com/logo.png"
    assert response.can_customize is True
    assert response.can_white_label is False

    actions = sorted((row.action, row.field_changed) for row in await service.get_audit_log(trainer.id))
    assert actions == [("created", None), ("updated", "logo_url"), ("updated", "primary_color")]


async def test_professional_cannot_enable_white_label(session_factory, create_trainer):
    trainer = await create_trainer(Tier.PROFESSIONAL)
    service = BrandingService(session_factory)

    # One forbidden field rejects the whole update
    with pytest.raises(AuthorizationError) as exc_info:
        await service.update_branding(
            trainer.id, UpdateBrandingRequest(primary_color="#000000", white_label_enabled=True)
        )

    assert exc_info.value.required_tier == "enterprise"
    assert (await service.get_branding(trainer.id, resolve_entitlements(Tier.PROFESSIONAL))).primary_color is None


async def test_invalid_color_is_rejected(session_factory, create_trainer):
    trainer = await create_trainer(Tier.PROFESSIONAL)

    with pytest.raises(BrandingValidationError) as exc_info:
        await BrandingService(session_factory).update_branding(trainer.id, UpdateBrandingRequest(accent_color="red"))

    assert exc_info.value.field == "accent_color"


async def test_unchanged_field_writes_no_audit_row(session_factory, create_trainer):
    trainer = await create_trainer(Tier.PROFESSIONAL)
    service = BrandingService(session_factory)
    await service.update_branding(trainer.id, UpdateBrandingRequest(primary_color="#111111"))

    await service.update_branding(trainer.id, UpdateBrandingRequest(primary_color="#111111"))

    assert len(await service.get_audit_log(trainer.id)) == 2


async def test_custom_domain_change_issues_token_and_verifies(session_factory, create_trainer):
    trainer = await create_trainer(Tier.ENTERPRISE)
    service = BrandingService(session_factory)

    pending = await service.update_branding(trainer.id, UpdateBrandingRequest(custom_domain="Meals.Example.COM"))
    assert pending.custom_domain == "meals.example.com"
    assert pending.custom_domain_verified is False
    assert len(pending.domain_verification_token) == 64

    with pytest.raises(BrandingValidationError):
        await service.mark_domain_verified(trainer.id, "wrong-token")

    verified = await service.mark_domain_verified(trainer.id, pending.domain_verification_token)
    assert verified.custom_domain_verified is True
    assert verified.domain_verified_at is not None

    moved = await service.update_branding(trainer.id, UpdateBrandingRequest(custom_domain="plans.example.com"))
    assert moved.custom_domain_verified is False
    assert moved.domain_verification_token != pending.domain_verification_token

    actions = [row.action for row in await service.get_audit_log(trainer.id)]
    assert actions.count("domain_reset") == 2
    assert actions.count("domain_verified") == 1


async def test_malformed_domain_is_rejected(session_factory, create_trainer):
    trainer = await create_trainer(Tier.ENTERPRISE)

    with pytest.raises(BrandingValidationError):
        await BrandingService(session_factory).update_branding(
            trainer.id, UpdateBrandingRequest(custom_domain="not a domain")
        )


async def test_verify_without_pending_domain(session_factory, create_trainer):
    trainer = await create_trainer(Tier.ENTERPRISE)

    with pytest.raises(BrandingValidationError):
        await BrandingService(session_factory).mark_domain_verified(trainer.id, "anything")


async def test_enterprise_fields_masked_after_downgrade(session_factory, create_trainer):
    trainer = await create_trainer(Tier.ENTERPRISE)
    service = BrandingService(session_factory)
    await service.update_branding(
        trainer.id,
        UpdateBrandingRequest(primary_color="#123456", white_label_enabled=True, custom_domain="coach.example.com"),
    )

    view = await service.get_branding(trainer.id, resolve_entitlements(Tier.PROFESSIONAL))

    assert view.primary_color == "#123456"
    assert view.white_label_enabled is False
    assert view.custom_domain is None
    assert view.domain_verification_token is None


async def test_public_branding_white_label(session_factory, create_trainer):
    trainer = await create_trainer(Tier.ENTERPRISE)
    service = BrandingService(session_factory)
    await service.update_branding(trainer.id, UpdateBrandingRequest(white_label_enabled=True, primary_color="#ABCDEF"))

    public = await service.get_public_branding(trainer.id)

    assert public.show_platform_branding is False
    assert public.platform_name is None
    assert public.primary_color == "#ABCDEF"


async def test_public_branding_for_lapsed_trainer_shows_platform(session_factory, create_trainer):
    trainer = await create_trainer(Tier.ENTERPRISE, SubscriptionStatus.CANCELED)

    public = await BrandingService(session_factory).get_public_branding(trainer.id)

    assert public.show_platform_branding is True
    assert public.platform_name == "EvoFit Meals"
    assert public.primary_color is None
