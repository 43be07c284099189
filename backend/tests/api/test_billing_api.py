"""HTTP-level tests for the Stripe webhook endpoint and billing routes."""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
import stripe
from sqlalchemy import func, select

from mealplanner.api.routes import billing
from mealplanner.db.models.stripe_event import StripeWebhookEvent
from mealplanner.db.models.subscription import TrainerSubscription
from mealplanner.domain.tiers import SubscriptionStatus, Tier

pytestmark = pytest.mark.integration


def _make_stripe_event(event_id: str, event_type: str, data: dict) -> dict:
    return {"id": event_id, "type": event_type, "data": {"object": data}}


@pytest.fixture
def webhook_settings():
    settings = MagicMock()
    settings.stripe_webhook_secret = "whsec_test"
    settings.stripe_secret_key = "sk_test"
    with patch("mealplanner.api.routes.billing.get_settings", return_value=settings):
        yield settings


async def _post_event(api_client, event: dict):
    with patch("stripe.Webhook.construct_event", return_value=event):
        return await api_client.post(
            "/api/webhooks/stripe",
            content=b"payload",
            headers={"stripe-signature": "t=1,v1=abc"},
        )


class TestWebhookEndpoint:
    async def test_503_when_secret_missing(self, api_client):
        settings = MagicMock()
        settings.stripe_webhook_secret = ""

        with patch("mealplanner.api.routes.billing.get_settings", return_value=settings):
            response = await api_client.post(
                "/api/webhooks/stripe", content=b"{}", headers={"stripe-signature": "t=0,v1=bad"}
            )

        assert response.status_code == 503

    async def test_missing_signature_is_400(self, api_client, webhook_settings):
        response = await api_client.post("/api/webhooks/stripe", content=b"{}")

        assert response.status_code == 400
        assert "stripe-signature" in response.json()["detail"]

    async def test_invalid_signature_is_400(self, api_client, webhook_settings):
        with patch(
            "stripe.Webhook.construct_event",
            side_effect=stripe.SignatureVerificationError("Invalid signature", "t=0,v1=bad"),
        ):
            response = await api_client.post(
                "/api/webhooks/stripe", content=b"{}", headers={"stripe-signature": "t=0,v1=bad"}
            )

        assert response.status_code == 400
        assert response.json()["detail"] == "Invalid signature"

    async def test_duplicate_event_is_processed_once(
        self, api_client, webhook_settings, session_factory, create_trainer
    ):
        trainer = await create_trainer(Tier.PROFESSIONAL, stripe_customer_id="cus_dup")
        event = _make_stripe_event("evt_dup_001", "invoice.payment_failed", {"customer": "cus_dup"})

        first = await _post_event(api_client, event)

        # Recover out of band; a replayed failure must not knock it back to past_due
        async with session_factory() as session:
            subscription = (
                await session.execute(select(TrainerSubscription).where(TrainerSubscription.trainer_id == trainer.id))
            ).scalar_one()
            assert subscription.status == SubscriptionStatus.PAST_DUE
            subscription.status = SubscriptionStatus.ACTIVE
            await session.commit()

        second = await _post_event(api_client, event)

        assert first.status_code == second.status_code == 200
        async with session_factory() as session:
            subscription = (
                await session.execute(select(TrainerSubscription).where(TrainerSubscription.trainer_id == trainer.id))
            ).scalar_one()
            claimed = await session.scalar(select(func.count()).select_from(StripeWebhookEvent))
        assert subscription.status == SubscriptionStatus.ACTIVE
        assert claimed == 1

    async def test_redelivery_after_handler_failure_is_applied(
        self, api_client, webhook_settings, session_factory, create_trainer
    ):
        trainer = await create_trainer(Tier.PROFESSIONAL, stripe_customer_id="cus_redeliver")
        event = _make_stripe_event("evt_redeliver", "customer.subscription.deleted", {"customer": "cus_redeliver"})
        failing = AsyncMock(side_effect=RuntimeError("db down"))

        with patch.dict(billing.WEBHOOK_HANDLERS, {"customer.subscription.deleted": failing}):
            with pytest.raises(RuntimeError, match="db down"):
                await _post_event(api_client, event)

        retried = await _post_event(api_client, event)

        assert retried.status_code == 200
        async with session_factory() as session:
            subscription = (
                await session.execute(select(TrainerSubscription).where(TrainerSubscription.trainer_id == trainer.id))
            ).scalar_one()
        assert subscription.status == SubscriptionStatus.CANCELED

    async def test_unhandled_event_type_is_acknowledged(self, api_client, webhook_settings):
        response = await _post_event(api_client, _make_stripe_event("evt_misc", "charge.refunded", {}))

        assert response.status_code == 200
        assert response.json() == {"status": "ok"}

    async def test_downgrade_takes_effect_on_next_request(
        self, api_client, webhook_settings, create_trainer, headers_for
    ):
        trainer = await create_trainer(Tier.ENTERPRISE, stripe_customer_id="cus_down")
        before = await api_client.get("/api/entitlements", headers=headers_for(trainer))
        assert before.json()["tier"] == "enterprise"

        await _post_event(
            api_client,
            _make_stripe_event(
                "evt_down",
                "customer.subscription.updated",
                {"id": "sub_down", "customer": "cus_down", "status": "active", "metadata": {"tier": "starter"}},
            ),
        )

        after = await api_client.get("/api/entitlements", headers=headers_for(trainer))
        assert after.json()["tier"] == "starter"
        assert after.json()["export_formats"] == ["pdf"]


class TestBillingRoutes:
    async def test_status_without_subscription(self, api_client, create_trainer, headers_for):
        trainer = await create_trainer(tier=None)

        response = await api_client.get("/api/billing/status", headers=headers_for(trainer))

        assert response.status_code == 200
        assert response.json()["has_subscription"] is False
        assert response.json()["is_entitled"] is False

    async def test_status_of_past_due_subscription(self, api_client, create_trainer, headers_for):
        trainer = await create_trainer(Tier.PROFESSIONAL, SubscriptionStatus.PAST_DUE)

        body = (await api_client.get("/api/billing/status", headers=headers_for(trainer))).json()

        assert body["tier"] == "professional"
        assert body["status"] == "past_due"
        assert body["is_entitled"] is False

    async def test_checkout_uses_async_sdk(self, api_client, create_trainer, headers_for, monkeypatch):
        from mealplanner.api.routes import billing

        monkeypatch.setattr(billing, "PRICE_MAP", {Tier.PROFESSIONAL: "price_pro"})
        trainer = await create_trainer(tier=None)
        create_async = AsyncMock(return_value=SimpleNamespace(url="https://checkout.stripe.test/cs_1"))

        with patch("stripe.checkout.Session.create_async", create_async):
            response = await api_client.post(
                "/api/billing/checkout", json={"tier": "professional"}, headers=headers_for(trainer)
            )

        assert response.status_code == 200
        assert response.json()["checkout_url"] == "https://checkout.stripe.test/cs_1"
        params = create_async.await_args.kwargs
        assert params["line_items"] == [{"price": "price_pro", "quantity": 1}]
        assert params["metadata"] == {"trainer_id": trainer.id, "tier": "professional"}
        assert "customer" not in params

    async def test_checkout_for_unpriced_tier_is_400(self, api_client, create_trainer, headers_for, monkeypatch):
        from mealplanner.api.routes import billing

        monkeypatch.setattr(billing, "PRICE_MAP", {Tier.STARTER: "price_starter"})
        trainer = await create_trainer(tier=None)

        response = await api_client.post(
            "/api/billing/checkout", json={"tier": "enterprise"}, headers=headers_for(trainer)
        )

        assert response.status_code == 400

    async def test_portal_requires_billing_account(self, api_client, create_trainer, headers_for):
        trainer = await create_trainer(Tier.STARTER)

        response = await api_client.post("/api/billing/portal", headers=headers_for(trainer))

        assert response.status_code == 400
