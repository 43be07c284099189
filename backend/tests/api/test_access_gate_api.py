"""HTTP-level tests for tier gating: 401, 403 upgrade bodies and 429 quota bodies."""

from datetime import timedelta

import pytest

from mealplanner.core.auth import create_access_token
from mealplanner.domain.tiers import SubscriptionStatus, Tier

pytestmark = pytest.mark.integration


class TestAuthentication:
    async def test_missing_token_is_401(self, api_client):
        response = await api_client.get("/api/meal-types")

        assert response.status_code == 401
        assert "debug_id" in response.json()

    async def test_expired_token_is_401(self, api_client, create_trainer):
        trainer = await create_trainer(Tier.STARTER)
        token = create_access_token(trainer.id, "trainer", expires_in=timedelta(seconds=-5))

        response = await api_client.get("/api/meal-types", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 401

    async def test_customer_cannot_use_trainer_routes(self, api_client, create_user, headers_for):
        customer = await create_user(role="customer")

        response = await api_client.get("/api/entitlements", headers=headers_for(customer))

        assert response.status_code == 403

    async def test_admin_is_refused_on_trainer_routes(self, api_client, create_user, headers_for):
        admin = await create_user(role="admin")

        response = await api_client.get("/api/analytics/summary", headers=headers_for(admin))

        assert response.status_code == 403
        # A role refusal, not an upgrade prompt for a subscription admins never have
        assert response.json()["detail"] == "Requires role: trainer"

    async def test_admin_is_refused_on_customer_routes(self, api_client, create_user, headers_for):
        admin = await create_user(role="admin")

        response = await api_client.get("/api/grocery-lists", headers=headers_for(admin))

        assert response.status_code == 403
        assert response.json()["detail"] == "Requires role: customer"


class TestUpgradeRequired:
    async def test_starter_keto_meal_plan(self, api_client, create_trainer, headers_for):
        trainer = await create_trainer(Tier.STARTER)

        response = await api_client.post(
            "/api/meal-plans",
            json={"name": "Keto Week", "meal_type": "keto"},
            headers=headers_for(trainer),
        )

        assert response.status_code == 403
        detail = response.json()["detail"]
        assert detail["code"] == "upgrade_required"
        assert detail["resource"] == "meal_type:keto"
        assert detail["required_tier"] == "professional"
        assert detail["current_tier"] == "starter"
        assert detail["reason"] == "tier_insufficient"

    async def test_starter_keto_recipes(self, api_client, create_trainer, headers_for):
        trainer = await create_trainer(Tier.STARTER)

        response = await api_client.get("/api/meal-types/keto/recipes", headers=headers_for(trainer))

        assert response.status_code == 403
        assert response.json()["detail"]["resource"] == "meal_type:keto"

    async def test_starter_csv_export(self, api_client, create_trainer, headers_for):
        trainer = await create_trainer(Tier.STARTER)
        created = await api_client.post(
            "/api/meal-plans", json={"name": "Basics", "meal_type": "lunch"}, headers=headers_for(trainer)
        )

        response = await api_client.get(
            f"/api/meal-plans/{created.json()['id']}/export/csv", headers=headers_for(trainer)
        )

        assert response.status_code == 403
        assert response.json()["detail"]["required_tier"] == "professional"

    async def test_starter_analytics(self, api_client, create_trainer, headers_for):
        trainer = await create_trainer(Tier.STARTER)

        response = await api_client.get("/api/analytics/summary", headers=headers_for(trainer))

        assert response.status_code == 403
        assert response.json()["detail"]["resource"] == "analytics"

    async def test_lapsed_subscription_reports_inactive(self, api_client, create_trainer, headers_for):
        trainer = await create_trainer(Tier.ENTERPRISE, SubscriptionStatus.PAST_DUE)

        response = await api_client.get("/api/customers", headers=headers_for(trainer))

        assert response.status_code == 403
        detail = response.json()["detail"]
        assert detail["reason"] == "subscription_inactive"
        assert detail["current_tier"] == "enterprise"

    async def test_no_subscription(self, api_client, create_trainer, headers_for):
        trainer = await create_trainer(tier=None)

        response = await api_client.get("/api/customers", headers=headers_for(trainer))

        assert response.status_code == 403
        assert response.json()["detail"]["reason"] == "no_subscription"


class TestAllowedRequests:
    async def test_professional_analytics_summary(self, api_client, create_trainer, headers_for):
        trainer = await create_trainer(Tier.PROFESSIONAL)
        await api_client.post(
            "/api/meal-plans", json={"name": "Vegan", "meal_type": "vegan"}, headers=headers_for(trainer)
        )

        response = await api_client.get("/api/analytics/summary", headers=headers_for(trainer))

        assert response.status_code == 200
        body = response.json()
        assert body["tier"] == "professional"
        assert body["total_meal_plans"] == 1
        assert body["usage"]["meal_plans"]["used"] == 1
        assert body["usage"]["meal_plans"]["limit"] == 20
        assert body["meal_plans_by_type"] == [{"meal_type": "vegan", "count": 1}]

    async def test_professional_csv_download(self, api_client, create_trainer, headers_for):
        trainer = await create_trainer(Tier.PROFESSIONAL)
        created = await api_client.post(
            "/api/meal-plans", json={"name": "Lean Bulk", "meal_type": "high-protein"}, headers=headers_for(trainer)
        )

        response = await api_client.get(
            f"/api/meal-plans/{created.json()['id']}/export/csv", headers=headers_for(trainer)
        )

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        assert 'filename="lean-bulk.csv"' in response.headers["content-disposition"]

    async def test_meal_types_listing(self, api_client, create_trainer, headers_for):
        trainer = await create_trainer(Tier.STARTER)

        accessible = await api_client.get("/api/meal-types", headers=headers_for(trainer))
        everything = await api_client.get("/api/meal-types/all", headers=headers_for(trainer))

        assert len(accessible.json()["meal_types"]) == 5
        locked = [m for m in everything.json()["meal_types"] if not m["is_accessible"]]
        assert len(locked) == 12

    async def test_entitlements_endpoint(self, api_client, create_trainer, headers_for):
        trainer = await create_trainer(Tier.ENTERPRISE, SubscriptionStatus.TRIALING)

        response = await api_client.get("/api/entitlements", headers=headers_for(trainer))

        body = response.json()
        assert body["tier"] == "enterprise"
        assert body["status"] == "trialing"
        assert body["max_customers"] is None
        assert body["export_formats"] == ["pdf", "csv", "excel"]
        assert "white_label" in body["features"]


class TestQuota:
    async def test_tenth_customer_is_429(self, api_client, create_trainer, headers_for):
        trainer = await create_trainer(Tier.STARTER)
        for i in range(9):
            created = await api_client.post(
                "/api/customers", json={"email": f"client{i}@example.com"}, headers=headers_for(trainer)
            )
            assert created.status_code == 201

        response = await api_client.post(
            "/api/customers", json={"email": "client9@example.com"}, headers=headers_for(trainer)
        )

        assert response.status_code == 429
        detail = response.json()["detail"]
        assert detail["code"] == "USAGE_LIMIT_EXCEEDED"
        assert (detail["current"], detail["limit"]) == (9, 9)
        assert detail["upgrade_tier"] == "professional"

    async def test_usage_endpoint_reports_counters(self, api_client, create_trainer, headers_for):
        trainer = await create_trainer(Tier.STARTER)
        await api_client.post("/api/customers", json={"email": "one@example.com"}, headers=headers_for(trainer))

        response = await api_client.get("/api/billing/usage", headers=headers_for(trainer))

        counters = response.json()["counters"]
        assert counters["customers"] == {"used": 1, "limit": 9, "percentage": 11}
        assert counters["exports_csv"]["limit"] == 0
        assert counters["exports_pdf"]["limit"] is None
