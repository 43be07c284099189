"""Tests for correlation ids and structured log context."""

import uuid

import pytest
import structlog

from mealplanner.core.access_gate import get_trainer_context
from mealplanner.core.auth import AuthenticatedUser
from mealplanner.core.logging import (
    REDACTED,
    bind_trainer_context,
    clear_request_context,
    redact_sensitive,
)
from mealplanner.domain.tiers import Tier

pytestmark = pytest.mark.integration


async def test_response_includes_request_id(api_client):
    response = await api_client.get("/api/health")

    uuid.UUID(response.headers["x-request-id"])


async def test_client_request_id_is_echoed(api_client):
    response = await api_client.get("/api/health", headers={"X-Request-ID": "trace-abc-123"})

    assert response.headers["x-request-id"] == "trace-abc-123"


async def test_error_body_has_debug_id_and_no_token(api_client):
    response = await api_client.get("/api/entitlements", headers={"Authorization": "Bearer not-a-jwt"})

    assert response.status_code == 401
    body = response.json()
    assert "debug_id" in body
    assert "not-a-jwt" not in response.text


async def test_gate_binds_trainer_to_log_context(engine, create_trainer):
    trainer = await create_trainer(Tier.PROFESSIONAL)
    clear_request_context()

    await get_trainer_context(AuthenticatedUser(user_id=trainer.id, role="trainer", claims={}))

    assert structlog.contextvars.get_contextvars() == {
        "trainer_id": trainer.id,
        "tier": "professional",
        "subscription_status": "active",
    }
    clear_request_context()


@pytest.mark.unit
class TestRedaction:
    def test_secrets_are_dropped(self):
        event = redact_sensitive(None, "info", {"event": "x", "Authorization": "Bearer abc", "token": "t"})

        assert event["Authorization"] == REDACTED
        assert event["token"] == REDACTED

    def test_email_is_masked(self):
        event = redact_sensitive(None, "info", {"event": "x", "email": "jane@example.com"})

        assert event["email"] == "j***@example.com"

    def test_other_fields_untouched(self):
        event = redact_sensitive(None, "info", {"event": "quota_exceeded", "resource": "customers", "limit": 9})

        assert event == {"event": "quota_exceeded", "resource": "customers", "limit": 9}


@pytest.mark.unit
def test_bind_and_clear_trainer_context():
    clear_request_context()
    bind_trainer_context("trainer_9", "starter", "trialing")
    assert structlog.contextvars.get_contextvars() == {
        "trainer_id": "trainer_9",
        "tier": "starter",
        "subscription_status": "trialing",
    }

    clear_request_context()
    assert structlog.contextvars.get_contextvars() == {}
