"""Billing routes: Stripe Checkout, Customer Portal, webhooks, status and usage."""

from collections.abc import Awaitable, Callable
from datetime import UTC, datetime

import stripe
import structlog
from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from mealplanner.core.access_gate import TrainerContext, get_trainer_context
from mealplanner.core.config import get_settings
from mealplanner.db.base import get_session_factory
from mealplanner.db.models.stripe_event import StripeWebhookEvent
from mealplanner.db.models.subscription import TrainerSubscription
from mealplanner.db.models.user import User
from mealplanner.domain.entitlements import is_entitled_status
from mealplanner.domain.tiers import SubscriptionStatus, Tier
from mealplanner.schemas.billing import BillingStatusResponse, UsageResponse
from mealplanner.services.entitlement_service import get_subscription, invalidate_entitlements
from mealplanner.services.usage_tracker import UsageTracker

logger = structlog.get_logger(__name__)

router = APIRouter()


# ── Request / Response schemas ──────────────────────────────────────


class CheckoutRequest(BaseModel):
    tier: Tier


class CheckoutResponse(BaseModel):
    checkout_url: str


class PortalResponse(BaseModel):
    portal_url: str


# ── Helpers ─────────────────────────────────────────────────────────

PRICE_MAP: dict[Tier, str] = {}

# Stripe statuses outside our enum collapse onto the nearest non-entitled one
STRIPE_STATUS_MAP: dict[str, SubscriptionStatus] = {
    "trialing": SubscriptionStatus.TRIALING,
    "active": SubscriptionStatus.ACTIVE,
    "past_due": SubscriptionStatus.PAST_DUE,
    "unpaid": SubscriptionStatus.UNPAID,
    "canceled": SubscriptionStatus.CANCELED,
    "incomplete": SubscriptionStatus.PAST_DUE,
    "incomplete_expired": SubscriptionStatus.CANCELED,
    "paused": SubscriptionStatus.UNPAID,
}


def _build_price_map() -> dict[Tier, str]:
    """Build a mapping of tier -> Stripe Price ID from config."""
    if PRICE_MAP:
        return PRICE_MAP

    settings = get_settings()
    mapping = {
        Tier.STARTER: settings.stripe_price_starter,
        Tier.PROFESSIONAL: settings.stripe_price_professional,
        Tier.ENTERPRISE: settings.stripe_price_enterprise,
    }
    PRICE_MAP.update({tier: price for tier, price in mapping.items() if price})
    return PRICE_MAP


def _tier_for_price(price_id: str | None) -> Tier | None:
    if not price_id:
        return None
    for tier, mapped in _build_price_map().items():
        if mapped == price_id:
            return tier
    return None


def _get_stripe() -> None:
    """Configure the stripe module with the secret key."""
    settings = get_settings()
    stripe.api_key = settings.stripe_secret_key


def _timestamp(value: int | None) -> datetime | None:
    return datetime.fromtimestamp(value, UTC) if value else None


def _first_item(subscription: dict) -> dict:
    items = (subscription.get("items") or {}).get("data") or []
    return items[0] if items else {}


def _tier_from_subscription(subscription: dict) -> Tier | None:
    """Tier named in metadata, else the tier whose price the subscription bills."""
    metadata_tier = (subscription.get("metadata") or {}).get("tier")
    if metadata_tier in Tier.__members__.values():
        return Tier(metadata_tier)
    price = _first_item(subscription).get("price") or {}
    return _tier_for_price(price.get("id"))


def _period_bounds(subscription: dict) -> tuple[datetime | None, datetime | None]:
    """Current period of a Stripe subscription (top level, or its first item on newer API versions)."""
    item = _first_item(subscription)
    start = subscription.get("current_period_start") or item.get("current_period_start")
    end = subscription.get("current_period_end") or item.get("current_period_end")
    return _timestamp(start), _timestamp(end)


async def _claim_event(session: AsyncSession, event_id: str, event_type: str) -> bool:
    """Record the event in the caller's transaction. False if it was already applied.

    The claim commits or rolls back together with the handler's writes, so a
    delivery whose handler fails stays unclaimed and Stripe's retry applies it.
    """
    try:
        async with session.begin_nested():
            session.add(StripeWebhookEvent(event_id=event_id, event_type=event_type))
        return True
    except IntegrityError:
        return False


async def _fetch_subscription(reference):
    """Expand a checkout session's subscription id so its billing period is known."""
    if not isinstance(reference, str) or not get_settings().stripe_secret_key:
        return reference

    _get_stripe()
    try:
        return await stripe.Subscription.retrieve_async(reference)
    except stripe.StripeError as e:
        # The period arrives with the next customer.subscription.updated instead
        logger.warning("stripe_subscription_fetch_failed", subscription_id=reference, error=str(e))
        return reference


async def _get_by_customer(session, customer_id: str) -> TrainerSubscription | None:
    result = await session.execute(
        select(TrainerSubscription).where(TrainerSubscription.stripe_customer_id == customer_id)
    )
    return result.scalar_one_or_none()


# ── Endpoints ───────────────────────────────────────────────────────


@router.post("/billing/checkout", response_model=CheckoutResponse)
async def create_checkout_session(
    body: CheckoutRequest,
    ctx: TrainerContext = Depends(get_trainer_context),
):
    """Create a Stripe Checkout session for ``tier`` and return the URL."""
    price_id = _build_price_map().get(body.tier)
    if not price_id:
        raise HTTPException(status_code=400, detail=f"No price configured for tier: {body.tier.value}")

    factory = get_session_factory()
    async with factory() as session:
        subscription = await get_subscription(session, ctx.trainer_id)

    settings = get_settings()
    _get_stripe()

    params: dict = {
        "mode": "subscription",
        "line_items": [{"price": price_id, "quantity": 1}],
        "success_url": f"{settings.frontend_url}/billing?checkout_success=true",
        "cancel_url": f"{settings.frontend_url}/pricing",
        "client_reference_id": ctx.trainer_id,
        "metadata": {"trainer_id": ctx.trainer_id, "tier": body.tier.value},
        "subscription_data": {"metadata": {"trainer_id": ctx.trainer_id, "tier": body.tier.value}},
    }
    if subscription is not None and subscription.stripe_customer_id:
        params["customer"] = subscription.stripe_customer_id

    checkout_session = await stripe.checkout.Session.create_async(**params)
    return CheckoutResponse(checkout_url=checkout_session.url)


@router.post("/billing/portal", response_model=PortalResponse)
async def create_portal_session(ctx: TrainerContext = Depends(get_trainer_context)):
    """Create a Stripe Customer Portal session and return the URL."""
    factory = get_session_factory()
    async with factory() as session:
        subscription = await get_subscription(session, ctx.trainer_id)

    if subscription is None or not subscription.stripe_customer_id:
        raise HTTPException(status_code=400, detail="No billing account found. Please subscribe first.")

    settings = get_settings()
    _get_stripe()

    portal_session = await stripe.billing_portal.Session.create_async(
        customer=subscription.stripe_customer_id,
        return_url=f"{settings.frontend_url}/billing",
    )
    return PortalResponse(portal_url=portal_session.url)


@router.get("/billing/status", response_model=BillingStatusResponse)
async def get_billing_status(ctx: TrainerContext = Depends(get_trainer_context)):
    """Return the trainer's stored tier and subscription status."""
    factory = get_session_factory()
    async with factory() as session:
        subscription = await get_subscription(session, ctx.trainer_id)

    if subscription is None:
        return BillingStatusResponse(
            tier=None,
            status=None,
            has_subscription=False,
            is_entitled=False,
            current_period_end=None,
            cancel_at_period_end=False,
        )

    return BillingStatusResponse(
        tier=str(subscription.tier),
        status=str(subscription.status),
        has_subscription=True,
        is_entitled=is_entitled_status(subscription.status),
        current_period_end=subscription.current_period_end.isoformat() if subscription.current_period_end else None,
        cancel_at_period_end=bool(subscription.cancel_at_period_end),
    )


@router.get("/billing/usage", response_model=UsageResponse)
async def get_billing_usage(ctx: TrainerContext = Depends(get_trainer_context)):
    """Return the trainer's usage for the current billing period vs their ceilings."""
    factory = get_session_factory()
    async with factory() as session:
        summary = await UsageTracker(session).summarize(ctx.trainer_id, ctx.entitlements)

    return UsageResponse(
        tier=ctx.snapshot.tier,
        status=ctx.snapshot.status,
        **summary,
    )


@router.post("/webhooks/stripe")
async def stripe_webhook(request: Request):
    """Handle Stripe webhook events with signature verification."""
    settings = get_settings()
    if not settings.stripe_webhook_secret:
        logger.error("stripe_webhook_secret_missing")
        raise HTTPException(status_code=503, detail="Stripe webhook endpoint is not configured")
    _get_stripe()

    body = await request.body()
    sig_header = request.headers.get("stripe-signature")

    if not sig_header:
        raise HTTPException(status_code=400, detail="Missing stripe-signature header")

    try:
        event = stripe.Webhook.construct_event(body, sig_header, settings.stripe_webhook_secret)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid payload")
    except stripe.SignatureVerificationError:
        raise HTTPException(status_code=400, detail="Invalid signature")

    await process_event(event["id"], event["type"], event["data"]["object"])
    return {"status": "ok"}


async def process_event(event_id: str, event_type: str, data: dict) -> bool:
    """Apply one Stripe event exactly once.

    The idempotency claim and the handler's writes share one transaction. A
    handler that raises rolls the claim back with everything else, the webhook
    answers 500 and Stripe redelivers.

    Returns:
        True if the event was applied, False for an already-applied duplicate
    """
    handler = WEBHOOK_HANDLERS.get(event_type)
    if event_type == "checkout.session.completed":
        # Period bounds live on the subscription, not the checkout session
        data = {**data, "subscription": await _fetch_subscription(data.get("subscription"))}

    factory = get_session_factory()
    async with factory() as session:
        async with session.begin():
            if not await _claim_event(session, event_id, event_type):
                logger.info("stripe_duplicate_event_ignored", event_id=event_id)
                return False

            logger.info("stripe_webhook_received", event_type=event_type, event_id=event_id)
            trainer_id = await handler(session, data) if handler is not None else None

    if trainer_id is not None:
        await invalidate_entitlements(trainer_id)
    return True


# ── Webhook handlers ────────────────────────────────────────────────
#
# Each handler runs inside process_event's transaction and returns the
# trainer whose cached entitlements must be dropped once it commits.


async def _handle_checkout_completed(session: AsyncSession, session_data: dict) -> str | None:
    """Create or update the trainer's subscription after a successful checkout."""
    metadata = session_data.get("metadata") or {}
    trainer_id = metadata.get("trainer_id") or session_data.get("client_reference_id")
    tier_value = metadata.get("tier")

    if not trainer_id or tier_value not in Tier.__members__.values():
        logger.warning("checkout_completed_missing_metadata", session_id=session_data.get("id"))
        return None

    status = SubscriptionStatus.TRIALING if metadata.get("trial") == "true" else SubscriptionStatus.ACTIVE

    trainer = await session.get(User, trainer_id)
    if trainer is None or trainer.role != "trainer":
        logger.error("checkout_trainer_not_found", trainer_id=trainer_id)
        return None

    subscription = await get_subscription(session, trainer_id)
    if subscription is None:
        subscription = TrainerSubscription(trainer_id=trainer_id)
        session.add(subscription)

    stripe_subscription = session_data.get("subscription")
    if isinstance(stripe_subscription, dict):
        subscription.stripe_subscription_id = stripe_subscription.get("id")
        start, end = _period_bounds(stripe_subscription)
    else:
        subscription.stripe_subscription_id = stripe_subscription
        start = end = None

    subscription.tier = Tier(tier_value)
    subscription.status = status
    # Bounds of an earlier subscription must not outlive it; None falls back to the month
    subscription.current_period_start = start
    subscription.current_period_end = end
    customer_id = session_data.get("customer")
    if customer_id and not subscription.stripe_customer_id:
        subscription.stripe_customer_id = customer_id
    await session.flush()

    await UsageTracker(session).align_period(trainer_id)

    logger.info("subscription_activated", trainer_id=trainer_id, tier=tier_value, status=status.value)
    return trainer_id


async def _handle_subscription_updated(session: AsyncSession, subscription_data: dict) -> str | None:
    """Sync tier, status and billing period from Stripe."""
    customer_id = subscription_data.get("customer")
    if not customer_id:
        return None

    status = STRIPE_STATUS_MAP.get(subscription_data.get("status"), SubscriptionStatus.PAST_DUE)
    tier = _tier_from_subscription(subscription_data)

    subscription = await _get_by_customer(session, customer_id)
    if subscription is None:
        logger.warning("subscription_updated_unknown_customer", customer_id=customer_id)
        return None

    previous_tier = str(subscription.tier)
    if tier is not None:
        subscription.tier = tier
    subscription.status = status
    subscription.stripe_subscription_id = subscription_data.get("id")
    start, end = _period_bounds(subscription_data)
    if start and end:
        subscription.current_period_start = start
        subscription.current_period_end = end
    subscription.cancel_at_period_end = bool(subscription_data.get("cancel_at_period_end"))
    subscription.trial_end = _timestamp(subscription_data.get("trial_end"))
    trainer_id = subscription.trainer_id
    await session.flush()

    await UsageTracker(session).align_period(trainer_id)

    logger.info(
        "subscription_synced",
        trainer_id=trainer_id,
        previous_tier=previous_tier,
        tier=tier.value if tier else previous_tier,
        status=status.value,
    )
    return trainer_id


async def _handle_subscription_deleted(session: AsyncSession, subscription_data: dict) -> str | None:
    """Mark the subscription canceled; the row is kept for history."""
    customer_id = subscription_data.get("customer")
    if not customer_id:
        return None

    subscription = await _get_by_customer(session, customer_id)
    if subscription is None:
        logger.warning("subscription_deleted_unknown_customer", customer_id=customer_id)
        return None

    subscription.status = SubscriptionStatus.CANCELED
    subscription.cancel_at_period_end = False
    logger.info("subscription_canceled", trainer_id=subscription.trainer_id, customer_id=customer_id)
    return subscription.trainer_id


async def _handle_payment_succeeded(session: AsyncSession, invoice: dict) -> str | None:
    """Restore an active status once an invoice is paid."""
    customer_id = invoice.get("customer")
    if not customer_id:
        return None

    subscription = await _get_by_customer(session, customer_id)
    if subscription is None:
        return None
    if subscription.status == SubscriptionStatus.CANCELED:
        logger.info("payment_succeeded_for_canceled_subscription", trainer_id=subscription.trainer_id)
        return None

    subscription.status = SubscriptionStatus.ACTIVE
    logger.info("payment_succeeded", trainer_id=subscription.trainer_id)
    return subscription.trainer_id


async def _handle_payment_failed(session: AsyncSession, invoice: dict) -> str | None:
    """Move to past_due on payment failure; entitlements drop to baseline immediately."""
    customer_id = invoice.get("customer")
    if not customer_id:
        return None

    subscription = await _get_by_customer(session, customer_id)
    if subscription is None:
        return None

    subscription.status = SubscriptionStatus.PAST_DUE
    # Keep stripe_subscription_id: Stripe may still recover the subscription
    logger.info(
        "payment_failed_restricted_to_baseline", trainer_id=subscription.trainer_id, customer_id=customer_id
    )
    return subscription.trainer_id


async def _handle_trial_will_end(session: AsyncSession, subscription_data: dict) -> str | None:
    logger.info(
        "trial_will_end",
        customer_id=subscription_data.get("customer"),
        trial_end=subscription_data.get("trial_end"),
    )
    return None


WEBHOOK_HANDLERS: dict[str, Callable[[AsyncSession, dict], Awaitable[str | None]]] = {
    "checkout.session.completed": _handle_checkout_completed,
    "customer.subscription.updated": _handle_subscription_updated,
    "customer.subscription.deleted": _handle_subscription_deleted,
    "invoice.payment_succeeded": _handle_payment_succeeded,
    "invoice.payment_failed": _handle_payment_failed,
    "customer.subscription.trial_will_end": _handle_trial_will_end,
}
