"""
Billing API routes.

Minimal surface:
- POST /create-checkout-session: Create premium checkout session
- POST /payments/confirm: Client-side confirmation after checkout redirect
- POST /webhook: Handle Stripe webhooks (raw body, signature verified)
"""
from typing import Optional
from fastapi import APIRouter, Depends, Header, Request
from starlette.concurrency import run_in_threadpool

from lifelessons.api.deps import get_provider, get_ready_store, get_reconciler, get_settings
from lifelessons.core.config import Settings
from lifelessons.core.database import StoreContext
from lifelessons.features.billing.provider import PaymentProvider
from lifelessons.features.billing.reconciler import CheckoutReconciler
from lifelessons.features.billing.service import start_checkout
from lifelessons.models.billing import (
    CheckoutRequest,
    CheckoutResponse,
    ConfirmRequest,
    ConfirmResponse,
    WebhookAck,
)

router = APIRouter(tags=["billing"])


@router.post("/create-checkout-session", response_model=CheckoutResponse)
def create_checkout(
    body: CheckoutRequest,
    store: StoreContext = Depends(get_ready_store),
    provider: PaymentProvider = Depends(get_provider),
    settings: Settings = Depends(get_settings),
):
    """
    Create Stripe checkout session for the lifetime premium upgrade.

    Returns:
        {"url": "https://checkout.stripe.com/..."}

    Errors:
        400: uid/email missing, or user already premium
        404: User never upserted
        502: Stripe API error
        503: Store not ready, or billing disabled
    """
    url = start_checkout(store, provider, body.uid, body.email, settings)
    return CheckoutResponse(url=url)


@router.post("/payments/confirm", response_model=ConfirmResponse)
def confirm_payment(body: ConfirmRequest, reconciler: CheckoutReconciler = Depends(get_reconciler)):
    """
    Confirm a checkout from the success page (fallback when the webhook is late).

    The session is re-fetched from Stripe; the client's word is never trusted.

    Errors:
        400: sessionId missing, payment not completed, or session has no uid
        404: Session uid does not match a user
        502: Stripe API error
        503: Store not ready, or billing disabled
    """
    outcome = reconciler.confirm_session(body.session_id)
    return ConfirmResponse(ok=True, is_premium=outcome.is_premium, already_applied=outcome.already_applied)


@router.post("/webhook", response_model=WebhookAck)
async def handle_webhook(
    request: Request,
    stripe_signature: Optional[str] = Header(None),
    reconciler: CheckoutReconciler = Depends(get_reconciler),
):
    """
    Handle Stripe webhook events.

    Signature verification runs over the exact raw body using STRIPE_WEBHOOK_SECRET.
    Duplicate deliveries are absorbed by the unique stripe_session_id on payments.

    Returns:
        {"received": true}

    Errors:
        400: Invalid signature or payload
        503: Store not ready or unavailable (Stripe retries), or billing disabled
    """
    # Read raw body (required for signature verification)
    body = await request.body()
    await run_in_threadpool(reconciler.handle_webhook, body, stripe_signature)
    return WebhookAck(received=True)
