"""
Premium checkout service.

All Stripe-specific code is in stripe_provider.py; this module only applies the
preconditions and builds the redirect URLs.
"""
from typing import Optional
from sqlalchemy import select

from lifelessons.core.config import Settings, settings as default_settings
from lifelessons.core.database import StoreContext, users
from lifelessons.core.errors import PaymentProviderError, PreconditionError, UserNotFoundError
from lifelessons.core.logging import log_event
from lifelessons.features.billing.provider import BillingProviderError, PaymentProvider


def success_url(settings: Settings) -> str:
    # {CHECKOUT_SESSION_ID} is substituted by Stripe, not by us
    return f"{settings.CLIENT_URL.rstrip('/')}/payment-success?session_id={{CHECKOUT_SESSION_ID}}"


def cancel_url(settings: Settings) -> str:
    return f"{settings.CLIENT_URL.rstrip('/')}/payment-cancel"


def start_checkout(
    store: StoreContext,
    provider: PaymentProvider,
    uid: str,
    email: str,
    settings: Optional[Settings] = None,
) -> str:
    """
    Start a one-time premium checkout for an existing, non-premium user.

    Returns:
        Checkout URL

    Raises:
        UserNotFoundError: user never upserted
        PreconditionError: user is already premium
        PaymentProviderError: checkout creation failed
    """
    cfg = settings or default_settings

    with store.session() as session:
        row = session.execute(
            select(users.c.uid, users.c.is_premium).where(users.c.uid == uid)
        ).first()

    if row is None:
        raise UserNotFoundError(uid, "User not found. Upsert first.")
    if row.is_premium:
        raise PreconditionError("Already premium", code="already_premium")

    try:
        link = provider.create_checkout_session(
            uid=uid,
            email=email,
            success_url=success_url(cfg),
            cancel_url=cancel_url(cfg),
        )
    except BillingProviderError as e:
        raise PaymentProviderError(str(e))

    log_event("info", "billing.checkout.created", uid=uid, session_id=link.session_id)
    return link.url
