"""
Stripe payment provider implementation.

Implements PaymentProvider using the Stripe API: one-time premium checkout,
webhook signature verification and checkout session retrieval.
"""
import json
import logging
from typing import Dict, Any, Optional
import stripe

from lifelessons.core.config import Settings, settings as default_settings
from lifelessons.features.billing.provider import (
    BillingProviderError,
    BillingWebhookError,
    CheckoutLink,
)

logger = logging.getLogger("lifelessons")


def _as_dict(obj: Any) -> Dict[str, Any]:
    """Normalize a StripeObject (or plain dict) into nested plain dicts."""
    if isinstance(obj, dict) and not hasattr(obj, "to_dict"):
        return obj
    for attr in ("to_dict", "to_dict_recursive"):
        fn = getattr(obj, attr, None)
        if callable(fn):
            return fn()
    return dict(obj)


class StripeProvider:
    """Stripe implementation of PaymentProvider protocol."""

    def __init__(
        self,
        secret_key: Optional[str] = None,
        webhook_secret: Optional[str] = None,
        settings: Optional[Settings] = None,
    ):
        """
        Initialize Stripe provider.

        Args:
            secret_key: Stripe secret key (defaults to settings.STRIPE_SECRET_KEY)
            webhook_secret: Stripe webhook secret (defaults to settings.STRIPE_WEBHOOK_SECRET)
            settings: Settings carrying the premium line item and tolerance
        """
        self.settings = settings or default_settings
        self.secret_key = secret_key or self.settings.STRIPE_SECRET_KEY
        self.webhook_secret = webhook_secret or self.settings.STRIPE_WEBHOOK_SECRET
        self.tolerance = self.settings.STRIPE_WEBHOOK_TOLERANCE

        if not self.secret_key:
            raise BillingProviderError("STRIPE_SECRET_KEY not configured")

        stripe.api_key = self.secret_key

    def create_checkout_session(
        self,
        *,
        uid: str,
        email: str,
        success_url: str,
        cancel_url: str,
    ) -> CheckoutLink:
        """Create a one-time payment Stripe checkout session for premium."""
        cfg = self.settings
        try:
            session = stripe.checkout.Session.create(
                mode="payment",
                payment_method_types=["card"],
                customer_email=email,
                line_items=[
                    {
                        "price_data": {
                            "currency": cfg.PREMIUM_CURRENCY,
                            "product_data": {
                                "name": cfg.PREMIUM_PRODUCT_NAME,
                                "description": cfg.PREMIUM_PRODUCT_DESCRIPTION,
                            },
                            "unit_amount": cfg.PREMIUM_PRICE_AMOUNT,
                        },
                        "quantity": 1,
                    }
                ],
                metadata={"uid": uid, "email": email},
                success_url=success_url,
                cancel_url=cancel_url,
            )
        except stripe.StripeError as e:
            raise BillingProviderError(f"Stripe checkout session creation failed: {e}")
        return CheckoutLink(session_id=session.id, url=session.url)

    def construct_event(self, body: bytes, signature: Optional[str]) -> Dict[str, Any]:
        """Verify Stripe webhook signature over the raw body and parse event."""
        if not self.webhook_secret:
            raise BillingWebhookError("STRIPE_WEBHOOK_SECRET not configured")
        if not signature:
            raise BillingWebhookError("Missing stripe-signature header")

        try:
            stripe.Webhook.construct_event(
                body, signature, self.webhook_secret, tolerance=self.tolerance
            )
            # Verified; re-parse the same bytes so handlers get plain dicts
            return json.loads(body)
        except ValueError as e:
            raise BillingWebhookError(f"Invalid payload: {e}")
        except stripe.SignatureVerificationError as e:
            raise BillingWebhookError(f"Invalid signature: {e}")

    def retrieve_session(self, session_id: str) -> Dict[str, Any]:
        """Retrieve the authoritative checkout session from Stripe."""
        try:
            session = stripe.checkout.Session.retrieve(session_id)
        except stripe.StripeError as e:
            logger.warning(
                "stripe.session.retrieve_failed",
                extra={"session_id": session_id, "error_code": "provider_error"},
            )
            raise BillingProviderError(f"Stripe session retrieval failed: {e}")
        return _as_dict(session)
