"""
Checkout reconciler.

Two entry points converge on EntitlementLedger.apply_paid_checkout:

- handle_webhook: provider push (checkout.session.completed), signature-verified
- confirm_session: client return from checkout; the session is re-fetched from
  the provider and only a provider-reported "paid" status is trusted

Per checkout session:

    Created --webhook (verified, completed)--> ConfirmedByWebhook
    Created --confirm (provider says paid)---> ConfirmedByClient
    Confirmed* --ledger--------------------------> Applied
    Applied --duplicate delivery or poll-------> Applied (no-op)
"""
from dataclasses import dataclass
from typing import Optional

from lifelessons.core.database import StoreContext
from lifelessons.core.errors import (
    AuthenticityError,
    PaymentProviderError,
    PreconditionError,
    UserNotFoundError,
)
from lifelessons.core.logging import log_event
from lifelessons.features.billing.provider import (
    BillingProviderError,
    BillingWebhookError,
    CheckoutSessionFacts,
    PaymentProvider,
)
from lifelessons.features.entitlements.ledger import EntitlementLedger

# Both mean "the money for this session has arrived"
PAID_EVENT_TYPES = frozenset({
    "checkout.session.completed",
    "checkout.session.async_payment_succeeded",
})


@dataclass(frozen=True)
class WebhookOutcome:
    event_id: Optional[str]
    event_type: Optional[str]
    applied: bool
    already_applied: bool = False
    reason: Optional[str] = None


@dataclass(frozen=True)
class ConfirmationOutcome:
    session_id: str
    uid: str
    is_premium: bool
    already_applied: bool


class CheckoutReconciler:
    def __init__(self, store: StoreContext, provider: PaymentProvider, ledger: Optional[EntitlementLedger] = None):
        self.store = store
        self.provider = provider
        self.ledger = ledger or EntitlementLedger(store)

    def handle_webhook(self, body: bytes, signature: Optional[str]) -> WebhookOutcome:
        """
        Process a provider webhook delivery.

        Order matters: readiness first (a 503 makes the provider redeliver),
        then authenticity, then the ledger. Verified events that cannot be
        applied (other types, not paid, no uid, unknown user) are acknowledged so
        the provider does not retry them forever.

        Raises:
            StoreNotReadyError: store not connected yet
            AuthenticityError: signature missing, invalid or outside tolerance
            StoreUnavailableError: store failed mid-apply (provider retries)
        """
        self.store.ensure_ready()

        try:
            event = self.provider.construct_event(body, signature)
        except BillingWebhookError as e:
            log_event("warning", "billing.webhook.rejected", error_code="invalid_signature", extra={"reason": str(e)})
            raise AuthenticityError(f"Webhook Error: {e}")

        event_id = event.get("id")
        event_type = event.get("type")
        if event_type not in PAID_EVENT_TYPES:
            log_event("info", "billing.webhook.ignored", event_type=event_type, extra={"event_id": event_id})
            return WebhookOutcome(event_id, event_type, applied=False, reason="ignored_event_type")

        session_obj = (event.get("data") or {}).get("object") or {}
        facts = CheckoutSessionFacts.from_session(session_obj)

        if not facts.session_id:
            log_event("warning", "billing.webhook.malformed", event_type=event_type, extra={"event_id": event_id})
            return WebhookOutcome(event_id, event_type, applied=False, reason="missing_session_id")

        if not facts.paid:
            # Delayed payment method; async_payment_succeeded applies it later
            log_event("info", "billing.webhook.awaiting_payment", session_id=facts.session_id, event_type=event_type)
            return WebhookOutcome(event_id, event_type, applied=False, reason="unpaid")

        if not facts.uid:
            log_event("warning", "billing.webhook.missing_uid", session_id=facts.session_id, event_type=event_type)
            return WebhookOutcome(event_id, event_type, applied=False, reason="missing_uid")

        try:
            result = self.ledger.apply_paid_checkout(facts.uid, facts)
        except UserNotFoundError:
            log_event(
                "warning",
                "billing.webhook.unknown_user",
                uid=facts.uid,
                session_id=facts.session_id,
                event_type=event_type,
                error_code="user_not_found",
            )
            return WebhookOutcome(event_id, event_type, applied=False, reason="unknown_user")

        log_event(
            "info",
            "billing.webhook.applied",
            uid=facts.uid,
            session_id=facts.session_id,
            event_type=event_type,
            extra={"already_applied": result.already_applied},
        )
        return WebhookOutcome(event_id, event_type, applied=True, already_applied=result.already_applied)

    def confirm_session(self, session_id: str) -> ConfirmationOutcome:
        """
        Client-side fallback when the webhook is late or lost.

        Raises:
            StoreNotReadyError: store not connected yet
            PaymentProviderError: provider could not return the session
            PreconditionError: session not paid, or carries no uid
            UserNotFoundError: session uid does not match a user
        """
        self.store.ensure_ready()

        try:
            session_obj = self.provider.retrieve_session(session_id)
        except BillingProviderError as e:
            raise PaymentProviderError(str(e))

        facts = CheckoutSessionFacts.from_session(session_obj)
        if not facts.paid:
            log_event(
                "info",
                "billing.confirm.not_paid",
                session_id=session_id,
                extra={"payment_status": facts.payment_status},
            )
            raise PreconditionError("Payment not completed", code="payment_not_completed")
        if not facts.uid:
            log_event("warning", "billing.confirm.missing_uid", session_id=session_id)
            raise PreconditionError("Checkout session has no uid", code="missing_uid")

        result = self.ledger.apply_paid_checkout(facts.uid, facts)
        log_event(
            "info",
            "billing.confirm.applied",
            uid=facts.uid,
            session_id=facts.session_id,
            extra={"already_applied": result.already_applied},
        )
        return ConfirmationOutcome(
            session_id=facts.session_id,
            uid=facts.uid,
            is_premium=result.is_premium,
            already_applied=result.already_applied,
        )
