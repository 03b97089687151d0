"""
Payment provider protocol.

Defines the interface the checkout service and the reconciler depend on, so
the Stripe SDK stays behind one seam and tests can substitute a fake.
"""
from typing import Protocol, Dict, Any, Optional
from dataclasses import dataclass


@dataclass(frozen=True)
class CheckoutLink:
    """A freshly created provider checkout session."""
    session_id: str
    url: str


@dataclass(frozen=True)
class CheckoutSessionFacts:
    """
    Provider checkout session, normalized to the fields the ledger consumes.

    `uid` is taken only from the session metadata; email falls back from
    metadata to customer_details to customer_email.
    """
    session_id: str
    payment_status: Optional[str]
    uid: Optional[str]
    email: Optional[str]
    amount: Optional[int]
    currency: Optional[str]
    payment_intent_id: Optional[str]

    @property
    def paid(self) -> bool:
        return self.payment_status == "paid"

    @classmethod
    def from_session(cls, session: Dict[str, Any]) -> "CheckoutSessionFacts":
        metadata = session.get("metadata") or {}
        customer_details = session.get("customer_details") or {}
        email = (
            metadata.get("email")
            or customer_details.get("email")
            or session.get("customer_email")
        )
        payment_intent = session.get("payment_intent")
        if isinstance(payment_intent, dict):
            # Expanded payment_intent object
            payment_intent = payment_intent.get("id")
        return cls(
            session_id=session.get("id") or "",
            payment_status=session.get("payment_status"),
            uid=metadata.get("uid") or None,
            email=email or None,
            amount=session.get("amount_total"),
            currency=session.get("currency"),
            payment_intent_id=payment_intent,
        )


class PaymentProvider(Protocol):
    """
    Protocol for payment providers.

    Implementations must handle:
    - One-time checkout session creation
    - Webhook signature verification over the raw body
    - Authoritative session retrieval (server-to-server)
    """

    def create_checkout_session(
        self,
        *,
        uid: str,
        email: str,
        success_url: str,
        cancel_url: str,
    ) -> CheckoutLink:
        """
        Create a one-time payment checkout session for the premium upgrade.

        Returns:
            CheckoutLink with the provider session id and redirect URL

        Raises:
            BillingProviderError: If session creation fails
        """
        ...

    def construct_event(self, body: bytes, signature: Optional[str]) -> Dict[str, Any]:
        """
        Verify the webhook signature and parse the event.

        Args:
            body: Raw request body, byte-for-byte as received
            signature: Value of the Stripe-Signature header

        Returns:
            Event as a plain dict ({"id", "type", "data": {"object": {...}}})

        Raises:
            BillingWebhookError: If the secret is missing, the signature is
                invalid or stale, or the payload is not JSON
        """
        ...

    def retrieve_session(self, session_id: str) -> Dict[str, Any]:
        """
        Fetch the checkout session from the provider.

        Raises:
            BillingProviderError: If the session cannot be retrieved
        """
        ...


class BillingProviderError(Exception):
    """Base exception for billing provider errors."""
    pass


class BillingWebhookError(BillingProviderError):
    """Exception for webhook verification errors."""
    pass
