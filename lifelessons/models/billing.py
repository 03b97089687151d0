"""
Billing wire models: premium checkout, confirmation and payment records.
"""

from datetime import datetime
from typing import Optional
from pydantic import Field

from lifelessons.models.base import CamelModel


class PaymentRecord(CamelModel):
    """One row per checkout session that was applied to the ledger."""

    uid: str
    email: Optional[str] = None
    stripe_session_id: str
    stripe_payment_intent_id: Optional[str] = None
    amount: Optional[int] = None
    currency: Optional[str] = None
    status: str = "paid"
    created_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, row) -> "PaymentRecord":
        data = dict(row._mapping)
        data.pop("id", None)
        return cls.model_validate(data)


class CheckoutRequest(CamelModel):
    uid: str = Field(min_length=1)
    email: str = Field(min_length=1)


class CheckoutResponse(CamelModel):
    url: str


class ConfirmRequest(CamelModel):
    session_id: str = Field(min_length=1)


class ConfirmResponse(CamelModel):
    ok: bool = True
    is_premium: bool
    already_applied: bool


class WebhookAck(CamelModel):
    received: bool = True
