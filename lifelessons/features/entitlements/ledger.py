"""
Entitlement ledger: the premium flag and the payment records behind it.

apply_paid_checkout is the single transition every confirmation path goes
through. It runs two independent writes:

1. users: is_premium = true (premium_since kept from the first grant)
2. payments: insert-if-absent keyed by stripe_session_id

The UNIQUE constraint on payments.stripe_session_id is the idempotency key, so
concurrent or repeated calls converge on exactly one record. If (2) fails after
(1) committed, the user is premium without a record until the next retry.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List
from sqlalchemy import select, insert, update, func
from sqlalchemy.exc import IntegrityError

from lifelessons.core.database import StoreContext, users, payments
from lifelessons.core.errors import UserNotFoundError
from lifelessons.core.logging import log_event
from lifelessons.features.billing.provider import CheckoutSessionFacts
from lifelessons.models.billing import PaymentRecord


@dataclass(frozen=True)
class LedgerResult:
    already_applied: bool
    is_premium: bool


class EntitlementLedger:
    def __init__(self, store: StoreContext):
        self.store = store

    def apply_paid_checkout(self, uid: str, facts: CheckoutSessionFacts) -> LedgerResult:
        """
        Mark `uid` premium and record the payment for `facts.session_id`.

        Safe to call any number of times with the same facts.

        Raises:
            ValueError: uid is empty
            UserNotFoundError: no user with this uid (nothing is written)
            StoreNotReadyError / StoreUnavailableError: store not usable (retryable)
        """
        if not uid:
            raise ValueError("uid is required")

        now = datetime.now(timezone.utc)
        with self.store.session() as session:
            result = session.execute(
                update(users)
                .where(users.c.uid == uid)
                .values(
                    is_premium=True,
                    premium_since=func.coalesce(users.c.premium_since, now),
                    updated_at=now,
                )
            )
            if result.rowcount == 0:
                raise UserNotFoundError(uid)
            is_premium = bool(
                session.execute(select(users.c.is_premium).where(users.c.uid == uid)).scalar()
            )

        already_applied = False
        try:
            with self.store.session() as session:
                session.execute(
                    insert(payments).values(
                        uid=uid,
                        email=facts.email,
                        stripe_session_id=facts.session_id,
                        stripe_payment_intent_id=facts.payment_intent_id,
                        amount=facts.amount,
                        currency=facts.currency,
                        status="paid",
                        created_at=now,
                    )
                )
        except IntegrityError:
            # Duplicate key - UNIQUE constraint on stripe_session_id
            already_applied = True

        log_event(
            "info",
            "ledger.checkout.duplicate" if already_applied else "ledger.checkout.applied",
            uid=uid,
            session_id=facts.session_id,
            extra={"amount": facts.amount, "currency": facts.currency},
        )
        return LedgerResult(already_applied=already_applied, is_premium=is_premium)

    def payments_for(self, uid: str) -> List[PaymentRecord]:
        """Payment records for `uid`, newest first."""
        with self.store.session() as session:
            rows = session.execute(
                select(payments)
                .where(payments.c.uid == uid)
                .order_by(payments.c.created_at.desc(), payments.c.id.desc())
            ).fetchall()
        return [PaymentRecord.from_row(row) for row in rows]
