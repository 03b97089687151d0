"""
FastAPI dependencies shared by the routers.

Everything is read from app.state, which create_app fills once; tests swap in
their own store or provider through create_app arguments or dependency_overrides.
"""
from fastapi import Depends, Request

from lifelessons.core.admin_auth import AdminActor, require_admin_auth
from lifelessons.core.config import Settings
from lifelessons.core.database import StoreContext
from lifelessons.core.errors import BillingDisabledError
from lifelessons.features.billing.provider import PaymentProvider
from lifelessons.features.billing.reconciler import CheckoutReconciler
from lifelessons.features.entitlements.ledger import EntitlementLedger


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_store(request: Request) -> StoreContext:
    return request.app.state.store


def get_ready_store(store: StoreContext = Depends(get_store)) -> StoreContext:
    """Store-bound routes: 503 until the background connect has finished."""
    store.ensure_ready()
    return store


def get_provider(request: Request) -> PaymentProvider:
    provider = getattr(request.app.state, "provider", None)
    if provider is None:
        raise BillingDisabledError()
    return provider


def get_ledger(store: StoreContext = Depends(get_ready_store)) -> EntitlementLedger:
    return EntitlementLedger(store)


def get_reconciler(
    store: StoreContext = Depends(get_store),
    provider: PaymentProvider = Depends(get_provider),
) -> CheckoutReconciler:
    # Readiness is checked inside the reconciler, ahead of signature verification
    return CheckoutReconciler(store, provider)


def require_admin(request: Request, store: StoreContext = Depends(get_ready_store)) -> AdminActor:
    return require_admin_auth(request, store)
