"""
User API routes.

- POST /users/upsert: create on first login, refresh profile afterwards
- GET  /users/plan/{uid}: premium flag + role
- GET  /users/{uid}/payments: payment history
"""
from typing import List
from fastapi import APIRouter, Depends

from lifelessons.api.deps import get_ledger, get_ready_store
from lifelessons.core.database import StoreContext
from lifelessons.features.entitlements.ledger import EntitlementLedger
from lifelessons.features.users import service as user_service
from lifelessons.models.billing import PaymentRecord
from lifelessons.models.user import PlanResponse, User, UserUpsertRequest

router = APIRouter(prefix="/users", tags=["users"])


@router.post("/upsert", response_model=User)
def upsert_user(body: UserUpsertRequest, store: StoreContext = Depends(get_ready_store)):
    return user_service.upsert_user(store, body)


@router.get("/plan/{uid}", response_model=PlanResponse)
def get_plan(uid: str, store: StoreContext = Depends(get_ready_store)):
    return user_service.get_plan(store, uid)


@router.get("/{uid}/payments", response_model=List[PaymentRecord])
def list_payments(uid: str, ledger: EntitlementLedger = Depends(get_ledger)):
    return ledger.payments_for(uid)
