"""
Admin authorization (role flag check).

The caller names itself with the X-User-Id header (the web client forwards the
signed-in uid); the request is allowed when that user's role is "admin".
Identity verification is out of scope here: this is a flag check only.
"""
import logging
from dataclasses import dataclass
from typing import Optional
from fastapi import Request
from sqlalchemy import select

from lifelessons.core.database import StoreContext, users
from lifelessons.core.errors import PermissionError, UnauthorizedError

ADMIN_HEADER = "X-User-Id"

logger = logging.getLogger("lifelessons")


@dataclass
class AdminActor:
    """Represents an authorized admin caller."""
    uid: str
    email: Optional[str] = None


def get_admin_actor(request: Request, store: StoreContext) -> Optional[AdminActor]:
    """
    Resolve the admin behind the request.
    Returns AdminActor or None (does not raise on a non-admin caller).
    """
    uid = request.headers.get(ADMIN_HEADER, "").strip()
    if not uid:
        return None
    with store.session() as session:
        row = session.execute(
            select(users.c.uid, users.c.email, users.c.role).where(users.c.uid == uid)
        ).first()
    if row is None or row.role != "admin":
        return None
    return AdminActor(uid=row.uid, email=row.email)


def require_admin_auth(request: Request, store: StoreContext) -> AdminActor:
    """
    Require an admin caller.

    Raises:
        UnauthorizedError: X-User-Id header missing (401)
        PermissionError: caller unknown or not an admin (403)
    """
    if not request.headers.get(ADMIN_HEADER, "").strip():
        raise UnauthorizedError(f"{ADMIN_HEADER} header required")

    actor = get_admin_actor(request, store)
    if actor is None:
        logger.warning(
            "admin.auth.denied",
            extra={"uid": request.headers.get(ADMIN_HEADER), "error_code": "forbidden", "path": request.url.path},
        )
        raise PermissionError("Admin access required")
    return actor
