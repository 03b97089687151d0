"""Error normalization and handlers."""

import logging
import builtins
from typing import Optional
from uuid import uuid4

from starlette.exceptions import HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.requests import Request

from lifelessons.core.logging import get_request_id


class AppError(Exception):
    code = "app_error"
    status_code = 500

    def __init__(self, message: str, *, code: Optional[str] = None, status_code: Optional[int] = None, request_id: Optional[str] = None):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code
        if status_code:
            self.status_code = status_code
        self.request_id = request_id


class ValidationError(AppError, ValueError):
    code = "validation_error"
    status_code = 400


class PreconditionError(AppError):
    """Request is well-formed but the current state does not allow it."""
    code = "precondition_failed"
    status_code = 400


class AuthenticityError(AppError):
    """Webhook payload failed signature verification."""
    code = "invalid_signature"
    status_code = 400


class UnauthorizedError(AppError):
    code = "unauthorized"
    status_code = 401


class PermissionError(AppError, builtins.PermissionError):
    code = "forbidden"
    status_code = 403


class NotFoundError(AppError, ValueError):
    code = "not_found"
    status_code = 404


class UserNotFoundError(NotFoundError):
    code = "user_not_found"

    def __init__(self, uid: str, message: Optional[str] = None):
        super().__init__(message or "User not found")
        self.uid = uid


class PaymentProviderError(AppError):
    code = "provider_error"
    status_code = 502


class StoreNotReadyError(AppError):
    """Store connection has not completed yet; callers should retry."""
    code = "store_not_ready"
    status_code = 503

    def __init__(self, message: str = "DB not ready", **kwargs):
        super().__init__(message, **kwargs)


class StoreUnavailableError(AppError):
    """Store was ready but an operation could not reach it; retryable."""
    code = "store_unavailable"
    status_code = 503


class BillingDisabledError(AppError):
    code = "billing_disabled"
    status_code = 503

    def __init__(self, message: str = "Stripe is not configured. Set STRIPE_SECRET_KEY environment variable.", **kwargs):
        super().__init__(message, **kwargs)


def _extract_request_id(request: Request, fallback: Optional[str] = None) -> str:
    return (
        getattr(request.state, "request_id", None)
        or get_request_id()
        or fallback
        or str(uuid4())
    )


def _error_payload(code: str, message: str, request_id: str) -> dict:
    return {
        "message": message,
        "error": {"code": code, "message": message, "request_id": request_id},
        "detail": message,
    }


async def app_error_handler(request: Request, exc: AppError):
    rid = exc.request_id or _extract_request_id(request)
    payload = _error_payload(exc.code, exc.message, rid)
    logger = logging.getLogger("lifelessons")
    log_level = logging.ERROR if exc.status_code >= 500 else logging.WARNING
    logger.log(
        log_level,
        "app.error",
        extra={"request_id": rid, "error_code": exc.code, "error_message": exc.message, "status": exc.status_code},
    )
    response = JSONResponse(status_code=exc.status_code, content=payload)
    response.headers["x-request-id"] = rid
    return response


async def http_error_handler(request: Request, exc: HTTPException):
    rid = _extract_request_id(request)
    code = "not_found" if exc.status_code == 404 else "http_error"
    message = exc.detail if isinstance(exc.detail, str) and exc.detail else "HTTP error"
    payload = _error_payload(code, message, rid)
    logger = logging.getLogger("lifelessons")
    logger.warning("http.error", extra={"request_id": rid, "error_code": code, "status": exc.status_code})
    response = JSONResponse(status_code=exc.status_code, content=payload)
    response.headers["x-request-id"] = rid
    return response


async def request_validation_error_handler(request: Request, exc: RequestValidationError):
    """Missing or malformed body fields are a 400, matching the rest of the contract."""
    rid = _extract_request_id(request)
    fields = []
    model_errors = []
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path", "header")]
        if loc:
            fields.append(".".join(loc))
        elif err.get("msg"):
            # Model-level validators carry no field location
            model_errors.append(str(err["msg"]).removeprefix("Value error, "))
    if fields:
        message = f"Invalid or missing fields: {', '.join(fields)}"
    elif model_errors:
        message = "; ".join(model_errors)
    else:
        message = "Invalid request"
    payload = _error_payload("validation_error", message, rid)
    logging.getLogger("lifelessons").warning(
        "validation.error", extra={"request_id": rid, "error_code": "validation_error", "status": 400}
    )
    response = JSONResponse(status_code=400, content=payload)
    response.headers["x-request-id"] = rid
    return response


async def unhandled_exception_handler(request: Request, exc: Exception):
    rid = _extract_request_id(request)
    logger = logging.getLogger("lifelessons")
    logger.error("unhandled.exception", exc_info=exc, extra={"request_id": rid, "error_code": "internal_error"})
    payload = _error_payload("internal_error", "Unexpected error", rid)
    response = JSONResponse(status_code=500, content=payload)
    response.headers["x-request-id"] = rid
    return response
