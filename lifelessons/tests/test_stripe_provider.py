"""
StripeProvider against the real stripe SDK (signature math) with API calls mocked.
"""
import time
from unittest.mock import MagicMock, patch

import pytest
import stripe
from fastapi.testclient import TestClient
from sqlalchemy import select

from lifelessons.core.database import payments
from lifelessons.features.billing.provider import BillingProviderError, BillingWebhookError
from lifelessons.features.billing.stripe_provider import StripeProvider
from lifelessons.main import create_app
from lifelessons.tests.mocks import TEST_WEBHOOK_SECRET, checkout_session, stripe_signature, webhook_event


@pytest.fixture
def stripe_provider(test_settings):
    return StripeProvider(settings=test_settings)


def test_requires_secret_key(test_settings):
    cfg = test_settings.model_copy(update={"STRIPE_SECRET_KEY": None})
    with pytest.raises(BillingProviderError):
        StripeProvider(settings=cfg)


def test_valid_signature_returns_plain_event(stripe_provider):
    body = webhook_event(checkout_session("sess_123", uid="u1"))

    event = stripe_provider.construct_event(body, stripe_signature(body))

    assert event["type"] == "checkout.session.completed"
    assert event["data"]["object"]["id"] == "sess_123"
    assert isinstance(event["data"]["object"]["metadata"], dict)


def test_tampered_body_rejected(stripe_provider):
    body = webhook_event(checkout_session("sess_123", uid="u1"))
    signature = stripe_signature(body)
    tampered = body.replace(b"u1", b"u2")

    with pytest.raises(BillingWebhookError, match="Invalid signature"):
        stripe_provider.construct_event(tampered, signature)


def test_wrong_secret_rejected(stripe_provider):
    body = webhook_event(checkout_session("sess_123", uid="u1"))
    with pytest.raises(BillingWebhookError):
        stripe_provider.construct_event(body, stripe_signature(body, secret="whsec_other"))


def test_stale_timestamp_rejected(stripe_provider):
    body = webhook_event(checkout_session("sess_123", uid="u1"))
    old = int(time.time()) - 3600
    with pytest.raises(BillingWebhookError):
        stripe_provider.construct_event(body, stripe_signature(body, timestamp=old))


def test_missing_header_rejected(stripe_provider):
    with pytest.raises(BillingWebhookError, match="Missing stripe-signature"):
        stripe_provider.construct_event(b"{}", None)


def test_missing_webhook_secret_rejected(test_settings):
    cfg = test_settings.model_copy(update={"STRIPE_WEBHOOK_SECRET": None})
    provider = StripeProvider(settings=cfg)
    body = webhook_event(checkout_session("sess_123", uid="u1"))
    with pytest.raises(BillingWebhookError, match="not configured"):
        provider.construct_event(body, stripe_signature(body))


def test_checkout_session_arguments(stripe_provider, test_settings):
    fake = MagicMock(id="cs_test_1", url="https://checkout.stripe.com/c/pay/cs_test_1")
    with patch("stripe.checkout.Session.create", return_value=fake) as create:
        link = stripe_provider.create_checkout_session(
            uid="u1",
            email="u1@example.com",
            success_url="http://app/success",
            cancel_url="http://app/cancel",
        )

    assert link.session_id == "cs_test_1"
    assert link.url == "https://checkout.stripe.com/c/pay/cs_test_1"
    kwargs = create.call_args.kwargs
    assert kwargs["mode"] == "payment"
    assert kwargs["customer_email"] == "u1@example.com"
    assert kwargs["metadata"] == {"uid": "u1", "email": "u1@example.com"}
    price = kwargs["line_items"][0]["price_data"]
    assert price["unit_amount"] == test_settings.PREMIUM_PRICE_AMOUNT
    assert price["currency"] == test_settings.PREMIUM_CURRENCY
    assert kwargs["success_url"] == "http://app/success"


def test_checkout_failure_wrapped(stripe_provider):
    with patch("stripe.checkout.Session.create", side_effect=stripe.StripeError("card network down")):
        with pytest.raises(BillingProviderError):
            stripe_provider.create_checkout_session(uid="u1", email="e", success_url="s", cancel_url="c")


def test_retrieve_session_returns_dict(stripe_provider):
    session = stripe.checkout.Session.construct_from(checkout_session("sess_123", uid="u1"), "sk_test_123")
    with patch("stripe.checkout.Session.retrieve", return_value=session) as retrieve:
        data = stripe_provider.retrieve_session("sess_123")

    retrieve.assert_called_once_with("sess_123")
    assert data["id"] == "sess_123"
    assert data["metadata"]["uid"] == "u1"


def test_retrieve_failure_wrapped(stripe_provider):
    with patch("stripe.checkout.Session.retrieve", side_effect=stripe.InvalidRequestError("No such session", "id")):
        with pytest.raises(BillingProviderError, match="retrieval failed"):
            stripe_provider.retrieve_session("sess_missing")


def test_webhook_route_with_real_signature(test_settings, store, make_user):
    make_user("u1")
    app = create_app(settings=test_settings, store=store)
    body = webhook_event(checkout_session("sess_123", uid="u1"))

    with TestClient(app) as client:
        ok = client.post("/webhook", content=body, headers={"Stripe-Signature": stripe_signature(body, TEST_WEBHOOK_SECRET)})
        bad = client.post("/webhook", content=body, headers={"Stripe-Signature": "t=1,v1=deadbeef"})

    assert ok.status_code == 200
    assert bad.status_code == 400
    with store.session() as session:
        assert len(session.execute(select(payments)).fetchall()) == 1
