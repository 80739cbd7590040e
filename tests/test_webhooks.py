"""Tests for the Stripe webhook endpoint.

Covers:
- Configuration and signature checks (nothing touches the DB unverified)
- checkout.session.completed -> paid, redelivery is a no-op
- checkout.session.expired / payment_intent.payment_failed -> failed
- Lookup by stored Stripe ids when metadata is missing
- First transition wins; later ones never overwrite it
- Unknown event types are acknowledged
- Handler exceptions roll back and return 500
"""

from unittest.mock import patch

import pytest
import stripe

from metalist import create_app
from metalist.extensions import db
from metalist.models.payment import ReleasePayment
from metalist.services.billing_service import (
    attach_stripe_ids,
    create_pending_payment,
    get_already_paid,
    transition_payment,
)

URL = "/api/stripe/webhook"
CONSTRUCT = "metalist.services.stripe_service.stripe.Webhook.construct_event"


def _pending(seed_data, tracks=3, session_id=None, intent_id=None):
    payment = create_pending_payment(
        release_id=seed_data["release_id"],
        band_id=seed_data["band_id"],
        user_id=seed_data["leader_id"],
        hosted_tracks=tracks,
        amount_cents=tracks * 200,
    )
    if session_id:
        attach_stripe_ids(payment.id, session_id, intent_id)
    db.session.commit()
    return payment.id


def _event(event_type, obj):
    return {"id": "evt_test", "type": event_type, "data": {"object": obj}}


def _post(client):
    return client.post(
        URL,
        data="{}",
        content_type="application/json",
        headers={"Stripe-Signature": "t=1,v1=valid"},
    )


def _status(payment_id):
    payment = db.session.get(ReleasePayment, payment_id)
    db.session.refresh(payment)
    return payment


class TestWebhookGuards:
    """Configuration and signature validation."""

    def test_not_configured(self):
        app = create_app("testing", overrides={"STRIPE_WEBHOOK_SECRET": None})
        with app.test_client() as c:
            resp = c.post(URL, data="{}", headers={"Stripe-Signature": "sig"})
        assert resp.status_code == 500
        assert resp.get_data(as_text=True) == "Stripe not configured"

    def test_missing_signature(self, client, seed_data):
        resp = client.post(URL, data="{}", content_type="application/json")
        assert resp.status_code == 400
        assert resp.get_data(as_text=True) == "Missing signature"

    @patch(CONSTRUCT)
    def test_invalid_signature(self, mock_construct, client, seed_data):
        payment_id = _pending(seed_data)
        mock_construct.side_effect = stripe.error.SignatureVerificationError(
            "No signatures found matching the expected signature", "sig"
        )

        resp = _post(client)

        assert resp.status_code == 400
        assert resp.get_data(as_text=True).startswith("Webhook Error: No signatures found")
        assert _status(payment_id).status == "pending"

    @patch(CONSTRUCT)
    def test_signature_checked_with_raw_body_and_secret(self, mock_construct, client, seed_data):
        mock_construct.return_value = _event("customer.created", {})

        client.post(
            URL,
            data='{"raw": true}',
            content_type="application/json",
            headers={"Stripe-Signature": "t=1,v1=abc"},
        )

        mock_construct.assert_called_once_with('{"raw": true}', "t=1,v1=abc", "whsec_test_fake")


class TestCheckoutCompleted:
    """checkout.session.completed moves pending -> paid exactly once."""

    @patch(CONSTRUCT)
    def test_marks_paid(self, mock_construct, client, seed_data):
        payment_id = _pending(seed_data, tracks=3, session_id="cs_1")
        mock_construct.return_value = _event("checkout.session.completed", {
            "id": "cs_1",
            "metadata": {"release_payment_id": payment_id},
            "payment_intent": "pi_final",
        })

        resp = _post(client)

        assert resp.status_code == 200
        assert resp.get_json() == {"received": True}
        payment = _status(payment_id)
        assert payment.status == "paid"
        assert payment.stripe_payment_intent_id == "pi_final"
        assert get_already_paid(seed_data["release_id"], seed_data["leader_id"]) == 3

    @patch(CONSTRUCT)
    def test_expanded_payment_intent(self, mock_construct, client, seed_data):
        payment_id = _pending(seed_data)
        mock_construct.return_value = _event("checkout.session.completed", {
            "id": "cs_2",
            "metadata": {"release_payment_id": payment_id},
            "payment_intent": {"id": "pi_expanded", "object": "payment_intent"},
        })

        _post(client)

        assert _status(payment_id).stripe_payment_intent_id == "pi_expanded"

    @patch(CONSTRUCT)
    def test_redelivery_is_a_no_op(self, mock_construct, client, seed_data):
        payment_id = _pending(seed_data, tracks=2)
        mock_construct.return_value = _event("checkout.session.completed", {
            "id": "cs_1",
            "metadata": {"release_payment_id": payment_id},
            "payment_intent": "pi_1",
        })

        first = _post(client)
        second = _post(client)

        assert first.status_code == 200
        assert second.status_code == 200
        assert _status(payment_id).status == "paid"
        assert get_already_paid(seed_data["release_id"], seed_data["leader_id"]) == 2

    @patch(CONSTRUCT)
    def test_subscription_checkout_without_payment_id(self, mock_construct, client, seed_data):
        payment_id = _pending(seed_data)
        mock_construct.return_value = _event("checkout.session.completed", {
            "id": "cs_subscription",
            "mode": "subscription",
            "metadata": {"user_id": seed_data["leader_id"]},
        })

        resp = _post(client)

        assert resp.status_code == 200
        assert _status(payment_id).status == "pending"


class TestPaymentFailed:
    """expired / payment_failed move pending -> failed."""

    @patch(CONSTRUCT)
    def test_session_expired(self, mock_construct, client, seed_data):
        payment_id = _pending(seed_data)
        mock_construct.return_value = _event("checkout.session.expired", {
            "id": "cs_1",
            "metadata": {"release_payment_id": payment_id},
        })

        assert _post(client).status_code == 200
        assert _status(payment_id).status == "failed"

    @patch(CONSTRUCT)
    def test_expired_found_by_session_id(self, mock_construct, client, seed_data):
        payment_id = _pending(seed_data, session_id="cs_lookup")
        mock_construct.return_value = _event("checkout.session.expired", {
            "id": "cs_lookup",
            "metadata": {},
        })

        _post(client)

        assert _status(payment_id).status == "failed"

    @patch(CONSTRUCT)
    def test_payment_failed_found_by_intent_id(self, mock_construct, client, seed_data):
        payment_id = _pending(seed_data, session_id="cs_x", intent_id="pi_lookup")
        mock_construct.return_value = _event("payment_intent.payment_failed", {
            "id": "pi_lookup",
            "metadata": {},
        })

        _post(client)

        assert _status(payment_id).status == "failed"

    @patch(CONSTRUCT)
    def test_failure_never_overwrites_paid(self, mock_construct, client, seed_data):
        """Whichever transition lands first wins."""
        payment_id = _pending(seed_data)
        transition_payment(payment_id, "paid", payment_intent_id="pi_ok")
        db.session.commit()

        mock_construct.return_value = _event("payment_intent.payment_failed", {
            "id": "pi_ok",
            "metadata": {"release_payment_id": payment_id},
        })

        assert _post(client).status_code == 200
        assert _status(payment_id).status == "paid"

    @patch(CONSTRUCT)
    def test_completed_after_expired_stays_failed(self, mock_construct, client, seed_data):
        payment_id = _pending(seed_data)
        transition_payment(payment_id, "failed")
        db.session.commit()

        mock_construct.return_value = _event("checkout.session.completed", {
            "id": "cs_late",
            "metadata": {"release_payment_id": payment_id},
            "payment_intent": "pi_late",
        })

        _post(client)

        assert _status(payment_id).status == "failed"


class TestOtherEvents:

    @patch(CONSTRUCT)
    def test_unknown_event_acknowledged(self, mock_construct, client, seed_data):
        payment_id = _pending(seed_data)
        mock_construct.return_value = _event("invoice.paid", {
            "metadata": {"release_payment_id": payment_id},
        })

        resp = _post(client)

        assert resp.status_code == 200
        assert resp.get_json() == {"received": True}
        assert _status(payment_id).status == "pending"

    @patch("metalist.services.stripe_service.transition_payment")
    @patch(CONSTRUCT)
    def test_handler_error_returns_500(self, mock_construct, mock_transition, client, seed_data):
        payment_id = _pending(seed_data)
        mock_transition.side_effect = RuntimeError("db exploded")
        mock_construct.return_value = _event("checkout.session.completed", {
            "id": "cs_1",
            "metadata": {"release_payment_id": payment_id},
        })

        resp = _post(client)

        assert resp.status_code == 500
        assert resp.get_data(as_text=True) == "Webhook handler error"
        assert _status(payment_id).status == "pending"


class TestTransitionGuard:
    """transition_payment directly."""

    def test_rejects_unknown_status(self, seed_data):
        payment_id = _pending(seed_data)
        with pytest.raises(ValueError, match="refunded"):
            transition_payment(payment_id, "refunded")

    def test_returns_false_for_unknown_id(self, seed_data):
        assert transition_payment("00000000-0000-0000-0000-000000000000", "paid") is False
