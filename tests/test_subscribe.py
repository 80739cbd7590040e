"""Tests for subscription checkout, billing portal and /api/plans/me."""

import stripe

from conftest import FakeStripeObject, login
from metalist import create_app
from metalist.extensions import db
from metalist.models.subscription import Subscription

CHECKOUT = "/api/subscribe/create-checkout-session"
PORTAL = "/api/subscribe/create-portal-session"


class TestSubscriptionCheckout:
    """POST /api/subscribe/create-checkout-session"""

    def test_not_configured(self):
        app = create_app("testing", overrides={"APP_BASE_URL": None})
        with app.test_client() as c:
            resp = c.post(CHECKOUT, json={"tier": "pro"})
        assert resp.status_code == 500
        data = resp.get_json()
        assert data["error"] == "Server not configured."
        assert "APP_BASE_URL" in data["hint"]

    def test_missing_price_id_names_env_var(self):
        app = create_app(
            "testing", overrides={"STRIPE_PRO_PLUS_MONTHLY_PRICE_ID": None}
        )
        with app.test_client() as c:
            resp = c.post(CHECKOUT, json={"tier": "pro_plus"})
        assert resp.status_code == 500
        assert "STRIPE_PRO_PLUS_MONTHLY_PRICE_ID" in resp.get_json()["hint"]

    def test_requires_login(self, client, seed_data):
        resp = client.post(CHECKOUT, json={"tier": "pro"})
        assert resp.status_code == 401
        assert resp.get_json()["error"] == "You must be logged in to upgrade."

    def test_creates_subscription_session(self, client, seed_data, mock_stripe):
        login(client, seed_data["fan_email"])
        resp = client.post(CHECKOUT, json={"tier": "bedroom"})

        assert resp.status_code == 200
        assert resp.get_json() == {"url": "https://checkout.stripe.com/c/pay/cs_test_123"}

        kwargs = mock_stripe.checkout.Session.create.call_args.kwargs
        assert kwargs["mode"] == "subscription"
        assert kwargs["line_items"] == [{"price": "price_bedroom_test", "quantity": 1}]
        assert kwargs["client_reference_id"] == seed_data["fan_id"]
        assert kwargs["metadata"] == {"user_id": seed_data["fan_id"]}
        assert kwargs["success_url"] == "http://localhost:5000/plans?upgraded=success"

    def test_unknown_tier_means_pro(self, client, seed_data, mock_stripe):
        login(client, seed_data["fan_email"])
        client.post(CHECKOUT, json={"tier": "platinum"})

        kwargs = mock_stripe.checkout.Session.create.call_args.kwargs
        assert kwargs["line_items"][0]["price"] == "price_pro_test"

    def test_body_is_optional(self, client, seed_data, mock_stripe):
        login(client, seed_data["fan_email"])
        resp = client.post(CHECKOUT)

        assert resp.status_code == 200
        kwargs = mock_stripe.checkout.Session.create.call_args.kwargs
        assert kwargs["line_items"][0]["price"] == "price_pro_test"

    def test_stripe_error(self, client, seed_data, mock_stripe):
        mock_stripe.checkout.Session.create.side_effect = stripe.error.InvalidRequestError(
            "No such price: 'price_pro_test'", "price"
        )
        login(client, seed_data["fan_email"])
        resp = client.post(CHECKOUT, json={"tier": "pro"})

        assert resp.status_code == 500
        data = resp.get_json()
        assert data["error"] == "Could not start checkout."
        assert "No such price" in data["hint"]


class TestPortalSession:
    """POST /api/subscribe/create-portal-session"""

    def test_requires_login(self, client, seed_data):
        resp = client.post(PORTAL)
        assert resp.status_code == 401

    def test_no_customer(self, client, seed_data, mock_stripe):
        mock_stripe.Customer.list.return_value = {"data": []}
        login(client, seed_data["fan_email"])

        resp = client.post(PORTAL)

        assert resp.status_code == 400
        data = resp.get_json()
        assert data["error"] == "No billing account found."
        assert data["hint"].startswith("Subscribe to a plan first")
        mock_stripe.Customer.create.assert_not_called()
        mock_stripe.billing_portal.Session.create.assert_not_called()

    def test_opens_portal_for_first_customer(self, client, seed_data, mock_stripe):
        mock_stripe.Customer.list.return_value = {"data": [{"id": "cus_1"}, {"id": "cus_2"}]}
        mock_stripe.billing_portal.Session.create.return_value = FakeStripeObject(
            url="https://billing.stripe.com/p/session/test"
        )
        login(client, seed_data["fan_email"])

        resp = client.post(PORTAL)

        assert resp.status_code == 200
        assert resp.get_json() == {"url": "https://billing.stripe.com/p/session/test"}
        mock_stripe.Customer.list.assert_called_once_with(email="fan@metalist.test", limit=1)
        mock_stripe.billing_portal.Session.create.assert_called_once_with(
            customer="cus_1",
            return_url="http://localhost:5000/plans",
        )


class TestMyPlan:
    """GET /api/plans/me"""

    def test_free_without_subscription(self, client, seed_data):
        login(client, seed_data["fan_email"])
        data = client.get("/api/plans/me").get_json()
        assert data["tier"] == "free"
        assert data["limits"]["canHostAudio"] is False

    def test_active_pro_plus(self, client, seed_data):
        db.session.add(Subscription(user_id=seed_data["fan_id"], tier="pro_plus", status="active"))
        db.session.commit()

        login(client, seed_data["fan_email"])
        data = client.get("/api/plans/me").get_json()

        assert data["tier"] == "pro_plus"
        assert data["limits"]["canAddLyrics"] is True

    def test_canceled_subscription_is_free(self, client, seed_data):
        db.session.add(Subscription(user_id=seed_data["fan_id"], tier="pro", status="canceled"))
        db.session.commit()

        login(client, seed_data["fan_email"])
        data = client.get("/api/plans/me").get_json()

        assert data["tier"] == "free"
        assert data["status"] == "canceled"

    def test_requires_login(self, client, seed_data):
        assert client.get("/api/plans/me").status_code == 401
