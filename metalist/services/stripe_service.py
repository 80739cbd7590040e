"""Stripe service — all Stripe API calls and webhook handling.

Responsible for:
- Creating Checkout Sessions for hosted-track release payments
- Creating subscription Checkout Sessions and Customer Portal Sessions
- Verifying webhook signatures
- Dispatching verified events to release-payment handlers

Webhook idempotency comes from billing_service.transition_payment,
which only ever moves rows that are still "pending".
"""

import logging

import stripe
from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from metalist.extensions import db
from metalist.plans import release_cost_cents
from metalist.services.billing_service import (
    attach_stripe_ids,
    create_pending_payment,
    find_payment_id,
    get_already_paid,
    transition_payment,
)

logger = logging.getLogger(__name__)


class StripeNotConfigured(RuntimeError):
    """Required Stripe settings are missing from the app config."""

    def __init__(self, missing):
        self.missing = list(missing)
        super().__init__(f"Missing: {', '.join(self.missing)}")


class PaymentError(Exception):
    """A release checkout could not be started.

    `message` is safe to show users; `detail` carries the underlying
    error for non-production responses.
    """

    def __init__(self, message, detail=None):
        self.message = message
        self.detail = detail
        super().__init__(message)


def missing_checkout_config():
    """Config keys a checkout needs that are currently unset."""
    missing = []
    if not current_app.config.get("STRIPE_SECRET_KEY"):
        missing.append("STRIPE_SECRET_KEY")
    if not (current_app.config.get("APP_BASE_URL") or "").strip():
        missing.append("APP_BASE_URL")
    return missing


def _configure():
    """Point the stripe module at our secret key."""
    missing = missing_checkout_config()
    if missing:
        raise StripeNotConfigured(missing)
    stripe.api_key = current_app.config["STRIPE_SECRET_KEY"]


def _base_url():
    return current_app.config["APP_BASE_URL"].strip().rstrip("/")


def _payment_intent_id(obj):
    """payment_intent may be an id string, an expanded object, or None."""
    pi = obj.get("payment_intent")
    if isinstance(pi, str):
        return pi
    if pi:
        return pi.get("id")
    return None


# ──────────────────────────────────────────────
# Release payments (hosted tracks)
# ──────────────────────────────────────────────

def create_release_checkout(user_id, release_id, band_id, hosted_track_count):
    """Bill the not-yet-paid hosted tracks of a release.

    alreadyPaid counts tracks on "paid" rows; only the difference is
    charged. When nothing new is billable no row is written and no
    session is created, so repeating the call is free.

    Returns a dict: checkout_url, already_paid, new_billable, amount_cents.
    Raises StripeNotConfigured or PaymentError.
    """
    _configure()

    try:
        already_paid = get_already_paid(release_id, user_id)
    except SQLAlchemyError as e:
        logger.error(f"Failed to load existing release payments: {e}", exc_info=True)
        db.session.rollback()
        raise PaymentError("Could not compute payment status.", detail=str(e))

    new_billable = max(0, hosted_track_count - already_paid)
    if new_billable <= 0:
        return {
            "checkout_url": None,
            "already_paid": already_paid,
            "new_billable": 0,
            "amount_cents": 0,
        }

    amount_cents = release_cost_cents(new_billable)

    try:
        payment = create_pending_payment(
            release_id=release_id,
            band_id=band_id,
            user_id=user_id,
            hosted_tracks=new_billable,
            amount_cents=amount_cents,
        )
        payment_id = payment.id
        db.session.commit()
    except SQLAlchemyError as e:
        logger.error(f"Failed to insert release_payments row: {e}", exc_info=True)
        db.session.rollback()
        raise PaymentError("Could not start payment.", detail=str(e))

    base_url = _base_url()
    metadata = {
        "release_payment_id": payment_id,
        "release_id": release_id,
        "band_id": band_id,
        "user_id": user_id,
        "hosted_tracks_paid": str(new_billable),
    }
    plural = "" if new_billable == 1 else "s"

    try:
        session = stripe.checkout.Session.create(
            mode="payment",
            payment_method_types=["card"],
            line_items=[
                {
                    "price_data": {
                        "currency": "usd",
                        "unit_amount": amount_cents,
                        "product_data": {
                            "name": "Hosted tracks on The Metalist",
                            "description": f"{new_billable} hosted track{plural} for this release",
                        },
                    },
                    "quantity": 1,
                }
            ],
            metadata=metadata,
            payment_intent_data={"metadata": metadata},
            success_url=f"{base_url}/dashboard/manage/{band_id}?releasePayment=success",
            cancel_url=f"{base_url}/dashboard/manage/{band_id}?releasePayment=canceled",
        )
    except stripe.error.StripeError as e:
        logger.error(f"Stripe checkout error for payment {payment_id}: {e}", exc_info=True)
        transition_payment(payment_id, "failed")
        db.session.commit()
        raise PaymentError("Could not start payment.", detail=str(e))

    if not session.url:
        logger.error(f"Stripe returned no checkout URL for payment {payment_id}")
        transition_payment(payment_id, "failed")
        db.session.commit()
        raise PaymentError(
            "Could not create checkout session. Stripe did not return a URL."
        )

    try:
        if session.id:
            attach_stripe_ids(payment_id, session.id, _payment_intent_id(session))
            db.session.commit()
    except SQLAlchemyError as e:
        # The webhook finds the row through metadata, so this is not fatal.
        logger.error(f"Failed to store Stripe ids on payment {payment_id}: {e}")
        db.session.rollback()

    return {
        "checkout_url": session.url,
        "already_paid": already_paid,
        "new_billable": new_billable,
        "amount_cents": amount_cents,
    }


# ──────────────────────────────────────────────
# Subscriptions & Portal
# ──────────────────────────────────────────────

def create_subscription_checkout_session(user_id, price_id):
    """Create a subscription Checkout Session for a plan price.

    The user id rides along as client_reference_id + metadata so the
    subscription can be attributed later.

    Returns the session URL (may be None if Stripe returned none).
    Raises stripe.error.StripeError on API failures.
    """
    _configure()
    base_url = _base_url()

    session = stripe.checkout.Session.create(
        mode="subscription",
        payment_method_types=["card"],
        line_items=[{"price": price_id, "quantity": 1}],
        client_reference_id=user_id,
        metadata={"user_id": user_id},
        success_url=f"{base_url}/plans?upgraded=success",
        cancel_url=f"{base_url}/plans?upgraded=canceled",
    )
    return session.url


def find_customer_id_by_email(email):
    """Return the first Stripe customer id registered with `email`, or None.

    Several customers can share an email; only the first is considered.
    """
    _configure()
    customers = stripe.Customer.list(email=email, limit=1)
    data = customers.get("data") or []
    if not data:
        return None
    return data[0].get("id")


def create_portal_session(email):
    """Create a Customer Portal Session for the customer owning `email`.

    Returns the portal session URL (may be None).
    Raises LookupError if no Stripe customer has that email; a customer
    is never created here.
    Raises stripe.error.StripeError on API failures.
    """
    customer_id = find_customer_id_by_email(email)
    if not customer_id:
        raise LookupError(f"No Stripe customer for {email}")

    session = stripe.billing_portal.Session.create(
        customer=customer_id,
        return_url=f"{_base_url()}/plans",
    )
    return session.url


# ──────────────────────────────────────────────
# Webhook Handling
# ──────────────────────────────────────────────

def verify_webhook_signature(payload, sig_header):
    """Verify Stripe webhook signature and construct the event.

    Returns the verified Stripe event object.
    Raises stripe.error.SignatureVerificationError on invalid signature,
    ValueError on an unparseable payload.
    """
    webhook_secret = current_app.config["STRIPE_WEBHOOK_SECRET"]
    return stripe.Webhook.construct_event(payload, sig_header, webhook_secret)


def handle_webhook_event(event):
    """Process a verified Stripe webhook event.

    Unknown event types are acknowledged without doing anything.

    Returns (success: bool, message: str).
    """
    event_type = event["type"]

    handlers = {
        "checkout.session.completed": _handle_checkout_completed,
        "checkout.session.expired": _handle_payment_failed,
        "payment_intent.payment_failed": _handle_payment_failed,
    }

    handler = handlers.get(event_type)
    if handler is None:
        return True, "ignored"

    try:
        handler(event)
        db.session.commit()
    except Exception as e:
        logger.error(f"Error handling {event_type}: {e}", exc_info=True)
        db.session.rollback()
        return False, str(e)

    return True, "processed"


# ──────────────────────────────────────────────
# Event Handlers
# ──────────────────────────────────────────────

def _resolve_payment_id(obj, event_type):
    """Find the release payment an event refers to.

    Prefers metadata.release_payment_id; falls back to the Stripe id we
    stored when the session was created.
    """
    metadata = obj.get("metadata") or {}
    payment_id = metadata.get("release_payment_id")
    if payment_id:
        return payment_id

    if event_type.startswith("checkout.session."):
        return find_payment_id(checkout_session_id=obj.get("id"))
    if event_type.startswith("payment_intent."):
        return find_payment_id(payment_intent_id=obj.get("id"))
    return None


def _handle_checkout_completed(event):
    """Handle checkout.session.completed — pending -> paid."""
    session = event["data"]["object"]
    payment_id = _resolve_payment_id(session, event["type"])
    if not payment_id:
        # Subscription checkouts carry no release payment
        logger.info("checkout.session.completed without release_payment_id, skipping")
        return

    transition_payment(
        payment_id, "paid", payment_intent_id=_payment_intent_id(session)
    )


def _handle_payment_failed(event):
    """Handle checkout.session.expired / payment_intent.payment_failed — pending -> failed."""
    obj = event["data"]["object"]
    payment_id = _resolve_payment_id(obj, event["type"])
    if not payment_id:
        logger.info(f"{event['type']} without a matching release payment, skipping")
        return

    transition_payment(payment_id, "failed")
