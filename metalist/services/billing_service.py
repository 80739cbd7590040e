"""Billing service — release_payments DB helpers.

Responsible for:
- Summing the hosted tracks already paid for a (release, user) pair
- Inserting pending payment rows and attaching Stripe identifiers
- Moving a row out of "pending" with a conditional UPDATE

Functions flush but do NOT commit — the caller commits.
"""

import logging
from datetime import datetime, timezone

from metalist.extensions import db
from metalist.models.payment import ReleasePayment

logger = logging.getLogger(__name__)


def get_already_paid(release_id, user_id):
    """Number of hosted tracks covered by "paid" rows for this release + user."""
    total = (
        db.session.query(
            db.func.coalesce(db.func.sum(ReleasePayment.hosted_tracks_paid), 0)
        )
        .filter(
            ReleasePayment.release_id == release_id,
            ReleasePayment.user_id == user_id,
            ReleasePayment.status == "paid",
        )
        .scalar()
    )
    return int(total or 0)


def create_pending_payment(release_id, band_id, user_id, hosted_tracks, amount_cents,
                           currency="usd"):
    """Insert a pending ReleasePayment and return it (flushed, id assigned)."""
    payment = ReleasePayment(
        release_id=release_id,
        band_id=band_id,
        user_id=user_id,
        hosted_tracks_paid=hosted_tracks,
        amount_cents=amount_cents,
        currency=currency,
        status="pending",
    )
    db.session.add(payment)
    db.session.flush()
    logger.info(
        f"Pending release payment {payment.id}: {hosted_tracks} tracks, "
        f"{amount_cents} cents (release={release_id}, user={user_id})"
    )
    return payment


def attach_stripe_ids(payment_id, checkout_session_id, payment_intent_id=None):
    """Store the Stripe session / payment-intent ids for later reconciliation."""
    db.session.query(ReleasePayment).filter(
        ReleasePayment.id == payment_id
    ).update(
        {
            "stripe_checkout_session_id": checkout_session_id,
            "stripe_payment_intent_id": payment_intent_id,
        },
        synchronize_session=False,
    )
    db.session.flush()


def transition_payment(payment_id, new_status, payment_intent_id=None):
    """Move a payment from "pending" to `new_status`.

    The UPDATE is constrained to status = 'pending', so only the first
    transition for a row takes effect; later ones match no rows.

    Returns True if the row was transitioned, False otherwise.
    """
    if new_status not in ("paid", "failed"):
        raise ValueError(f"Invalid payment status '{new_status}'")

    values = {
        "status": new_status,
        "updated_at": datetime.now(timezone.utc),
    }
    if payment_intent_id:
        values["stripe_payment_intent_id"] = payment_intent_id

    updated = (
        db.session.query(ReleasePayment)
        .filter(
            ReleasePayment.id == payment_id,
            ReleasePayment.status.in_(["pending"]),
        )
        .update(values, synchronize_session=False)
    )
    db.session.flush()

    if updated:
        logger.info(f"Release payment {payment_id} -> {new_status}")
    else:
        logger.info(
            f"Release payment {payment_id} not pending (or unknown), "
            f"ignoring transition to {new_status}"
        )
    return bool(updated)


def find_payment_id(checkout_session_id=None, payment_intent_id=None):
    """Look up a payment id by its stored Stripe identifiers.

    Returns the id string or None.
    """
    query = db.session.query(ReleasePayment.id)
    if checkout_session_id:
        query = query.filter(
            ReleasePayment.stripe_checkout_session_id == checkout_session_id
        )
    elif payment_intent_id:
        query = query.filter(
            ReleasePayment.stripe_payment_intent_id == payment_intent_id
        )
    else:
        return None
    row = query.first()
    return row[0] if row else None
