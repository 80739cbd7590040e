"""Release payment model.

One row per checkout attempt for the hosted tracks of a release.

- Created "pending" when the checkout session is started.
- Moved to "paid" or "failed" exactly once by the Stripe webhook. The
  move is a conditional UPDATE ... WHERE status = 'pending', so a
  redelivered event matches zero rows.

For a (release_id, user_id) pair, the sum of hosted_tracks_paid over
"paid" rows is the number of hosted tracks already billed.
"""

import uuid

from metalist.extensions import db


class ReleasePayment(db.Model):
    __tablename__ = "release_payments"

    STATUSES = ["pending", "paid", "failed"]

    id = db.Column(
        db.String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    release_id = db.Column(
        db.String(36),
        db.ForeignKey("releases.id", ondelete="CASCADE"),
        nullable=False,
    )
    band_id = db.Column(
        db.String(36),
        db.ForeignKey("bands.id", ondelete="CASCADE"),
        nullable=False,
    )
    user_id = db.Column(
        db.String(36),
        db.ForeignKey("profiles.id", ondelete="CASCADE"),
        nullable=False,
    )
    hosted_tracks_paid = db.Column(db.Integer, nullable=False)
    amount_cents = db.Column(db.Integer, nullable=False)
    currency = db.Column(db.String(3), nullable=False, default="usd")
    status = db.Column(
        db.String(20), nullable=False, default="pending"
    )  # pending | paid | failed
    stripe_checkout_session_id = db.Column(db.String(255), nullable=True, index=True)
    stripe_payment_intent_id = db.Column(db.String(255), nullable=True, index=True)
    created_at = db.Column(
        db.DateTime(timezone=True), server_default=db.func.now()
    )
    updated_at = db.Column(
        db.DateTime(timezone=True),
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    __table_args__ = (
        db.Index("ix_release_payments_release_user", "release_id", "user_id"),
    )

    def __repr__(self):
        return f"<ReleasePayment {self.hosted_tracks_paid} tracks ({self.status})>"
