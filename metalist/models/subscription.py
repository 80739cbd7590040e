"""Subscription model.

The user's plan tier (free | bedroom | pro | pro_plus) and its status.
Read through metalist.plans.normalize_tier so unknown or legacy tier
names degrade to "free".
"""

import uuid

from metalist.extensions import db


class Subscription(db.Model):
    __tablename__ = "subscriptions"

    id = db.Column(
        db.String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    user_id = db.Column(
        db.String(36),
        db.ForeignKey("profiles.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )
    tier = db.Column(db.String(20), nullable=False, default="free")
    status = db.Column(db.String(50), nullable=False, default="active")
    stripe_subscription_id = db.Column(db.String(255), unique=True, nullable=True)
    current_period_start = db.Column(db.DateTime(timezone=True), nullable=True)
    current_period_end = db.Column(db.DateTime(timezone=True), nullable=True)
    created_at = db.Column(
        db.DateTime(timezone=True), server_default=db.func.now()
    )
    updated_at = db.Column(
        db.DateTime(timezone=True),
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def __repr__(self):
        return f"<Subscription {self.tier} ({self.status})>"
