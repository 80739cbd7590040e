"""Plan service — the tier a user is currently entitled to."""

from metalist.extensions import db
from metalist.models.subscription import Subscription
from metalist.plans import normalize_tier

# Statuses that still grant the paid tier
ENTITLED_STATUSES = ("active", "trialing")


def get_plan(user_id):
    """Return (tier, status) for a user.

    tier is "free" unless the subscription is active or trialing;
    status is None when the user never subscribed.
    """
    sub = db.session.query(Subscription).filter_by(user_id=user_id).first()
    if sub is None:
        return "free", None
    if sub.status in ENTITLED_STATUSES:
        return normalize_tier(sub.tier), sub.status
    return "free", sub.status


def current_tier(user_id):
    return get_plan(user_id)[0]
