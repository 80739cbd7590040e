"""Plan tiers, their limits, and hosted-track pricing.

Tier hierarchy: free < bedroom < pro < pro_plus.
Only pro and pro_plus can host audio; hosting is paid per release at
publish time (PRICE_PER_TRACK_DOLLARS per hosted track).
"""

from collections import namedtuple

# Per-track charge when publishing a release with hosted audio.
PRICE_PER_TRACK_DOLLARS = 2

TIERS = ["free", "bedroom", "pro", "pro_plus"]

# Subscribable tiers -> config key holding the Stripe monthly price id
TIER_PRICE_CONFIG_KEYS = {
    "bedroom": "STRIPE_BEDROOM_MONTHLY_PRICE_ID",
    "pro": "STRIPE_PRO_MONTHLY_PRICE_ID",
    "pro_plus": "STRIPE_PRO_PLUS_MONTHLY_PRICE_ID",
}

TierLimits = namedtuple(
    "TierLimits",
    ["can_host_audio", "demos_per_month", "can_add_lyrics", "can_add_merch", "description"],
)

# demos_per_month: -1 = unlimited
TIER_LIMITS = {
    "free": TierLimits(
        can_host_audio=False,
        demos_per_month=1,
        can_add_lyrics=False,
        can_add_merch=False,
        description="Embed from YouTube / SoundCloud only. 1 demo per month.",
    ),
    "bedroom": TierLimits(
        can_host_audio=False,
        demos_per_month=4,  # 1 per week
        can_add_lyrics=False,
        can_add_merch=False,
        description="1 demo per week. For bedroom musicians and solo artists.",
    ),
    "pro": TierLimits(
        can_host_audio=True,
        demos_per_month=-1,
        can_add_lyrics=False,
        can_add_merch=False,
        description=(
            "Release albums with hosted MP3s. Unlimited demos. "
            f"Pay per release (${PRICE_PER_TRACK_DOLLARS}/track). For bands."
        ),
    ),
    "pro_plus": TierLimits(
        can_host_audio=True,
        demos_per_month=-1,
        can_add_lyrics=True,
        can_add_merch=True,
        description="Pro + lyrics on tracks, merchandise link on band page, unlimited demos.",
    ),
}

_TIER_ALIASES = {
    "bedroom_musician": "bedroom",
    "proplus": "pro_plus",
    "creator": "pro",
    "studio": "pro",
    "label": "pro",
}


def normalize_tier(tier):
    """Map a stored or Stripe-supplied tier name onto one of TIERS.

    Legacy names collapse onto their current tier; anything unknown
    (including None) is "free".
    """
    if not tier:
        return "free"
    tier = tier.strip().lower()
    tier = _TIER_ALIASES.get(tier, tier)
    return tier if tier in TIER_LIMITS else "free"


def subscription_tier_from_request(tier):
    """Tier requested at subscription checkout. Anything unrecognized is "pro"."""
    if tier in ("bedroom", "pro_plus"):
        return tier
    return "pro"


def release_cost_cents(track_count):
    """Charge in cents for track_count hosted tracks."""
    return track_count * PRICE_PER_TRACK_DOLLARS * 100


def can_upload_audio_track(tier):
    """Return (allowed, reason). Only Pro and Pro+ can host audio."""
    if not TIER_LIMITS[normalize_tier(tier)].can_host_audio:
        return False, "You need Pro or Pro+ to release albums with hosted audio. See Plans."
    return True, None


def can_upload_demo(tier, demos_this_month):
    """Return (allowed, reason) for one more demo this calendar month."""
    tier = normalize_tier(tier)
    limit = TIER_LIMITS[tier].demos_per_month
    if limit == -1 or demos_this_month < limit:
        return True, None
    plan_name = {"free": "Free", "bedroom": "Bedroom Musician"}.get(tier, "Your plan")
    plural = "" if limit == 1 else "s"
    return False, f"{plan_name} allows {limit} demo{plural} per month. Upgrade for more."
