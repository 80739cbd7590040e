"""Subscribe blueprint — /api/subscribe/*, /api/plans/me

Plan subscriptions through Stripe Checkout, and the Stripe Customer
Portal for managing them.

Routes:
- POST /api/subscribe/create-checkout-session  — {tier} -> {url}
- POST /api/subscribe/create-portal-session    — {} -> {url}
- GET  /api/plans/me                           — current tier + limits
"""

import logging

import stripe
from flask import Blueprint, current_app, jsonify, request
from flask_login import current_user, login_required

from metalist.plans import (
    TIER_LIMITS,
    TIER_PRICE_CONFIG_KEYS,
    subscription_tier_from_request,
)
from metalist.schemas import SubscribeCheckoutRequest
from metalist.services.plan_service import get_plan
from metalist.services.stripe_service import (
    create_portal_session,
    create_subscription_checkout_session,
)

logger = logging.getLogger(__name__)

subscribe_bp = Blueprint("subscribe", __name__, url_prefix="/api")


def _not_configured():
    """Return the 500 response when Stripe or APP_BASE_URL is missing, else None."""
    if current_app.config.get("STRIPE_SECRET_KEY") and (
        current_app.config.get("APP_BASE_URL") or ""
    ).strip():
        return None
    logger.error("Subscription endpoint hit but Stripe / APP_BASE_URL is not configured")
    return jsonify({
        "error": "Server not configured.",
        "hint": "Set STRIPE_SECRET_KEY and APP_BASE_URL in the server environment.",
    }), 500


# ──────────────────────────────────────────────
# POST /api/subscribe/create-checkout-session
# ──────────────────────────────────────────────

@subscribe_bp.route("/subscribe/create-checkout-session", methods=["POST"])
def create_checkout_session():
    """Start a subscription checkout for bedroom / pro / pro_plus.

    The body is optional; a missing or unknown tier means "pro".
    """
    error = _not_configured()
    if error:
        return error

    data = request.get_json(silent=True)
    requested = None
    if isinstance(data, dict):
        try:
            requested = SubscribeCheckoutRequest.model_validate(data).tier
        except ValueError:
            requested = None
    tier = subscription_tier_from_request(requested)

    config_key = TIER_PRICE_CONFIG_KEYS[tier]
    price_id = (current_app.config.get(config_key) or "").strip()
    if not price_id:
        return jsonify({
            "error": f'Subscription tier "{tier}" is not configured.',
            "hint": f"Set {config_key} in the server environment.",
        }), 500

    if not current_user.is_authenticated:
        return jsonify({"error": "You must be logged in to upgrade."}), 401

    try:
        url = create_subscription_checkout_session(current_user.id, price_id)
    except stripe.error.StripeError as e:
        logger.error(f"Stripe subscription checkout error: {e}", exc_info=True)
        return jsonify({"error": "Could not start checkout.", "hint": str(e)}), 500

    if not url:
        return jsonify({
            "error": "Could not create checkout session. Stripe did not return a URL."
        }), 500

    return jsonify({"url": url})


# ──────────────────────────────────────────────
# POST /api/subscribe/create-portal-session
# ──────────────────────────────────────────────

@subscribe_bp.route("/subscribe/create-portal-session", methods=["POST"])
def portal_session():
    """Open the Stripe Customer Portal for the signed-in user's email.

    Never creates a Stripe customer: users who never checked out get 400.
    """
    error = _not_configured()
    if error:
        return error

    if not current_user.is_authenticated or not current_user.email:
        return jsonify({
            "error": "You must be logged in to manage your subscription."
        }), 401

    try:
        url = create_portal_session(current_user.email)
    except LookupError:
        return jsonify({
            "error": "No billing account found.",
            "hint": (
                "Subscribe to a plan first. Your Stripe billing record is "
                "created when you complete checkout."
            ),
        }), 400
    except stripe.error.StripeError as e:
        logger.error(f"Stripe portal session error: {e}", exc_info=True)
        return jsonify({"error": "Could not open billing portal.", "hint": str(e)}), 500

    if not url:
        return jsonify({"error": "Could not create billing portal session."}), 500

    return jsonify({"url": url})


# ──────────────────────────────────────────────
# GET /api/plans/me
# ──────────────────────────────────────────────

@subscribe_bp.route("/plans/me")
@login_required
def my_plan():
    """Current tier (free when there is no active subscription) and its limits."""
    tier, status = get_plan(current_user.id)

    limits = TIER_LIMITS[tier]
    return jsonify({
        "tier": tier,
        "status": status,
        "limits": {
            "canHostAudio": limits.can_host_audio,
            "demosPerMonth": limits.demos_per_month,
            "canAddLyrics": limits.can_add_lyrics,
            "canAddMerch": limits.can_add_merch,
            "description": limits.description,
        },
    })
