"""Payments blueprint — /api/release-payments/*

Per-release billing for hosted tracks ($2/track), paid through a
one-time Stripe Checkout Session.

Routes:
- POST /api/release-payments/create-checkout-session
"""

import logging

from flask import Blueprint, current_app, jsonify
from flask_login import current_user

from metalist.config import get_feature_flags
from metalist.extensions import db
from metalist.models.release import Release
from metalist.schemas import (
    InvalidBody,
    ReleaseCheckoutRequest,
    ReleaseCheckoutResponse,
    parse_body,
)
from metalist.services.membership_service import is_band_leader
from metalist.services.stripe_service import (
    PaymentError,
    StripeNotConfigured,
    create_release_checkout,
    missing_checkout_config,
)

logger = logging.getLogger(__name__)

payments_bp = Blueprint("payments", __name__, url_prefix="/api/release-payments")


# ──────────────────────────────────────────────
# POST /api/release-payments/create-checkout-session
# ──────────────────────────────────────────────

@payments_bp.route("/create-checkout-session", methods=["POST"])
def create_checkout_session():
    """Start a checkout for the unpaid hosted tracks of a release.

    Check order: kill switch, configuration, body, authentication,
    leader membership, release ownership. Nothing is written until all
    of them pass.
    """
    if get_feature_flags().payments_disabled:
        return jsonify(ReleaseCheckoutResponse().to_json())

    missing = missing_checkout_config()
    if missing:
        logger.error(f"Release checkout requested but config is missing: {missing}")
        return jsonify({
            "error": (
                f"Payments are not configured. Missing: {', '.join(missing)}. "
                "Set them in the server environment (.env) and restart the server."
            )
        }), 500

    try:
        body = parse_body(
            ReleaseCheckoutRequest,
            error_message="releaseId, bandId, and hostedTrackCount (> 0) are required.",
        )
    except InvalidBody as e:
        return jsonify({"error": str(e)}), 400

    if not current_user.is_authenticated:
        return jsonify({"error": "Unauthorized."}), 401

    if not is_band_leader(body.band_id, current_user.id):
        return jsonify({"error": "Forbidden."}), 403

    release = db.session.get(Release, body.release_id)
    if release is None:
        return jsonify({"error": "Release not found."}), 404
    if release.band_id != body.band_id:
        logger.warning(
            f"User {current_user.id} tried to bill release {release.id} "
            f"under band {body.band_id}"
        )
        return jsonify({"error": "Forbidden."}), 403

    try:
        result = create_release_checkout(
            user_id=current_user.id,
            release_id=body.release_id,
            band_id=body.band_id,
            hosted_track_count=body.hosted_track_count,
        )
    except StripeNotConfigured as e:
        return jsonify({"error": f"Payments are not configured. {e}"}), 500
    except PaymentError as e:
        message = e.message
        if e.detail and current_app.config.get("EXPOSE_ERROR_DETAIL"):
            message = f"{message} {e.detail}"
        return jsonify({"error": message}), 500

    return jsonify(ReleaseCheckoutResponse(**result).to_json())
