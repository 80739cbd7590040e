"""Webhooks blueprint — /api/stripe/webhook

Receives Stripe webhook events.
Raw body is required for signature verification. Errors are plain
text; Stripe only looks at the status code.
"""

import logging

from flask import Blueprint, current_app, jsonify, request

from metalist.services.stripe_service import handle_webhook_event, verify_webhook_signature

logger = logging.getLogger(__name__)

webhooks_bp = Blueprint("webhooks", __name__, url_prefix="/api/stripe")


def _text(message, status):
    return message, status, {"Content-Type": "text/plain; charset=utf-8"}


@webhooks_bp.route("/webhook", methods=["POST"])
def stripe_webhook():
    """Receive and process Stripe webhook events.

    1. Check Stripe is configured
    2. Get raw body (required for signature verification)
    3. Verify signature with STRIPE_WEBHOOK_SECRET
    4. Pass to handle_webhook_event (idempotent via pending-only updates)
    5. Return 200 to acknowledge receipt, 500 so Stripe redelivers
    """
    if not current_app.config.get("STRIPE_SECRET_KEY") or not current_app.config.get(
        "STRIPE_WEBHOOK_SECRET"
    ):
        logger.error("Webhook received but Stripe is not configured")
        return _text("Stripe not configured", 500)

    sig_header = request.headers.get("Stripe-Signature")
    if not sig_header:
        logger.warning("Webhook received without Stripe-Signature header")
        return _text("Missing signature", 400)

    payload = request.get_data(as_text=True)

    # --- Verify signature ---
    try:
        event = verify_webhook_signature(payload, sig_header)
    except Exception as e:
        logger.warning(f"Webhook signature verification failed: {e}")
        return _text(f"Webhook Error: {e}", 400)

    success, message = handle_webhook_event(event)

    if not success:
        logger.error(f"Webhook processing failed: {message}")
        return _text("Webhook handler error", 500)

    return jsonify({"received": True}), 200
