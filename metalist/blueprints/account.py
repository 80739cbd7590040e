"""Account blueprint — /api/account/*

Routes:
- POST /api/account/delete — delete the signed-in user's account
"""

import logging

from flask import Blueprint, jsonify
from flask_login import current_user, logout_user
from sqlalchemy.exc import SQLAlchemyError

from metalist.services.account_service import delete_account

logger = logging.getLogger(__name__)

account_bp = Blueprint("account", __name__, url_prefix="/api/account")


@account_bp.route("/delete", methods=["POST"])
def delete():
    """Delete profile (cascading) then the auth identity."""
    if not current_user.is_authenticated:
        return jsonify({"error": "Unauthorized."}), 401

    user_id = current_user.id
    try:
        delete_account(user_id)
    except SQLAlchemyError as e:
        logger.error(f"Account delete failed for {user_id}: {e}", exc_info=True)
        return jsonify({"error": "Failed to delete account."}), 500

    logout_user()
    return jsonify({"success": True})
