"""Demos blueprint — /api/demos, /api/members/<username>/demos

Routes:
- POST   /api/demos                      — share a demo (monthly plan quota)
- GET    /api/demos                      — public demos, producers/engineers only
- GET    /api/members/<username>/demos   — a member's demos (owner sees private)
- DELETE /api/demos/<demo_id>            — delete your own demo
"""

import logging

from flask import Blueprint, jsonify
from flask_login import current_user, login_required

from metalist.extensions import db
from metalist.schemas import CreateDemoRequest, InvalidBody, parse_body
from metalist.services import demo_service
from metalist.services.plan_service import current_tier

logger = logging.getLogger(__name__)

demos_bp = Blueprint("demos", __name__, url_prefix="/api")


@demos_bp.route("/demos", methods=["POST"])
@login_required
def create_demo():
    try:
        body = parse_body(CreateDemoRequest)
    except InvalidBody as e:
        return jsonify({"error": str(e)}), 400

    try:
        demo = demo_service.create_demo(
            current_user.id, body, current_tier(current_user.id)
        )
    except PermissionError as e:
        return jsonify({"error": str(e), "upgradeUrl": "/plans"}), 403
    db.session.commit()

    return jsonify(demo_service.serialize_demo(demo)), 201


@demos_bp.route("/demos")
@login_required
def list_demos():
    if not demo_service.can_browse_demos(current_user.profile):
        return jsonify({
            "error": "Demos are visible to producers and sound engineers."
        }), 403
    return jsonify([
        demo_service.serialize_demo(d) for d in demo_service.list_public_demos()
    ])


@demos_bp.route("/members/<username>/demos")
def member_demos(username):
    viewer_id = current_user.id if current_user.is_authenticated else None
    try:
        demos = demo_service.list_member_demos(username, viewer_id)
    except LookupError as e:
        return jsonify({"error": str(e)}), 404
    return jsonify([demo_service.serialize_demo(d) for d in demos])


@demos_bp.route("/demos/<demo_id>", methods=["DELETE"])
@login_required
def delete_demo(demo_id):
    try:
        demo_service.delete_demo(demo_id, current_user.id)
    except LookupError as e:
        return jsonify({"error": str(e)}), 404
    except PermissionError as e:
        return jsonify({"error": str(e)}), 403
    db.session.commit()

    return jsonify({"success": True})
