"""Bands blueprint — /api/bands/*, /api/dashboard

Band pages, releases, follows, and the membership workflow.

Routes:
- POST   /api/bands                                        — create band (creator = leader)
- GET    /api/bands/<slug>                                 — public band view (+ leader extras)
- GET    /api/bands/<band_id>/membership                   — viewer's membership state
- POST   /api/bands/<band_id>/join-requests                — request to join
- POST   /api/bands/<band_id>/join-requests/<id>/approve   — leader only
- POST   /api/bands/<band_id>/join-requests/<id>/reject    — leader only
- POST   /api/bands/<band_id>/invitations                  — leader invites by username
- POST   /api/bands/<band_id>/invitation/accept|decline    — invitee responds
- POST   /api/bands/<band_id>/releases                     — leader publishes a release
- POST   /api/bands/<band_id>/follow, DELETE same          — follow / unfollow
- GET    /api/dashboard                                    — signed-in user's bands
"""

import logging

from flask import Blueprint, g, jsonify, request
from flask_login import current_user, login_required

from metalist.decorators import band_leader_required
from metalist.extensions import db
from metalist.schemas import (
    CreateBandRequest,
    CreateReleaseRequest,
    InvalidBody,
    InviteMemberRequest,
    JoinRequestBody,
    parse_body,
)
from metalist.services import band_service, membership_service, release_service
from metalist.services.membership_service import MembershipConflict
from metalist.services.notification_service import notify
from metalist.services.plan_service import current_tier

logger = logging.getLogger(__name__)

bands_bp = Blueprint("bands", __name__, url_prefix="/api")


def _error(e):
    """Translate service exceptions into JSON error responses."""
    if isinstance(e, MembershipConflict):
        status = 409
    elif isinstance(e, PermissionError):
        status = 403
    elif isinstance(e, LookupError):
        status = 404
    else:
        status = 400
    return jsonify({"error": str(e)}), status


def _viewer_id():
    return current_user.id if current_user.is_authenticated else None


# ──────────────────────────────────────────────
# Bands
# ──────────────────────────────────────────────

@bands_bp.route("/bands", methods=["POST"])
@login_required
def create_band():
    try:
        body = parse_body(CreateBandRequest)
    except InvalidBody as e:
        return jsonify({"error": str(e)}), 400

    profile = current_user.profile
    if profile is None:
        return jsonify({"error": "Complete your profile first."}), 400

    try:
        band = band_service.create_band(profile, body)
    except ValueError as e:
        return _error(e)
    db.session.commit()

    return jsonify(band_service.serialize_band(band)), 201


@bands_bp.route("/bands/<slug>")
def band_detail(slug):
    try:
        band = band_service.get_band_by_slug(slug)
    except LookupError as e:
        return _error(e)
    return jsonify(band_service.band_view(band, _viewer_id()))


@bands_bp.route("/dashboard")
@login_required
def dashboard():
    return jsonify(band_service.dashboard(current_user.id))


# ──────────────────────────────────────────────
# Membership
# ──────────────────────────────────────────────

@bands_bp.route("/bands/<band_id>/membership")
def membership_status(band_id):
    """Viewer state: none | pending | approved | rejected | invited | leader."""
    return jsonify({
        "status": membership_service.viewer_status(band_id, _viewer_id())
    })


@bands_bp.route("/bands/<band_id>/join-requests", methods=["POST"])
@login_required
def request_to_join(band_id):
    try:
        body = parse_body(JoinRequestBody)
    except InvalidBody as e:
        return jsonify({"error": str(e)}), 400

    try:
        member = membership_service.request_to_join(
            band_id, current_user.id, body.name, body.instruments
        )
    except (LookupError, MembershipConflict) as e:
        return _error(e)
    db.session.commit()

    notify(
        membership_service.leader_profile_id(band_id),
        title="New join request",
        body=f"{member.name} wants to join {member.band.name}.",
        href=f"/dashboard/manage/{band_id}",
    )
    return jsonify(membership_service.serialize_member(member)), 201


@bands_bp.route("/bands/<band_id>/join-requests/<member_id>/approve", methods=["POST"])
@band_leader_required
def approve_request(band_id, member_id):
    return _decide(band_id, member_id, approve=True)


@bands_bp.route("/bands/<band_id>/join-requests/<member_id>/reject", methods=["POST"])
@band_leader_required
def reject_request(band_id, member_id):
    return _decide(band_id, member_id, approve=False)


def _decide(band_id, member_id, approve):
    action = membership_service.approve_request if approve else membership_service.reject_request
    try:
        member = action(band_id, member_id, current_user.id)
    except (LookupError, PermissionError, MembershipConflict) as e:
        db.session.rollback()
        return _error(e)
    db.session.commit()

    verdict = "approved" if approve else "declined"
    notify(
        member.profile_id,
        title=f"Join request {verdict}",
        body=f"Your request to join {g.band.name} was {verdict}.",
        href=f"/bands/{g.band.slug}",
    )
    return jsonify(membership_service.serialize_member(member))


@bands_bp.route("/bands/<band_id>/invitations", methods=["POST"])
@band_leader_required
def invite_member(band_id):
    try:
        body = parse_body(InviteMemberRequest)
    except InvalidBody as e:
        return jsonify({"error": str(e)}), 400

    try:
        member = membership_service.invite_profile(band_id, current_user.id, body.username)
    except (LookupError, PermissionError, MembershipConflict) as e:
        return _error(e)
    db.session.commit()

    notify(
        member.profile_id,
        title="Band invitation",
        body=f"{g.band.name} invited you to join the band.",
        href="/dashboard",
    )
    return jsonify(membership_service.serialize_member(member)), 201


@bands_bp.route("/bands/<band_id>/invitation/<action>", methods=["POST"])
@login_required
def respond_to_invite(band_id, action):
    if action not in ("accept", "decline"):
        return jsonify({"error": "Not found."}), 404

    try:
        member = membership_service.respond_to_invite(
            band_id, current_user.id, accept=(action == "accept")
        )
    except (LookupError, MembershipConflict) as e:
        db.session.rollback()
        return _error(e)
    db.session.commit()

    verdict = "accepted" if action == "accept" else "declined"
    notify(
        membership_service.leader_profile_id(band_id),
        title=f"Invitation {verdict}",
        body=f"{member.name} {verdict} your invitation.",
        href=f"/dashboard/manage/{band_id}",
    )
    return jsonify(membership_service.serialize_member(member))


# ──────────────────────────────────────────────
# Follows
# ──────────────────────────────────────────────

@bands_bp.route("/bands/<band_id>/follow", methods=["POST", "DELETE"])
@login_required
def follow(band_id):
    try:
        if request.method == "POST":
            count = band_service.follow_band(band_id, current_user.id)
        else:
            count = band_service.unfollow_band(band_id, current_user.id)
    except LookupError as e:
        return _error(e)
    db.session.commit()

    return jsonify({
        "following": request.method == "POST",
        "followCount": count,
    })


# ──────────────────────────────────────────────
# Releases
# ──────────────────────────────────────────────

@bands_bp.route("/bands/<band_id>/releases", methods=["POST"])
@band_leader_required
def create_release(band_id):
    """Publish a release. Followers are notified after the commit."""
    try:
        body = parse_body(CreateReleaseRequest)
    except InvalidBody as e:
        return jsonify({"error": str(e)}), 400

    try:
        release = release_service.create_release(
            band_id, body, current_tier(current_user.id)
        )
    except (PermissionError, ValueError) as e:
        db.session.rollback()
        return _error(e)
    db.session.commit()

    for follower_id in release_service.follower_ids(band_id):
        notify(
            follower_id,
            title=f'{g.band.name} released "{release.title}"',
            body=f"New {release.release_type} on The Metalist.",
            href=f"/bands/{g.band.slug}",
        )
    return jsonify(release_service.serialize_release(release)), 201
