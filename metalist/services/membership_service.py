"""Membership service — the band join-request / invitation state machine.

    none ──request──▶ pending ──leader──▶ approved | rejected
    none ──invite───▶ invited ──invitee─▶ approved | rejected

Every transition is a conditional UPDATE on the expected source status,
so two racing decisions on one row resolve to whichever commits first;
the other matches zero rows and raises MembershipConflict.

Raises:
    LookupError: band, profile or membership row not found.
    PermissionError: caller is not the band leader.
    MembershipConflict: a row already exists, or the row left the
        expected state before this transition ran.

Functions flush but do NOT commit — the caller commits.
"""

import logging
from datetime import datetime, timezone

from sqlalchemy.exc import IntegrityError

from metalist.extensions import db
from metalist.models.band import Band, BandMember
from metalist.models.profile import Profile

logger = logging.getLogger(__name__)

VIEWER_STATES = ["none", "pending", "approved", "rejected", "invited", "leader"]


class MembershipConflict(Exception):
    """The requested transition clashes with the row's current state."""


def get_membership(band_id, profile_id):
    if not profile_id:
        return None
    return BandMember.query.filter_by(band_id=band_id, profile_id=profile_id).first()


def is_band_leader(band_id, profile_id):
    """True only for an approved membership with role "leader"."""
    if not profile_id:
        return False
    return (
        BandMember.query.filter_by(
            band_id=band_id,
            profile_id=profile_id,
            role="leader",
            status="approved",
        ).first()
        is not None
    )


def leader_profile_id(band_id):
    row = BandMember.query.filter_by(
        band_id=band_id, role="leader", status="approved"
    ).first()
    return row.profile_id if row else None


def viewer_status(band_id, profile_id):
    """Map the viewer's membership row to one of VIEWER_STATES."""
    membership = get_membership(band_id, profile_id)
    if membership is None:
        return "none"
    if membership.is_leader:
        return "leader"
    return membership.status


def _next_display_order(band_id):
    current = (
        db.session.query(db.func.max(BandMember.display_order))
        .filter(BandMember.band_id == band_id, BandMember.status == "approved")
        .scalar()
    )
    return 0 if current is None else current + 1


def _require_band(band_id):
    band = db.session.get(Band, band_id)
    if band is None:
        raise LookupError("Band not found.")
    return band


def _require_leader(band_id, profile_id):
    if not is_band_leader(band_id, profile_id):
        raise PermissionError("Only the band leader can do that.")


def _insert_member(band_id, profile_id, name, instruments, status):
    member = BandMember(
        band_id=band_id,
        profile_id=profile_id,
        name=name,
        instrument=", ".join(instruments) if instruments else None,
        role="member",
        status=status,
    )
    db.session.add(member)
    try:
        db.session.flush()
    except IntegrityError:
        # uq_band_member_profile lost a race with a concurrent insert
        db.session.rollback()
        raise MembershipConflict("A membership for this band already exists.")
    return member


def _transition(member_id, band_id, from_status, to_status, profile_id=None):
    """Conditional UPDATE from `from_status` to `to_status`.

    Approvals are appended to the end of the band's display order.
    """
    values = {"status": to_status, "updated_at": datetime.now(timezone.utc)}
    if to_status == "approved":
        values["display_order"] = _next_display_order(band_id)

    query = db.session.query(BandMember).filter(
        BandMember.band_id == band_id,
        BandMember.status.in_([from_status]),
    )
    if member_id:
        query = query.filter(BandMember.id == member_id)
    if profile_id:
        query = query.filter(BandMember.profile_id == profile_id)

    updated = query.update(values, synchronize_session=False)
    db.session.flush()

    if not updated:
        logger.info(
            f"Membership transition {from_status} -> {to_status} matched no rows "
            f"(band={band_id}, member={member_id}, profile={profile_id})"
        )
        raise MembershipConflict(f"This membership is no longer {from_status}.")

    logger.info(
        f"Membership {member_id or profile_id} in band {band_id}: "
        f"{from_status} -> {to_status}"
    )
    db.session.expire_all()
    return True


# ──────────────────────────────────────────────
# Self-requests
# ──────────────────────────────────────────────

def request_to_join(band_id, profile_id, name, instruments):
    """Insert a pending join request for a viewer in state "none".

    Returns the new BandMember.
    """
    _require_band(band_id)

    existing = get_membership(band_id, profile_id)
    if existing is not None:
        raise MembershipConflict(
            f"You already have a {viewer_status(band_id, profile_id)} membership for this band."
        )

    member = _insert_member(band_id, profile_id, name, instruments, status="pending")
    logger.info(f"Join request {member.id}: profile {profile_id} -> band {band_id}")
    return member


def approve_request(band_id, member_id, leader_id):
    _require_leader(band_id, leader_id)
    _require_row(band_id, member_id)
    _transition(member_id, band_id, "pending", "approved")
    return db.session.get(BandMember, member_id)


def reject_request(band_id, member_id, leader_id):
    _require_leader(band_id, leader_id)
    _require_row(band_id, member_id)
    _transition(member_id, band_id, "pending", "rejected")
    return db.session.get(BandMember, member_id)


def _require_row(band_id, member_id):
    member = db.session.get(BandMember, member_id)
    if member is None or member.band_id != band_id:
        raise LookupError("Membership not found.")
    return member


# ──────────────────────────────────────────────
# Invitations
# ──────────────────────────────────────────────

def invite_profile(band_id, leader_id, username):
    """Leader invites an existing profile by username.

    Returns the new "invited" BandMember.
    """
    _require_leader(band_id, leader_id)

    profile = Profile.query.filter(
        db.func.lower(Profile.username) == (username or "").strip().lower()
    ).first()
    if profile is None:
        raise LookupError("No user with that username.")

    if get_membership(band_id, profile.id) is not None:
        raise MembershipConflict(
            f"{profile.username} already has a membership for this band."
        )

    member = _insert_member(
        band_id, profile.id, profile.display_name, None, status="invited"
    )
    logger.info(f"Invitation {member.id}: band {band_id} -> profile {profile.id}")
    return member


def respond_to_invite(band_id, profile_id, accept):
    """Invitee accepts (invited -> approved) or declines (invited -> rejected)."""
    member = get_membership(band_id, profile_id)
    if member is None:
        raise LookupError("Invitation not found.")

    to_status = "approved" if accept else "rejected"
    _transition(member.id, band_id, "invited", to_status, profile_id=profile_id)
    return db.session.get(BandMember, member.id)


# ──────────────────────────────────────────────
# Listings
# ──────────────────────────────────────────────

def approved_members(band_id):
    return (
        BandMember.query.filter_by(band_id=band_id, status="approved")
        .order_by(BandMember.display_order, BandMember.created_at)
        .all()
    )


def pending_requests(band_id):
    return (
        BandMember.query.filter_by(band_id=band_id, status="pending")
        .order_by(BandMember.created_at)
        .all()
    )


def outstanding_invitations(band_id):
    return (
        BandMember.query.filter_by(band_id=band_id, status="invited")
        .order_by(BandMember.created_at)
        .all()
    )


def serialize_member(member):
    return {
        "id": member.id,
        "bandId": member.band_id,
        "profileId": member.profile_id,
        "name": member.name,
        "instruments": member.instruments,
        "role": member.role,
        "status": member.status,
        "displayOrder": member.display_order,
        "joinYear": member.join_year,
        "country": member.country,
    }
