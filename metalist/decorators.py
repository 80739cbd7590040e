"""
Custom route decorators for access control.

- band_leader_required: ensures user is logged in AND holds the approved
  leader membership of the band named by the band_id URL argument.
"""

from functools import wraps

from flask import abort, g
from flask_login import current_user, login_required

from metalist.extensions import db


def band_leader_required(f):
    """Require login + approved leader membership of <band_id>. Sets g.band."""

    @wraps(f)
    @login_required
    def decorated(*args, **kwargs):
        from metalist.models.band import Band
        from metalist.services.membership_service import is_band_leader

        band = db.session.get(Band, kwargs.get("band_id"))
        if band is None:
            abort(404)

        if not is_band_leader(band.id, current_user.id):
            abort(403)

        g.band = band
        return f(*args, **kwargs)

    return decorated
