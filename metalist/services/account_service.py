"""Account service — self-service account deletion."""

import logging

from metalist.extensions import db
from metalist.models.profile import Profile
from metalist.models.user import User

logger = logging.getLogger(__name__)


def delete_account(user_id):
    """Delete the profile (cascading to everything it owns), then the user.

    The two deletes are flushed separately so the profile cascade runs
    before the auth identity goes. Commits on success; on a database
    error rolls back and re-raises.
    """
    try:
        profile = db.session.get(Profile, user_id)
        if profile is not None:
            db.session.delete(profile)
            db.session.flush()

        user = db.session.get(User, user_id)
        if user is not None:
            db.session.delete(user)
            db.session.flush()

        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    logger.info(f"Account {user_id} deleted")
