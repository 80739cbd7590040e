"""Notification service — best-effort in-app notifications.

Call notify() only AFTER the triggering change has been committed: it
commits its own row, and on failure it logs, rolls back and returns
None so the triggering action still succeeds.
"""

import logging

from sqlalchemy.exc import SQLAlchemyError

from metalist.extensions import db
from metalist.models.notification import Notification

logger = logging.getLogger(__name__)


def notify(user_id, title, body=None, href=None):
    """Create a notification for `user_id`. Returns it, or None on failure."""
    if not user_id:
        return None
    try:
        notification = Notification(user_id=user_id, title=title, body=body, href=href)
        db.session.add(notification)
        db.session.commit()
        return notification
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.warning(f"Notification for {user_id} failed ({title}): {e}")
        return None
