"""
Activity recording.

Callers treat recording as fire-and-forget: a missing feed entry never
fails the mutation that produced it.
"""

import logging
from typing import Any, Dict, Optional
from uuid import UUID

from django.db import transaction, DatabaseError

from apps.activity.models import Activity, ActivityType

logger = logging.getLogger(__name__)


def record_activity(
    *,
    group_id: UUID,
    user_id: UUID,
    activity_type: str,
    target_movie_id: Optional[UUID] = None,
    target_user_id: Optional[UUID] = None,
    metadata: Optional[Dict[str, Any]] = None
) -> bool:
    """
    Append an activity entry.

    The insert runs in its own savepoint, so a failure leaves an enclosing
    transaction usable.

    Args:
        group_id: Group the activity belongs to
        user_id: Acting user
        activity_type: One of ActivityType
        target_movie_id: Optional movie the activity refers to
        target_user_id: Optional user the activity refers to
        metadata: Optional free-form JSON (e.g. a rating score)

    Returns:
        True if the entry was stored, False otherwise
    """
    if activity_type not in ActivityType.values:
        logger.error("Refusing to record unknown activity type %r for group %s", activity_type, group_id)
        return False

    try:
        with transaction.atomic():
            Activity.objects.create(
                group_id=group_id,
                user_id=user_id,
                activity_type=activity_type,
                target_movie_id=target_movie_id,
                target_user_id=target_user_id,
                metadata=metadata or None,
            )
    except (DatabaseError, ValueError):
        logger.exception("Error recording %s activity for group %s", activity_type, group_id)
        return False

    return True
