"""
Activity app services layer.

Recording is fire-and-forget; queries return enriched pages.
"""

from .exceptions import (
    ActivityServiceError,
    ActivityAccessDeniedError,
)

from .recording import record_activity

from .queries import (
    ActivityPage,
    ACTIVITY_FILTERS,
    get_activity_types_for_filter,
    clamp_page,
    enrich_activities,
    get_user_activities,
    get_group_activities,
)

from .messages import (
    get_activity_message,
    get_activity_color,
)


__all__ = [
    # Exceptions
    'ActivityServiceError',
    'ActivityAccessDeniedError',

    # Recording
    'record_activity',

    # Queries
    'ActivityPage',
    'ACTIVITY_FILTERS',
    'get_activity_types_for_filter',
    'clamp_page',
    'enrich_activities',
    'get_user_activities',
    'get_group_activities',

    # Messages
    'get_activity_message',
    'get_activity_color',
]
