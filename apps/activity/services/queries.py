"""
Activity feed queries.

Pages are fetched newest first and enriched with profile, group and movie
data in one batched query per related table.
"""

from typing import Any, Dict, Iterable, List, NamedTuple, Optional
from uuid import UUID

from django.db.models import QuerySet

from apps.accounts.models import User
from apps.accounts.services import get_profiles_by_ids
from apps.activity.models import Activity, ActivityType
from apps.groups.models import Group, GroupMembership
from apps.movies.models import Movie

from .exceptions import ActivityAccessDeniedError

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 50

ACTIVITY_FILTERS = {
    'ratings': [ActivityType.MOVIE_RATED, ActivityType.RATING_UPDATED],
    'watchlist': [ActivityType.WATCHLIST_ADDED, ActivityType.MOVIE_ADDED],
    'comments': [ActivityType.COMMENT_ADDED],
}


class ActivityPage(NamedTuple):
    activities: List[Dict[str, Any]]
    has_more: bool


def get_activity_types_for_filter(filter: Optional[str]) -> Optional[List[str]]:
    """Activity types a filter selects, or None for no restriction."""
    return ACTIVITY_FILTERS.get(filter)


def clamp_page(limit: Any, offset: Any):
    """Coerce paging parameters into a sane range."""
    try:
        limit = int(limit)
    except (TypeError, ValueError):
        limit = DEFAULT_PAGE_SIZE
    try:
        offset = int(offset)
    except (TypeError, ValueError):
        offset = 0
    return min(max(limit, 1), MAX_PAGE_SIZE), max(offset, 0)


def _apply_filter(queryset: QuerySet, filter: Optional[str]) -> QuerySet:
    activity_types = get_activity_types_for_filter(filter)
    if activity_types is not None:
        queryset = queryset.filter(activity_type__in=activity_types)
    return queryset


def _paginate(queryset: QuerySet, limit: Any, offset: Any) -> ActivityPage:
    limit, offset = clamp_page(limit, offset)
    total = queryset.count()
    rows = list(queryset.order_by('-created_at')[offset:offset + limit])
    return ActivityPage(
        activities=enrich_activities(rows),
        has_more=offset + limit < total,
    )


def enrich_activities(rows: Iterable[Activity]) -> List[Dict[str, Any]]:
    """
    Attach profile, group and movie data to raw feed rows.

    Missing rows fall back to placeholders instead of failing the page.
    """
    rows = list(rows)
    if not rows:
        return []

    user_ids = {row.user_id for row in rows}
    group_ids = {row.group_id for row in rows}
    movie_ids = {row.target_movie_id for row in rows if row.target_movie_id}

    profiles = get_profiles_by_ids(user_ids)
    groups = {
        g['id']: g
        for g in Group.objects.filter(id__in=group_ids).values('id', 'name')
    }
    movies = {}
    if movie_ids:
        movies = {
            m['id']: m
            for m in Movie.objects.filter(id__in=movie_ids).values('id', 'title', 'poster_path', 'year')
        }

    entries = []
    for row in rows:
        profile = profiles.get(row.user_id)
        entries.append({
            'id': row.id,
            'group_id': row.group_id,
            'user_id': row.user_id,
            'activity_type': row.activity_type,
            'target_movie_id': row.target_movie_id,
            'target_user_id': row.target_user_id,
            'metadata': row.metadata,
            'created_at': row.created_at,
            'profile': {
                'id': row.user_id,
                'display_name': profile.display_name if profile else None,
                'avatar_url': (profile.avatar_url or None) if profile else None,
            },
            'group': groups.get(row.group_id, {'id': row.group_id, 'name': 'Group'}),
            'movie': movies.get(row.target_movie_id) if row.target_movie_id else None,
        })
    return entries


def get_user_activities(
    *,
    user: User,
    limit: int = DEFAULT_PAGE_SIZE,
    offset: int = 0,
    filter: str = 'all'
) -> ActivityPage:
    """
    Feed across every group the user belongs to.

    Returns an empty page when the user has no groups.
    """
    group_ids = list(
        GroupMembership.objects
        .filter(user=user)
        .values_list('group_id', flat=True)
    )
    if not group_ids:
        return ActivityPage(activities=[], has_more=False)

    queryset = _apply_filter(Activity.objects.filter(group_id__in=group_ids), filter)
    return _paginate(queryset, limit, offset)


def get_group_activities(
    *,
    group_id: UUID,
    user: User,
    limit: int = DEFAULT_PAGE_SIZE,
    offset: int = 0,
    filter: str = 'all'
) -> ActivityPage:
    """
    Feed of a single group.

    Raises:
        ActivityAccessDeniedError: If the user is not a member of the group
    """
    # apps.groups.services imports this package at module level
    from apps.groups.services.membership_management import is_member

    if not is_member(group_id, user.id):
        raise ActivityAccessDeniedError("You are not a member of this group")

    queryset = _apply_filter(Activity.objects.filter(group_id=group_id), filter)
    return _paginate(queryset, limit, offset)
