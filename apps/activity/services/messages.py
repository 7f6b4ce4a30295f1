"""
Human-readable rendering of feed entries.

Pure functions over enriched entries as returned by the query service.
"""

from typing import Any, Dict

from apps.activity.models import ActivityType

DEFAULT_COLOR = '#9AA3AD'

ACTIVITY_COLORS = {
    ActivityType.GROUP_CREATED.value: '#F59E0B',
    ActivityType.MOVIE_RATED.value: '#D4AF37',
    ActivityType.RATING_UPDATED.value: '#D4AF37',
    ActivityType.MOVIE_ADDED.value: '#10B981',
    ActivityType.WATCHLIST_ADDED.value: '#16C7D9',
    ActivityType.COMMENT_ADDED.value: '#8B5CF6',
    ActivityType.MEMBER_JOINED.value: '#3B82F6',
    ActivityType.MEMBER_LEFT.value: '#6B7280',
}


def _user_name(entry: Dict[str, Any]) -> str:
    # Snapshot first: a member who left may have no profile any more
    metadata = entry.get('metadata') or {}
    if metadata.get('user_name'):
        return metadata['user_name']
    profile = entry.get('profile') or {}
    return profile.get('display_name') or 'Someone'


def get_activity_message(entry: Dict[str, Any]) -> str:
    """One-line description of an enriched feed entry."""
    user_name = _user_name(entry)
    movie = entry.get('movie') or {}
    movie_title = movie.get('title') or 'a movie'
    group_name = (entry.get('group') or {}).get('name') or 'Group'
    metadata = entry.get('metadata') or {}
    activity_type = entry.get('activity_type')
    score = metadata.get('score')
    score_text = f" {score}/10" if score is not None else ''

    if activity_type == ActivityType.GROUP_CREATED:
        return f"{user_name} created the circle {group_name}"
    if activity_type == ActivityType.MOVIE_RATED:
        return f'{user_name} rated "{movie_title}"{score_text} in {group_name}'
    if activity_type == ActivityType.RATING_UPDATED:
        if score is None:
            return f'{user_name} updated their rating of "{movie_title}" in {group_name}'
        return f'{user_name} updated their rating of "{movie_title}" to {score}/10 in {group_name}'
    if activity_type == ActivityType.MOVIE_ADDED:
        return f'{user_name} logged "{movie_title}" as watched in {group_name}'
    if activity_type == ActivityType.WATCHLIST_ADDED:
        return f'{user_name} added "{movie_title}" to the {group_name} watchlist'
    if activity_type == ActivityType.COMMENT_ADDED:
        return f'{user_name} commented on "{movie_title}" in {group_name}'
    if activity_type == ActivityType.MEMBER_JOINED:
        return f"{user_name} joined {group_name}"
    if activity_type == ActivityType.MEMBER_LEFT:
        return f"{user_name} left {group_name}"
    return f"{user_name} did something in {group_name}"


def get_activity_color(activity_type: str) -> str:
    """Hex colour hint for the feed icon."""
    return ACTIVITY_COLORS.get(str(activity_type), DEFAULT_COLOR)
