import pytest
from datetime import timedelta
from django.utils import timezone

from apps.activity.models import Activity
from apps.groups.models import Group, GroupMembership, GroupRole
from apps.movies.models import Movie


@pytest.fixture
def group(user, other_user):
    """A group owned by ``user`` with ``other_user`` as member."""
    group = Group.objects.create(name='Movie Club', owner=user)
    GroupMembership.objects.create(user=user, group=group, role=GroupRole.OWNER)
    GroupMembership.objects.create(user=other_user, group=group, role=GroupRole.MEMBER)
    return group


@pytest.fixture
def second_group(user):
    group = Group.objects.create(name='Horror Nights', owner=user)
    GroupMembership.objects.create(user=user, group=group, role=GroupRole.OWNER)
    return group


@pytest.fixture
def movie(db):
    return Movie.objects.create(tmdb_id=603, title='The Matrix', year=1999, poster_path='/matrix.jpg')


@pytest.fixture
def add_activity(user):
    """
    Create feed entries at controlled times.

    ``minutes_ago`` orders entries; larger is older.
    """
    def _add(group, activity_type, minutes_ago=0, actor=None, **fields):
        activity = Activity.objects.create(
            group=group,
            user=actor or user,
            activity_type=activity_type,
            **fields
        )
        Activity.objects.filter(id=activity.id).update(
            created_at=timezone.now() - timedelta(minutes=minutes_ago)
        )
        activity.refresh_from_db()
        return activity

    return _add
