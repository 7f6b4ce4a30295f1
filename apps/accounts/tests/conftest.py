import pytest

from apps.accounts.models import Profile


@pytest.fixture
def profile(user):
    """The test user's profile."""
    return Profile.objects.get(user=user)
