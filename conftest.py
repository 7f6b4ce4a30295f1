import pytest
from django.conf import settings
from django.core.cache import caches
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken

from apps.accounts.models import User, Profile


def make_user(email, display_name=None, password='TestPass123!', with_profile=True, **extra):
    """Create a user and, unless told otherwise, their profile."""
    user = User.objects.create_user(email=email, password=password, **extra)
    if with_profile:
        Profile.objects.create(
            user=user,
            email=user.email,
            display_name=display_name if display_name is not None else email.split('@')[0],
        )
    return user


def client_for(user):
    """Return an API client authenticated as ``user`` via JWT."""
    client = APIClient()
    refresh = RefreshToken.for_user(user)
    client.credentials(HTTP_AUTHORIZATION=f'Bearer {refresh.access_token}')
    return client


@pytest.fixture(autouse=True)
def clear_throttle_cache():
    """Rate-limit counters must not leak between tests."""
    caches[settings.THROTTLE_CACHE_ALIAS].clear()
    yield
    caches[settings.THROTTLE_CACHE_ALIAS].clear()


@pytest.fixture
def api_client():
    """Return an unauthenticated API client."""
    return APIClient()


@pytest.fixture
def user(db):
    """Create and return a test user."""
    return make_user('testuser@example.com', display_name='Test User')


@pytest.fixture
def other_user(db):
    """Create and return another test user."""
    return make_user('otheruser@example.com', display_name='Other User', password='OtherPass123!')


@pytest.fixture
def third_user(db):
    return make_user('thirduser@example.com', display_name='Third User')


@pytest.fixture
def user_without_profile(db):
    """A user created before profiles were provisioned at signup."""
    return make_user('noprofile@example.com', with_profile=False)


@pytest.fixture
def user_inactive(db):
    """Create and return an inactive user."""
    return make_user('inactive@example.com', display_name='Inactive User', is_active=False)


@pytest.fixture
def authenticated_client(user):
    """Return an authenticated API client using JWT."""
    return client_for(user)


@pytest.fixture
def other_client(other_user):
    return client_for(other_user)


@pytest.fixture
def third_client(third_user):
    return client_for(third_user)


@pytest.fixture
def user_factory(db):
    """Return the ``make_user`` helper for tests that need extra users."""
    return make_user


@pytest.fixture
def client_factory():
    """Return the ``client_for`` helper."""
    return client_for
