import pytest

from apps.accounts.models import Profile
from apps.accounts.services import (
    register_user,
    authenticate_user,
    ensure_profile_exists,
    get_profile_by_email,
    get_profiles_by_ids,
    search_profiles,
    UserRegistrationError,
    InvalidCredentialsError,
    InactiveAccountError,
)


@pytest.mark.django_db
class TestRegisterUser:

    def test_creates_user_and_profile(self):
        user = register_user(email=' New@Example.com ', password='SecurePass123!', display_name='Newbie')

        assert user.email == 'new@example.com'
        assert user.profile.display_name == 'Newbie'

    def test_duplicate_email_raises(self, user):
        with pytest.raises(UserRegistrationError):
            register_user(email=user.email, password='SecurePass123!')

    def test_authenticate_is_case_insensitive(self, user):
        assert authenticate_user(email='TESTUSER@example.com', password='TestPass123!') == user

    def test_authenticate_wrong_password(self, user):
        with pytest.raises(InvalidCredentialsError):
            authenticate_user(email=user.email, password='nope')

    def test_authenticate_unknown_email(self, db):
        with pytest.raises(InvalidCredentialsError):
            authenticate_user(email='ghost@example.com', password='TestPass123!')

    def test_authenticate_inactive(self, user_inactive):
        with pytest.raises(InactiveAccountError):
            authenticate_user(email=user_inactive.email, password='TestPass123!')

    def test_authenticate_records_last_login(self, user):
        authenticate_user(email=user.email, password='TestPass123!')

        user.refresh_from_db()
        assert user.last_login is not None

    def test_authenticate_provisions_missing_profile(self, user_without_profile):
        authenticate_user(email=user_without_profile.email, password='TestPass123!')

        assert Profile.objects.filter(user=user_without_profile).exists()


@pytest.mark.django_db
class TestEnsureProfileExists:

    def test_returns_existing_profile(self, user):
        profile = ensure_profile_exists(user)

        assert profile.display_name == 'Test User'
        assert Profile.objects.filter(user=user).count() == 1

    def test_creates_missing_profile(self, user_without_profile):
        profile = ensure_profile_exists(user_without_profile)

        assert profile.user_id == user_without_profile.id
        assert profile.email == 'noprofile@example.com'
        assert profile.display_name == 'noprofile'

    def test_is_idempotent(self, user_without_profile):
        first = ensure_profile_exists(user_without_profile)
        second = ensure_profile_exists(user_without_profile)

        assert first.pk == second.pk
        assert Profile.objects.filter(user=user_without_profile).count() == 1


@pytest.mark.django_db
class TestProfileLookups:

    def test_get_profile_by_email_ignores_case(self, user):
        profile = get_profile_by_email('TestUser@Example.com')
        assert profile is not None
        assert profile.user_id == user.id

    def test_get_profile_by_email_missing(self):
        assert get_profile_by_email('nobody@example.com') is None

    def test_get_profiles_by_ids(self, user, other_user, user_without_profile):
        profiles = get_profiles_by_ids([user.id, other_user.id, user_without_profile.id])

        assert set(profiles) == {user.id, other_user.id}

    def test_get_profiles_by_ids_empty(self):
        assert get_profiles_by_ids([]) == {}


@pytest.mark.django_db
class TestSearchProfiles:

    def test_matches_email_and_display_name(self, user, other_user, third_user):
        by_name = search_profiles(query='Third', exclude_user=user)
        by_email = search_profiles(query='otheruser@', exclude_user=user)

        assert [p.user_id for p in by_name] == [third_user.id]
        assert [p.user_id for p in by_email] == [other_user.id]

    def test_is_case_insensitive(self, user, third_user):
        results = search_profiles(query='tHiRd', exclude_user=user)

        assert [p.user_id for p in results] == [third_user.id]

    def test_excludes_caller(self, user, other_user, third_user):
        results = search_profiles(query='user', exclude_user=user)

        assert {p.user_id for p in results} == {other_user.id, third_user.id}

    @pytest.mark.parametrize('query', [None, '', ' ', 'o', '  t  '])
    def test_short_query_matches_nothing(self, user, other_user, query):
        assert search_profiles(query=query, exclude_user=user) == []

    def test_caps_results(self, user, user_factory):
        for i in range(12):
            user_factory(f'friend{i}@example.com', display_name=f'Friend {i}')

        assert len(search_profiles(query='friend', exclude_user=user)) == 10
