"""
Profile store.

Minimal lookup/insert surface over Profile used by the groups and
activity apps.
"""

import logging
from typing import Dict, Iterable, List, Optional
from uuid import UUID

from django.db import transaction, IntegrityError
from django.db.models import Q

from apps.accounts.models import Profile, User

from .exceptions import ProfileProvisioningError

logger = logging.getLogger(__name__)

PROFILE_SEARCH_MIN_LENGTH = 2
PROFILE_SEARCH_LIMIT = 10


def ensure_profile_exists(user: User) -> Profile:
    """
    Return the user's profile, creating a minimal one if it is missing.

    Users created before signup-time provisioning ran have no profile row.
    The lazy row is keyed by the user id and seeded from the email.
    Safe to call repeatedly and from concurrent requests.

    Raises:
        ProfileProvisioningError: If the row can neither be created nor read back
    """
    profile = Profile.objects.filter(user_id=user.id).first()
    if profile is not None:
        return profile

    try:
        with transaction.atomic():
            profile = Profile.objects.create(
                user=user,
                email=user.email,
                display_name=user.email.split('@')[0],
            )
    except IntegrityError:
        # A concurrent request created it first
        profile = Profile.objects.filter(user_id=user.id).first()
        if profile is None:
            raise ProfileProvisioningError(f"Could not create profile for user {user.id}")
        return profile

    logger.info("Provisioned missing profile for user %s", user.id)
    return profile


def get_profile_by_email(email: str) -> Optional[Profile]:
    """Case-insensitive profile lookup by email."""
    return (
        Profile.objects
        .filter(email__iexact=email.strip())
        .select_related('user')
        .first()
    )


def get_profiles_by_ids(user_ids: Iterable[UUID]) -> Dict[UUID, Profile]:
    """Batch lookup keyed by user id."""
    ids = set(user_ids)
    if not ids:
        return {}
    return {profile.user_id: profile for profile in Profile.objects.filter(user_id__in=ids)}


def search_profiles(*, query: Optional[str], exclude_user: User) -> List[Profile]:
    """
    Profiles whose email or display name contains ``query``.

    Used to pick people when creating a group. Queries shorter than
    ``PROFILE_SEARCH_MIN_LENGTH`` match nothing and the caller never
    appears in their own results.
    """
    query = (query or '').strip()
    if len(query) < PROFILE_SEARCH_MIN_LENGTH:
        return []

    return list(
        Profile.objects
        .exclude(user_id=exclude_user.id)
        .filter(Q(email__icontains=query) | Q(display_name__icontains=query))
        .order_by('display_name', 'email')[:PROFILE_SEARCH_LIMIT]
    )
