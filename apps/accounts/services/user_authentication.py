"""
Email and password login.

A successful login also provisions a missing profile so every session
owner can appear in member lists and activity feeds.
"""

import logging

from django.utils import timezone

from apps.accounts.models import User

from .exceptions import InvalidCredentialsError, InactiveAccountError
from .profile_management import ensure_profile_exists

logger = logging.getLogger(__name__)


def authenticate_user(*, email: str, password: str) -> User:
    """
    Resolve a user from login credentials.

    Unknown addresses still pay for one password hash, so response timing
    does not reveal which emails are registered.

    Raises:
        InvalidCredentialsError: If the email is unknown or the password is wrong
        InactiveAccountError: If the account has been deactivated
    """
    user = User.objects.filter(email=email.strip().lower()).first()
    if user is None:
        User().set_password(password)
        raise InvalidCredentialsError("Invalid email or password")

    if not user.check_password(password):
        logger.info("Failed login for user %s", user.id)
        raise InvalidCredentialsError("Invalid email or password")

    if not user.is_active:
        raise InactiveAccountError("Account is deactivated")

    user.last_login = timezone.now()
    User.objects.filter(pk=user.pk).update(last_login=user.last_login)

    ensure_profile_exists(user)
    return user
