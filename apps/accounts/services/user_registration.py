"""User registration service."""

from django.db import transaction, IntegrityError
from django.contrib.auth import get_user_model

from apps.accounts.models import Profile

from .exceptions import UserRegistrationError

User = get_user_model()


@transaction.atomic
def register_user(
    *,
    email: str,
    password: str,
    display_name: str = ""
) -> User:
    """
    Register a new user together with their profile.

    Args:
        email: User's email address
        password: User's password (will be hashed)
        display_name: Optional display name, defaults to the email prefix

    Returns:
        Created User instance

    Raises:
        UserRegistrationError: If the email is already registered
    """
    email = email.strip().lower()

    try:
        with transaction.atomic():
            user = User.objects.create_user(email=email, password=password)
    except IntegrityError:
        raise UserRegistrationError(f"An account with email {email} already exists")

    Profile.objects.create(
        user=user,
        email=email,
        display_name=display_name or email.split('@')[0],
    )

    return user
