"""Services for accounts business logic."""

from .exceptions import (
    AccountsServiceError,
    UserRegistrationError,
    InvalidCredentialsError,
    InactiveAccountError,
    ProfileProvisioningError,
)
from .user_registration import register_user
from .user_authentication import authenticate_user
from .profile_management import (
    ensure_profile_exists,
    get_profile_by_email,
    get_profiles_by_ids,
    search_profiles,
)

__all__ = [
    # Exceptions
    'AccountsServiceError',
    'UserRegistrationError',
    'InvalidCredentialsError',
    'InactiveAccountError',
    'ProfileProvisioningError',
    # Services
    'register_user',
    'authenticate_user',
    'ensure_profile_exists',
    'get_profile_by_email',
    'get_profiles_by_ids',
    'search_profiles',
]
