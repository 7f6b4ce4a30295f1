"""
Domain-specific exceptions for groups app.

These exceptions represent business rule violations and should be
caught in views and converted to appropriate HTTP responses. Each class
carries a stable ``code`` clients can branch on.
"""


class GroupsServiceError(Exception):
    """Base exception for all groups service errors."""
    code = 'groups_error'


# Not found --------------------------------------------------------------

class GroupNotFoundError(GroupsServiceError):
    """Raised when a group does not exist or is inaccessible."""
    code = 'group_not_found'


class InvitationNotFoundError(GroupsServiceError):
    """Raised when an invitation does not exist for the given group."""
    code = 'invitation_not_found'


class InviteCodeNotFoundError(GroupsServiceError):
    """Raised when no active invite code matches."""
    code = 'invite_code_not_found'


class MembershipNotFoundError(GroupsServiceError):
    """Raised when the user targeted by a removal is not in the group."""
    code = 'membership_not_found'


class NotMemberError(GroupsServiceError):
    """Raised when a user tries to perform an action requiring membership."""
    code = 'not_member'


# Forbidden --------------------------------------------------------------

class InsufficientPermissionsError(GroupsServiceError):
    """Raised when a user lacks required permissions for an action."""
    code = 'forbidden'


class OwnerCannotLeaveError(GroupsServiceError):
    """Raised when a group owner tries to leave their group."""
    code = 'owner_cannot_leave'


class CannotRemoveOwnerError(GroupsServiceError):
    """Raised when attempting to remove the group owner."""
    code = 'cannot_remove_owner'


class CannotRemoveSelfError(GroupsServiceError):
    """Raised when a user tries to remove themselves instead of leaving."""
    code = 'cannot_remove_self'


# Validation -------------------------------------------------------------

class GroupValidationError(GroupsServiceError):
    """Raised when group fields fail validation."""
    code = 'validation_error'

    def __init__(self, field_errors):
        self.field_errors = dict(field_errors)
        super().__init__('; '.join(f"{k}: {v}" for k, v in self.field_errors.items()))


class InvalidInviteCodeError(GroupsServiceError):
    """Raised when an invite code is malformed."""
    code = 'invalid_invite_code'


# Conflict ---------------------------------------------------------------

class AlreadyMemberError(GroupsServiceError):
    """Raised when a user is already in the group."""
    code = 'already_member'


class InvitationPendingError(GroupsServiceError):
    """Raised when an unexpired invitation already exists for the email."""
    code = 'invitation_pending'


# Invitation state -------------------------------------------------------

class InvalidInvitationTokenError(GroupsServiceError):
    """Raised when the presented token does not match the stored digest."""
    code = 'invalid_token'


class InvitationExpiredError(GroupsServiceError):
    """Raised when an invitation is past its expiry."""
    code = 'expired'


class InvitationAlreadyUsedError(GroupsServiceError):
    """Raised when an invitation has already been accepted."""
    code = 'already_used'


# Internal ---------------------------------------------------------------

class InviteCodeGenerationError(GroupsServiceError):
    """Raised when a unique invite code could not be generated."""
    code = 'internal_error'
