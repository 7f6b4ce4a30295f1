"""
Groups app services layer.

Services contain business logic and orchestrate operations across models.
All state-changing operations use transactions and concurrency protection.
"""

from .exceptions import (
    GroupsServiceError,
    GroupNotFoundError,
    InvitationNotFoundError,
    InviteCodeNotFoundError,
    MembershipNotFoundError,
    NotMemberError,
    InsufficientPermissionsError,
    OwnerCannotLeaveError,
    CannotRemoveOwnerError,
    CannotRemoveSelfError,
    GroupValidationError,
    InvalidInviteCodeError,
    AlreadyMemberError,
    InvitationPendingError,
    InvalidInvitationTokenError,
    InvitationExpiredError,
    InvitationAlreadyUsedError,
    InviteCodeGenerationError,
)

from .tokens import (
    generate_secure_token,
    hash_token,
    verify_token,
)

from .membership_management import (
    get_membership,
    is_member,
    require_member,
    require_owner,
    add_member,
    leave_group,
    remove_member,
    get_group_members,
)

from .invite_codes import (
    RedeemResult,
    generate_invite_code,
    list_active_invite_codes,
    get_or_create_invite_code,
    normalize_invite_code,
    redeem_invite_code,
)

from .invitation_management import (
    send_invitation,
    resend_invitation,
    accept_invitation,
    list_pending_invitations,
)

from .group_management import (
    CreateGroupResult,
    validate_group_fields,
    create_group,
    get_group_by_id,
    get_group_for_member,
    update_group,
    delete_group,
    list_user_groups,
    search_user_groups,
)


__all__ = [
    # Exceptions
    'GroupsServiceError',
    'GroupNotFoundError',
    'InvitationNotFoundError',
    'InviteCodeNotFoundError',
    'MembershipNotFoundError',
    'NotMemberError',
    'InsufficientPermissionsError',
    'OwnerCannotLeaveError',
    'CannotRemoveOwnerError',
    'CannotRemoveSelfError',
    'GroupValidationError',
    'InvalidInviteCodeError',
    'AlreadyMemberError',
    'InvitationPendingError',
    'InvalidInvitationTokenError',
    'InvitationExpiredError',
    'InvitationAlreadyUsedError',
    'InviteCodeGenerationError',

    # Tokens
    'generate_secure_token',
    'hash_token',
    'verify_token',

    # Membership
    'get_membership',
    'is_member',
    'require_member',
    'require_owner',
    'add_member',
    'leave_group',
    'remove_member',
    'get_group_members',

    # Invite codes
    'RedeemResult',
    'generate_invite_code',
    'list_active_invite_codes',
    'get_or_create_invite_code',
    'normalize_invite_code',
    'redeem_invite_code',

    # Invitations
    'send_invitation',
    'resend_invitation',
    'accept_invitation',
    'list_pending_invitations',

    # Group lifecycle
    'CreateGroupResult',
    'validate_group_fields',
    'create_group',
    'get_group_by_id',
    'get_group_for_member',
    'update_group',
    'delete_group',
    'list_user_groups',
    'search_user_groups',
]
