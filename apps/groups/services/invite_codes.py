"""
Invite code service.

Short human-typeable codes that let anyone holding one join a group.
Codes are reusable until deactivated.
"""

import logging
import re
import secrets
from typing import NamedTuple
from uuid import UUID

from django.db import transaction, IntegrityError
from django.db.models import QuerySet

from apps.accounts.models import User
from apps.activity.models import ActivityType
from apps.activity.services import record_activity
from apps.groups.models import Group, InviteCode

from .exceptions import (
    AlreadyMemberError,
    GroupNotFoundError,
    InvalidInviteCodeError,
    InviteCodeGenerationError,
    InviteCodeNotFoundError,
)
from .membership_management import add_member, is_member, require_member

logger = logging.getLogger(__name__)

# No 0/O or 1/I, codes get read aloud and typed by hand
INVITE_CODE_ALPHABET = 'ABCDEFGHJKLMNPQRSTUVWXYZ23456789'
INVITE_CODE_LENGTH = 6

_NON_ALPHANUMERIC = re.compile(r'[^A-Z0-9]')


class RedeemResult(NamedTuple):
    group: Group
    already_member: bool


def _random_code() -> str:
    return ''.join(secrets.choice(INVITE_CODE_ALPHABET) for _ in range(INVITE_CODE_LENGTH))


def generate_invite_code(
    *,
    group_id: UUID,
    created_by: User,
    max_retries: int = 10
) -> str:
    """
    Create a new active invite code for a group.

    Each attempt inserts inside its own savepoint; the unique constraint on
    ``code`` decides collisions.

    Args:
        group_id: UUID of the group
        created_by: User the code is attributed to
        max_retries: Maximum insert attempts

    Returns:
        The stored code

    Raises:
        InviteCodeGenerationError: If every attempt collided
    """
    for attempt in range(max_retries):
        code = _random_code()
        try:
            with transaction.atomic():
                InviteCode.objects.create(
                    group_id=group_id,
                    code=code,
                    created_by=created_by,
                )
            return code
        except IntegrityError:
            logger.warning(
                "Invite code collision for group %s (attempt %d/%d)",
                group_id, attempt + 1, max_retries
            )

    raise InviteCodeGenerationError(
        f"Failed to generate unique invite code after {max_retries} attempts"
    )


def list_active_invite_codes(*, group_id: UUID) -> QuerySet[InviteCode]:
    """Active codes for the group, newest first."""
    return (
        InviteCode.objects
        .filter(group_id=group_id, is_active=True)
        .order_by('-created_at')
    )


def get_or_create_invite_code(*, group_id: UUID, user: User) -> str:
    """
    Return the group's newest active code, generating one if none exists.

    Raises:
        GroupNotFoundError: If group doesn't exist
        NotMemberError: If the caller is not a member
    """
    if not Group.objects.filter(id=group_id).exists():
        raise GroupNotFoundError(f"Group with ID {group_id} not found")

    require_member(group_id=group_id, user=user)

    existing = list_active_invite_codes(group_id=group_id).first()
    if existing is not None:
        return existing.code

    return generate_invite_code(group_id=group_id, created_by=user)


def normalize_invite_code(raw: str) -> str:
    """
    Canonical form of a user-typed code.

    Strips whitespace and separators and upper-cases, so ``" abc-234 "``
    becomes ``"ABC234"``.

    Raises:
        InvalidInviteCodeError: If the result is not a full-length code
    """
    if not isinstance(raw, str):
        raise InvalidInviteCodeError("Invalid invite code format")

    code = _NON_ALPHANUMERIC.sub('', raw.strip().upper())
    if len(code) != INVITE_CODE_LENGTH:
        raise InvalidInviteCodeError("Invalid invite code format")
    return code


def redeem_invite_code(*, code: str, user: User) -> RedeemResult:
    """
    Join the group behind an active invite code.

    Idempotent for existing members: they get ``already_member=True`` and
    nothing is written.

    Args:
        code: Code as typed by the user
        user: User joining

    Returns:
        RedeemResult with the group and whether the user was already in it

    Raises:
        InvalidInviteCodeError: If the code is malformed
        InviteCodeNotFoundError: If no active code matches
    """
    normalized = normalize_invite_code(code)

    invite_code = (
        InviteCode.objects
        .select_related('group')
        .filter(code=normalized, is_active=True)
        .first()
    )
    if invite_code is None:
        raise InviteCodeNotFoundError("Invalid or expired invite code")

    group = invite_code.group

    if is_member(group.id, user.id):
        return RedeemResult(group=group, already_member=True)

    try:
        add_member(group=group, user=user)
    except AlreadyMemberError:
        # Lost a race against a concurrent redemption by the same user
        return RedeemResult(group=group, already_member=True)

    record_activity(
        group_id=group.id,
        user_id=user.id,
        activity_type=ActivityType.MEMBER_JOINED,
    )
    logger.info("User %s joined group %s with an invite code", user.id, group.id)

    return RedeemResult(group=group, already_member=False)
