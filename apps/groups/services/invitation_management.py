"""
Invitation management service.

Email invitations carry a single-use secret token. Only its sha256 digest
is stored, so a leaked database row cannot be turned into a working link.
"""

import logging
from datetime import timedelta
from typing import Optional
from urllib.parse import urlencode
from uuid import UUID

from django.conf import settings
from django.db import transaction, IntegrityError
from django.db.models import QuerySet
from django.utils import timezone

from apps.accounts.models import User
from apps.accounts.services import get_profile_by_email
from apps.activity.models import ActivityType
from apps.activity.services import record_activity
from apps.groups.models import Group, GroupMembership, Invitation
from apps.groups.notifications import send_invitation_email

from .exceptions import (
    GroupNotFoundError,
    AlreadyMemberError,
    InvitationAlreadyUsedError,
    InvitationExpiredError,
    InvitationNotFoundError,
    InvitationPendingError,
    InvalidInvitationTokenError,
    NotMemberError,
)
from .membership_management import add_member, is_member, require_member
from .tokens import generate_secure_token, hash_token, verify_token

logger = logging.getLogger(__name__)


def build_invite_url(*, invitation_id: UUID, token: str, group_id: UUID) -> str:
    """Frontend link that lands on the accept screen."""
    query = urlencode({
        'invitation': str(invitation_id),
        'token': token,
        'group': str(group_id),
    })
    return f"{settings.APP_URL.rstrip('/')}/join?{query}"


def _dispatch_invitation_email(
    *,
    invitation_id: UUID,
    email: str,
    token: str,
    group: Group,
    inviter: User
) -> bool:
    """
    Best-effort send of the invitation email.

    The invitation is already committed when this runs. A failed send is
    logged and the invitation stays valid; the inviter can resend it.
    """
    invite_url = build_invite_url(invitation_id=invitation_id, token=token, group_id=group.id)
    try:
        send_invitation_email(
            to=email,
            group_name=group.name,
            inviter_name=inviter.get_display_name(),
            invite_url=invite_url,
        )
    except Exception:
        logger.warning(
            "Failed to send invitation %s email for group %s",
            invitation_id, group.id, exc_info=True
        )
        return False
    return True


def _get_group(group_id: UUID) -> Group:
    try:
        return Group.objects.get(id=group_id)
    except Group.DoesNotExist:
        raise GroupNotFoundError(f"Group with ID {group_id} not found")


@transaction.atomic
def send_invitation(*, group_id: UUID, inviter: User, email: str) -> Invitation:
    """
    Invite an email address to a group.

    An expired, unaccepted invitation for the same address is replaced.
    The email goes out after the transaction commits.

    Args:
        group_id: UUID of the group
        inviter: Member sending the invitation
        email: Address to invite

    Returns:
        Created Invitation instance

    Raises:
        GroupNotFoundError: If group doesn't exist
        NotMemberError: If inviter is not a member
        AlreadyMemberError: If the address belongs to a current member
        InvitationPendingError: If an unexpired invitation already exists
    """
    group = _get_group(group_id)

    if not is_member(group.id, inviter.id):
        raise NotMemberError("Only group members can send invitations")

    email = email.strip().lower()

    profile = get_profile_by_email(email)
    if profile is not None and is_member(group.id, profile.user_id):
        raise AlreadyMemberError(f"{email} is already a member of {group.name}")

    existing = (
        Invitation.objects
        .select_for_update()
        .filter(group=group, email=email, accepted_at__isnull=True)
        .first()
    )
    if existing is not None:
        if not existing.is_expired:
            raise InvitationPendingError(f"An invitation for {email} is already pending")
        existing.delete()

    token = generate_secure_token()
    try:
        with transaction.atomic():
            invitation = Invitation.objects.create(
                group=group,
                email=email,
                token_hash=hash_token(token),
                expires_at=timezone.now() + timedelta(days=settings.INVITATION_TTL_DAYS),
                invited_by=inviter,
            )
    except IntegrityError:
        raise InvitationPendingError(f"An invitation for {email} is already pending")

    transaction.on_commit(
        lambda: _dispatch_invitation_email(
            invitation_id=invitation.id,
            email=email,
            token=token,
            group=group,
            inviter=inviter,
        )
    )

    logger.info("User %s invited an address to group %s (invitation %s)", inviter.id, group.id, invitation.id)
    return invitation


@transaction.atomic
def resend_invitation(*, invitation_id: UUID, user: User) -> Invitation:
    """
    Re-issue the token of a pending invitation and email it again.

    The old link stops working. Expiry is not extended.

    Raises:
        InvitationNotFoundError: If the invitation doesn't exist
        NotMemberError: If user is not a member of the invitation's group
        InvitationAlreadyUsedError: If it was accepted already
        InvitationExpiredError: If it is past its expiry
    """
    try:
        invitation = (
            Invitation.objects
            .select_for_update()
            .select_related('group')
            .get(id=invitation_id)
        )
    except Invitation.DoesNotExist:
        raise InvitationNotFoundError("Invitation not found")

    if not is_member(invitation.group_id, user.id):
        raise NotMemberError("Only group members can resend invitations")

    if invitation.is_accepted:
        raise InvitationAlreadyUsedError("This invitation has already been used")
    if invitation.is_expired:
        raise InvitationExpiredError("This invitation has expired")

    token = generate_secure_token()
    invitation.token_hash = hash_token(token)
    invitation.save(update_fields=['token_hash'])

    group = invitation.group
    transaction.on_commit(
        lambda: _dispatch_invitation_email(
            invitation_id=invitation.id,
            email=invitation.email,
            token=token,
            group=group,
            inviter=user,
        )
    )

    logger.info("User %s resent invitation %s", user.id, invitation.id)
    return invitation


def accept_invitation(
    *,
    invitation_id: UUID,
    token: str,
    group_id: UUID,
    user: User
) -> GroupMembership:
    """
    Accept an email invitation.

    Checks run in a fixed order and the first failure wins. The
    accepted_at write is conditional on the row still being unaccepted, so
    two concurrent accepts cannot both succeed.

    Args:
        invitation_id: UUID of the invitation
        token: Raw token from the invite link
        group_id: Group the link claims to be for
        user: User accepting

    Returns:
        Created GroupMembership instance

    Raises:
        InvitationNotFoundError: If no such invitation exists for group_id
        InvalidInvitationTokenError: If the token doesn't match
        InvitationExpiredError: If the invitation is past its expiry
        InvitationAlreadyUsedError: If it was accepted already
        AlreadyMemberError: If the user already belongs to the group
    """
    invitation = _find_invitation(invitation_id=invitation_id, group_id=group_id)
    if invitation is None:
        raise InvitationNotFoundError("Invitation not found")

    if not verify_token(token, invitation.token_hash):
        raise InvalidInvitationTokenError("Invalid invitation token")

    if invitation.is_expired:
        raise InvitationExpiredError("This invitation has expired")

    if invitation.is_accepted:
        raise InvitationAlreadyUsedError("This invitation has already been used")

    if is_member(invitation.group_id, user.id):
        raise AlreadyMemberError("You are already a member of this group")

    # AlreadyMemberError from add_member rolls the accepted_at write back
    with transaction.atomic():
        updated = (
            Invitation.objects
            .filter(id=invitation.id, accepted_at__isnull=True)
            .update(accepted_at=timezone.now())
        )
        if updated == 0:
            raise InvitationAlreadyUsedError("This invitation has already been used")

        membership = add_member(group=invitation.group, user=user)

    record_activity(
        group_id=invitation.group_id,
        user_id=user.id,
        activity_type=ActivityType.MEMBER_JOINED,
    )
    logger.info("User %s accepted invitation %s to group %s", user.id, invitation.id, invitation.group_id)

    return membership


def _find_invitation(*, invitation_id: UUID, group_id: UUID) -> Optional[Invitation]:
    return (
        Invitation.objects
        .select_related('group')
        .filter(id=invitation_id, group_id=group_id)
        .first()
    )


def list_pending_invitations(*, group_id: UUID, user: User) -> QuerySet[Invitation]:
    """
    Unaccepted, unexpired invitations of a group, newest first.

    Raises:
        GroupNotFoundError: If group doesn't exist
        NotMemberError: If user is not a member
    """
    group = _get_group(group_id)
    require_member(group_id=group.id, user=user)

    return (
        Invitation.objects
        .filter(group=group, accepted_at__isnull=True, expires_at__gt=timezone.now())
        .select_related('invited_by', 'invited_by__profile')
        .order_by('-created_at')
    )
