"""
Membership management service.

The membership table is the single authorization source for group-scoped
actions. Other services authorize through ``is_member`` and
``require_member`` instead of querying memberships themselves.
"""

import logging
from typing import Optional
from uuid import UUID

from django.db import transaction, IntegrityError
from django.db.models import Case, IntegerField, QuerySet, Value, When

from apps.accounts.models import User
from apps.activity.models import ActivityType
from apps.activity.services import record_activity
from apps.groups.models import Group, GroupMembership, GroupRole

from .exceptions import (
    GroupNotFoundError,
    AlreadyMemberError,
    NotMemberError,
    OwnerCannotLeaveError,
    CannotRemoveOwnerError,
    CannotRemoveSelfError,
    MembershipNotFoundError,
    InsufficientPermissionsError,
)

logger = logging.getLogger(__name__)


def get_membership(group_id: UUID, user_id: UUID) -> Optional[GroupMembership]:
    """Return the (group, user) membership or None."""
    return (
        GroupMembership.objects
        .filter(group_id=group_id, user_id=user_id)
        .first()
    )


def is_member(group_id: UUID, user_id: UUID) -> bool:
    return GroupMembership.objects.filter(group_id=group_id, user_id=user_id).exists()


def require_member(*, group_id: UUID, user: User) -> GroupMembership:
    """
    Return the caller's membership.

    Raises:
        NotMemberError: If the user does not belong to the group
    """
    membership = get_membership(group_id, user.id)
    if membership is None:
        raise NotMemberError("You are not a member of this group")
    return membership


def require_owner(*, group_id: UUID, user: User) -> GroupMembership:
    """
    Return the caller's membership if it carries the owner role.

    Raises:
        InsufficientPermissionsError: If the user is not the owner
    """
    membership = get_membership(group_id, user.id)
    if membership is None or membership.role != GroupRole.OWNER:
        raise InsufficientPermissionsError("Only the group owner can do this")
    return membership


def add_member(
    *,
    group: Group,
    user: User,
    role: str = GroupRole.MEMBER
) -> GroupMembership:
    """
    Insert a membership row.

    The insert runs in a savepoint so a duplicate leaves the caller's
    transaction usable.

    Raises:
        AlreadyMemberError: If the (group, user) pair already exists
    """
    try:
        with transaction.atomic():
            return GroupMembership.objects.create(
                user=user,
                group=group,
                role=role
            )
    except IntegrityError:
        raise AlreadyMemberError(f"User is already a member of {group.name}")


@transaction.atomic
def leave_group(*, group_id: UUID, user: User) -> None:
    """
    Leave a group.

    The owner cannot leave; they have to delete the group instead. The
    leaver's display name is stored on the member_left entry because their
    profile may be gone by the time the feed is read.

    Args:
        group_id: UUID of the group
        user: User leaving the group

    Raises:
        GroupNotFoundError: If group doesn't exist
        NotMemberError: If user is not a member
        OwnerCannotLeaveError: If user is the owner
    """
    if not Group.objects.filter(id=group_id).exists():
        raise GroupNotFoundError(f"Group with ID {group_id} not found")

    try:
        membership = (
            GroupMembership.objects
            .select_for_update()
            .get(group_id=group_id, user=user)
        )
    except GroupMembership.DoesNotExist:
        raise NotMemberError("You are not a member of this group")

    if membership.role == GroupRole.OWNER:
        raise OwnerCannotLeaveError(
            "Group owner cannot leave. Delete the group instead."
        )

    user_name = user.get_display_name()
    membership.delete()

    record_activity(
        group_id=group_id,
        user_id=user.id,
        activity_type=ActivityType.MEMBER_LEFT,
        metadata={'user_name': user_name},
    )
    logger.info("User %s left group %s", user.id, group_id)


@transaction.atomic
def remove_member(
    *,
    group_id: UUID,
    user_id: UUID,
    removed_by: User
) -> None:
    """
    Remove a member from a group (owner only).

    Args:
        group_id: UUID of the group
        user_id: UUID of the user to remove
        removed_by: User performing the removal (must be owner)

    Raises:
        GroupNotFoundError: If group doesn't exist
        InsufficientPermissionsError: If removed_by is not the owner
        CannotRemoveSelfError: If the owner targets themselves
        CannotRemoveOwnerError: If the target holds the owner role
        MembershipNotFoundError: If target user is not a member
    """
    if not Group.objects.filter(id=group_id).exists():
        raise GroupNotFoundError(f"Group with ID {group_id} not found")

    require_owner(group_id=group_id, user=removed_by)

    if str(removed_by.id) == str(user_id):
        raise CannotRemoveSelfError("Use leave instead of removing yourself")

    try:
        membership = (
            GroupMembership.objects
            .select_for_update()
            .get(group_id=group_id, user_id=user_id)
        )
    except GroupMembership.DoesNotExist:
        raise MembershipNotFoundError("User is not a member of this group")

    if membership.role == GroupRole.OWNER:
        raise CannotRemoveOwnerError("Cannot remove the group owner")

    membership.delete()
    logger.info("User %s removed %s from group %s", removed_by.id, user_id, group_id)


def get_group_members(*, group_id: UUID, user: User) -> QuerySet[GroupMembership]:
    """
    Get all members of a group, owner first then by join date.

    Raises:
        GroupNotFoundError: If group doesn't exist
        NotMemberError: If the caller is not a member
    """
    if not Group.objects.filter(id=group_id).exists():
        raise GroupNotFoundError(f"Group with ID {group_id} not found")

    require_member(group_id=group_id, user=user)

    return (
        GroupMembership.objects
        .filter(group_id=group_id)
        .select_related('user', 'user__profile')
        .annotate(
            owner_first=Case(
                When(role=GroupRole.OWNER, then=Value(0)),
                default=Value(1),
                output_field=IntegerField(),
            )
        )
        .order_by('owner_first', 'joined_at')
    )
