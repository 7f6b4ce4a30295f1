"""
Group management service.

Handles group CRUD operations with proper transaction safety.
"""

import logging
import re
from typing import Dict, Iterable, List, NamedTuple, Optional
from uuid import UUID

from django.db import transaction
from django.db.models import Count, OuterRef, QuerySet, Subquery

from apps.accounts.models import User
from apps.accounts.services import ensure_profile_exists
from apps.activity.models import ActivityType
from apps.activity.services import record_activity
from apps.groups.models import Group, GroupMembership, GroupRole

from .exceptions import (
    AlreadyMemberError,
    GroupNotFoundError,
    GroupValidationError,
    GroupsServiceError,
    InsufficientPermissionsError,
)
from .invite_codes import generate_invite_code
from .membership_management import add_member, require_member

logger = logging.getLogger(__name__)

GROUP_NAME_MIN_LENGTH = 2
GROUP_NAME_MAX_LENGTH = 100
GROUP_DESCRIPTION_MAX_LENGTH = 500
GROUP_SEARCH_LIMIT = 5

# Letters and digits in any script, underscore, whitespace and hyphen
GROUP_NAME_PATTERN = re.compile(r'^[\w\s\-]+$')


class CreateGroupResult(NamedTuple):
    group: Group
    invite_code: Optional[str]
    failed_member_ids: List[UUID]


def validate_group_fields(
    *,
    name: Optional[str] = None,
    description: Optional[str] = None
) -> Dict[str, str]:
    """
    Validate and clean group fields.

    Only the fields that are passed are checked.

    Returns:
        Dict of cleaned values keyed by field name

    Raises:
        GroupValidationError: With a message per failing field
    """
    errors = {}
    cleaned = {}

    if name is not None:
        name = name.strip()
        if len(name) < GROUP_NAME_MIN_LENGTH:
            errors['name'] = f"Group name must be at least {GROUP_NAME_MIN_LENGTH} characters"
        elif len(name) > GROUP_NAME_MAX_LENGTH:
            errors['name'] = f"Group name must be at most {GROUP_NAME_MAX_LENGTH} characters"
        elif not GROUP_NAME_PATTERN.match(name):
            errors['name'] = "Group name can only contain letters, numbers, spaces, hyphens and underscores"
        else:
            cleaned['name'] = name

    if description is not None:
        description = description.strip()
        if len(description) > GROUP_DESCRIPTION_MAX_LENGTH:
            errors['description'] = f"Description must be at most {GROUP_DESCRIPTION_MAX_LENGTH} characters"
        else:
            cleaned['description'] = description

    if errors:
        raise GroupValidationError(errors)

    return cleaned


def _add_initial_members(*, group: Group, member_ids: Iterable[UUID]) -> List[UUID]:
    """Add each id in its own savepoint; return the ids that could not be added."""
    failed = []
    seen = set()

    for member_id in member_ids:
        key = str(member_id)
        if key in seen or key == str(group.owner_id):
            failed.append(member_id)
            continue
        seen.add(key)

        user = User.objects.filter(id=member_id, is_active=True).first()
        if user is None:
            logger.warning("Skipping unknown member %s while creating group %s", member_id, group.id)
            failed.append(member_id)
            continue

        try:
            add_member(group=group, user=user)
        except AlreadyMemberError:
            logger.warning("Could not add member %s to new group %s", member_id, group.id)
            failed.append(member_id)

    return failed


def create_group(
    *,
    name: str,
    owner: User,
    description: str = '',
    member_ids: Optional[Iterable[UUID]] = None
) -> CreateGroupResult:
    """
    Create a new group with the creator as owner.

    Steps:
    1. Make sure the owner has a profile
    2. Create the group and owner membership in one transaction
    3. Generate the initial invite code
    4. Record group_created
    5. Add the requested members, each independently

    A failed invite code or member add does not undo the group.

    Args:
        name: Group name
        owner: User who will own the group
        description: Optional group description
        member_ids: Optional user ids to add as members

    Returns:
        CreateGroupResult with the group, its invite code (None if it could
        not be generated) and the member ids that were not added

    Raises:
        GroupValidationError: If name or description is invalid
    """
    cleaned = validate_group_fields(name=name, description=description or '')

    ensure_profile_exists(owner)

    with transaction.atomic():
        group = Group.objects.create(
            name=cleaned['name'],
            description=cleaned['description'],
            owner=owner,
        )
        GroupMembership.objects.create(
            user=owner,
            group=group,
            role=GroupRole.OWNER
        )

    try:
        invite_code = generate_invite_code(group_id=group.id, created_by=owner)
    except GroupsServiceError:
        logger.exception("Could not generate initial invite code for group %s", group.id)
        invite_code = None

    record_activity(
        group_id=group.id,
        user_id=owner.id,
        activity_type=ActivityType.GROUP_CREATED,
        metadata={'group_name': group.name},
    )

    failed_member_ids = _add_initial_members(group=group, member_ids=member_ids or [])

    logger.info("User %s created group %s", owner.id, group.id)
    return CreateGroupResult(
        group=group,
        invite_code=invite_code,
        failed_member_ids=failed_member_ids,
    )


def get_group_by_id(*, group_id: UUID) -> Group:
    """
    Get a group by ID.

    Raises:
        GroupNotFoundError: If group doesn't exist
    """
    try:
        return (
            Group.objects
            .select_related('owner')
            .get(id=group_id)
        )
    except Group.DoesNotExist:
        raise GroupNotFoundError(f"Group with ID {group_id} not found")


def get_group_for_member(*, group_id: UUID, user: User) -> Group:
    """
    Get a group the user belongs to.

    Raises:
        GroupNotFoundError: If group doesn't exist
        NotMemberError: If the user is not a member
    """
    group = get_group_by_id(group_id=group_id)
    require_member(group_id=group.id, user=user)
    return group


@transaction.atomic
def update_group(
    *,
    group_id: UUID,
    user: User,
    name: Optional[str] = None,
    description: Optional[str] = None
) -> Group:
    """
    Update group details (owner only).

    Uses select_for_update to prevent concurrent modifications.

    Args:
        group_id: UUID of the group
        user: User performing the update (must be owner)
        name: New name (optional)
        description: New description (optional)

    Returns:
        Updated Group instance

    Raises:
        GroupNotFoundError: If group doesn't exist
        InsufficientPermissionsError: If user is not the owner
        GroupValidationError: If a new value is invalid
    """
    try:
        group = (
            Group.objects
            .select_for_update()
            .get(id=group_id)
        )
    except Group.DoesNotExist:
        raise GroupNotFoundError(f"Group with ID {group_id} not found")

    if not group.is_owner(user):
        raise InsufficientPermissionsError("Only the group owner can update the group")

    cleaned = validate_group_fields(name=name, description=description)

    update_fields = ['updated_at']
    for field, value in cleaned.items():
        setattr(group, field, value)
        update_fields.append(field)

    group.save(update_fields=update_fields)

    return group


@transaction.atomic
def delete_group(*, group_id: UUID, user: User) -> None:
    """
    Delete a group (owner only).

    Cascading deletes will automatically remove:
    - All memberships
    - All invitations and invite codes
    - All activity

    Args:
        group_id: UUID of the group
        user: User requesting deletion (must be owner)

    Raises:
        GroupNotFoundError: If group doesn't exist
        InsufficientPermissionsError: If user is not the owner
    """
    try:
        group = (
            Group.objects
            .select_for_update()
            .get(id=group_id)
        )
    except Group.DoesNotExist:
        raise GroupNotFoundError(f"Group with ID {group_id} not found")

    if not group.is_owner(user):
        raise InsufficientPermissionsError("Only the group owner can delete the group")

    group.delete()
    logger.info("User %s deleted group %s", user.id, group_id)


def list_user_groups(*, user: User) -> QuerySet[Group]:
    """
    Groups the user belongs to, newest first.

    Each group is annotated with ``member_count`` and ``user_role``.
    """
    role = (
        GroupMembership.objects
        .filter(group=OuterRef('pk'), user=user)
        .values('role')[:1]
    )
    member_group_ids = (
        GroupMembership.objects
        .filter(user=user)
        .values('group_id')
    )
    return (
        Group.objects
        .filter(id__in=member_group_ids)
        .annotate(
            member_count=Count('memberships', distinct=True),
            user_role=Subquery(role),
        )
        .order_by('-created_at')
    )


def search_user_groups(*, user: User, query: Optional[str]) -> List[Group]:
    """
    Case-insensitive name search over the groups the user belongs to.

    A blank query matches nothing. At most ``GROUP_SEARCH_LIMIT`` groups are
    returned, newest first.
    """
    query = (query or '').strip()
    if not query:
        return []

    return list(
        list_user_groups(user=user)
        .filter(name__icontains=query)[:GROUP_SEARCH_LIMIT]
    )
