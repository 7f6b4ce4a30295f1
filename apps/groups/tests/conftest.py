import pytest
from datetime import timedelta
from django.utils import timezone

from apps.groups.models import Group, GroupMembership, GroupRole, Invitation, InviteCode
from apps.groups.services.tokens import generate_secure_token, hash_token


@pytest.fixture
def group(user):
    """A group owned by ``user`` with only the owner membership."""
    group = Group.objects.create(
        name='Movie Club',
        description='Friday night films',
        owner=user,
    )
    GroupMembership.objects.create(user=user, group=group, role=GroupRole.OWNER)
    return group


@pytest.fixture
def group_with_member(group, other_user):
    """The test group with ``other_user`` as a plain member."""
    GroupMembership.objects.create(user=other_user, group=group, role=GroupRole.MEMBER)
    return group


@pytest.fixture
def invite_code(group, user):
    """An active invite code for the test group."""
    return InviteCode.objects.create(group=group, code='ABC234', created_by=user)


@pytest.fixture
def make_invitation(group, user):
    """
    Build invitations with a known raw token.

    Returns a callable giving ``(invitation, raw_token)``.
    """
    def _make(email='invitee@example.com', expires_in=timedelta(days=7), accepted=False, target_group=None):
        token = generate_secure_token()
        invitation = Invitation.objects.create(
            group=target_group or group,
            email=email,
            token_hash=hash_token(token),
            expires_at=timezone.now() + expires_in,
            invited_by=user,
            accepted_at=timezone.now() if accepted else None,
        )
        return invitation, token

    return _make
