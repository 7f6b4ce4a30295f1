# ==========================================
# apps/groups/models.py
# ==========================================

from django.db import models
from django.db.models import Q
from django.utils import timezone
import uuid


class GroupRole(models.TextChoices):
    OWNER = 'owner', 'Owner'
    MEMBER = 'member', 'Member'


class Group(models.Model):
    """A circle of users sharing group-scoped data."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=100)
    description = models.CharField(max_length=500, blank=True)
    owner = models.ForeignKey('accounts.User', on_delete=models.CASCADE, related_name='owned_groups')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'groups'
        indexes = [
            models.Index(fields=['owner', 'created_at'], name='groups_owner_created_idx'),
        ]
        ordering = ['-created_at']

    def __str__(self):
        return self.name

    def get_user_role(self, user):
        try:
            return self.memberships.get(user=user).role
        except GroupMembership.DoesNotExist:
            return None

    def is_owner(self, user):
        return self.owner_id == user.id


class GroupMembership(models.Model):
    """
    User membership in a group with role.

    The single authorization source for group-scoped actions. A group has
    exactly one owner row, written when the group is created.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.ForeignKey('accounts.User', on_delete=models.CASCADE, related_name='group_memberships')
    group = models.ForeignKey(Group, on_delete=models.CASCADE, related_name='memberships')
    role = models.CharField(max_length=20, choices=GroupRole.choices, default=GroupRole.MEMBER)
    joined_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'group_memberships'
        unique_together = [['user', 'group']]
        constraints = [
            models.UniqueConstraint(
                fields=['group'],
                condition=Q(role='owner'),
                name='one_owner_per_group',
            ),
        ]
        indexes = [
            models.Index(fields=['group', 'role'], name='memberships_group_role_idx'),
            models.Index(fields=['user', 'joined_at'], name='memberships_user_joined_idx'),
        ]
        ordering = ['joined_at']

    def __str__(self):
        return f"{self.user.get_display_name()} in {self.group.name} ({self.role})"

    def save(self, *args, **kwargs):
        if self.group.owner_id == self.user_id:
            self.role = GroupRole.OWNER
        super().save(*args, **kwargs)


class Invitation(models.Model):
    """
    Email invitation to join a group.

    Only the sha256 digest of the secret token is stored. Single use:
    accepted_at is written once and never cleared.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    group = models.ForeignKey(Group, on_delete=models.CASCADE, related_name='invitations')
    email = models.EmailField(max_length=255)
    token_hash = models.CharField(max_length=64, unique=True, editable=False)
    expires_at = models.DateTimeField()
    invited_by = models.ForeignKey('accounts.User', on_delete=models.CASCADE, related_name='sent_invitations')
    accepted_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'group_invitations'
        constraints = [
            models.UniqueConstraint(
                fields=['group', 'email'],
                condition=Q(accepted_at__isnull=True),
                name='one_open_invitation_per_email',
            ),
        ]
        indexes = [
            models.Index(fields=['group', 'email'], name='invitations_group_email_idx'),
        ]
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.email} -> {self.group.name}"

    def save(self, *args, **kwargs):
        self.email = self.email.strip().lower()
        super().save(*args, **kwargs)

    @property
    def is_expired(self):
        return self.expires_at <= timezone.now()

    @property
    def is_accepted(self):
        return self.accepted_at is not None


class InviteCode(models.Model):
    """Short reusable join code for a group."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    group = models.ForeignKey(Group, on_delete=models.CASCADE, related_name='invite_codes')
    code = models.CharField(max_length=6, unique=True, db_index=True)
    created_by = models.ForeignKey('accounts.User', on_delete=models.CASCADE, related_name='created_invite_codes')
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'group_invite_codes'
        indexes = [
            models.Index(fields=['group', 'is_active', 'created_at'], name='invite_codes_group_active_idx'),
        ]
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.code} ({self.group.name})"
