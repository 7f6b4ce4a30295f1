from rest_framework import serializers
from .models import Group, GroupMembership, Invitation
from apps.accounts.models import User
from apps.groups.services import validate_group_fields, GroupValidationError


class UserMinimalSerializer(serializers.ModelSerializer):
    """Minimal user info for nested serialization."""

    display_name = serializers.SerializerMethodField()
    avatar_url = serializers.SerializerMethodField()

    class Meta:
        model = User
        fields = ['id', 'email', 'display_name', 'avatar_url']
        read_only_fields = fields

    def get_display_name(self, obj):
        return obj.get_display_name()

    def get_avatar_url(self, obj):
        profile = getattr(obj, 'profile', None)
        if profile is None or not profile.avatar_url:
            return None
        return profile.avatar_url


class GroupSerializer(serializers.ModelSerializer):
    """Main serializer for groups."""

    owner = UserMinimalSerializer(read_only=True)
    member_count = serializers.SerializerMethodField()
    user_role = serializers.SerializerMethodField()

    class Meta:
        model = Group
        fields = [
            'id',
            'name',
            'description',
            'owner',
            'member_count',
            'user_role',
            'created_at',
            'updated_at',
        ]
        read_only_fields = fields

    def get_member_count(self, obj):
        """Annotated count when listed, a query otherwise."""
        count = getattr(obj, 'member_count', None)
        if count is not None:
            return count
        return obj.memberships.count()

    def get_user_role(self, obj):
        """Get current user's role in the group."""
        role = getattr(obj, 'user_role', None)
        if role is not None:
            return role
        request = self.context.get('request')
        if request and request.user.is_authenticated:
            return obj.get_user_role(request.user)
        return None


class GroupMemberSerializer(serializers.ModelSerializer):
    """Detailed member information."""

    user = UserMinimalSerializer(read_only=True)

    class Meta:
        model = GroupMembership
        fields = ['id', 'user', 'role', 'joined_at']
        read_only_fields = fields


class _GroupFieldsMixin:
    """Runs the service-level name/description rules at the HTTP boundary."""

    def validate_name(self, value):
        try:
            return validate_group_fields(name=value)['name']
        except GroupValidationError as e:
            raise serializers.ValidationError(e.field_errors['name'])

    def validate_description(self, value):
        try:
            return validate_group_fields(description=value)['description']
        except GroupValidationError as e:
            raise serializers.ValidationError(e.field_errors['description'])


class GroupCreateSerializer(_GroupFieldsMixin, serializers.Serializer):
    """Serializer for creating groups."""

    name = serializers.CharField(max_length=100, trim_whitespace=True)
    description = serializers.CharField(
        max_length=500,
        required=False,
        allow_blank=True,
        default=''
    )
    memberIds = serializers.ListField(
        child=serializers.UUIDField(),
        source='member_ids',
        required=False,
        default=list
    )


class GroupUpdateSerializer(_GroupFieldsMixin, serializers.Serializer):
    """Serializer for partial group updates."""

    name = serializers.CharField(max_length=100, required=False)
    description = serializers.CharField(max_length=500, required=False, allow_blank=True)


class InvitationCreateSerializer(serializers.Serializer):
    """Serializer for inviting an email address."""

    email = serializers.EmailField(max_length=255)

    def validate_email(self, value):
        return value.strip().lower()


class InvitationSerializer(serializers.ModelSerializer):
    """Pending invitation as shown to group members. Never exposes the token."""

    invited_by = UserMinimalSerializer(read_only=True)

    class Meta:
        model = Invitation
        fields = ['id', 'email', 'invited_by', 'expires_at', 'created_at']
        read_only_fields = fields


class AcceptInvitationSerializer(serializers.Serializer):
    """Serializer for accepting an email invitation."""

    token = serializers.CharField(max_length=256, trim_whitespace=True)
    groupId = serializers.UUIDField(source='group_id')


class JoinGroupSerializer(serializers.Serializer):
    """Serializer for joining a group with an invite code."""

    code = serializers.CharField(max_length=32, required=True)
