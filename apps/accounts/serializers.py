from rest_framework import serializers
from django.contrib.auth.password_validation import validate_password
from .models import User, Profile


class ProfileSerializer(serializers.ModelSerializer):
    """Public profile fields."""

    id = serializers.UUIDField(source='user_id', read_only=True)

    class Meta:
        model = Profile
        fields = ['id', 'email', 'display_name', 'avatar_url']
        read_only_fields = ['id', 'email']


class UserSerializer(serializers.ModelSerializer):
    """Authenticated user with their profile."""

    display_name = serializers.SerializerMethodField()
    avatar_url = serializers.SerializerMethodField()

    class Meta:
        model = User
        fields = [
            'id',
            'email',
            'display_name',
            'avatar_url',
            'created_at',
            'last_login',
        ]
        read_only_fields = fields

    def get_display_name(self, obj):
        return obj.get_display_name()

    def get_avatar_url(self, obj):
        # Missing reverse one-to-one raises an AttributeError subclass
        profile = getattr(obj, 'profile', None)
        if profile is None or not profile.avatar_url:
            return None
        return profile.avatar_url


class UserRegistrationSerializer(serializers.Serializer):
    """Serializer for user registration."""

    email = serializers.EmailField(required=True)
    password = serializers.CharField(
        write_only=True,
        required=True,
        validators=[validate_password],
        style={'input_type': 'password'}
    )
    password_confirm = serializers.CharField(
        write_only=True,
        required=True,
        style={'input_type': 'password'}
    )
    display_name = serializers.CharField(
        required=False,
        allow_blank=True,
        min_length=2,
        max_length=50,
    )

    def validate(self, attrs):
        """Validate password confirmation."""
        if attrs['password'] != attrs['password_confirm']:
            raise serializers.ValidationError({
                'password_confirm': 'Passwords do not match'
            })
        return attrs


class UserLoginSerializer(serializers.Serializer):
    """Serializer for user login."""

    email = serializers.EmailField(required=True)
    password = serializers.CharField(
        required=True,
        write_only=True,
        style={'input_type': 'password'}
    )
