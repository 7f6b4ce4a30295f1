from rest_framework import serializers

from apps.activity.services import get_activity_message, get_activity_color


class ActivityProfileSerializer(serializers.Serializer):
    id = serializers.UUIDField()
    display_name = serializers.CharField(allow_null=True)
    avatar_url = serializers.CharField(allow_null=True)


class ActivityGroupSerializer(serializers.Serializer):
    id = serializers.UUIDField()
    name = serializers.CharField()


class ActivityMovieSerializer(serializers.Serializer):
    id = serializers.UUIDField()
    title = serializers.CharField()
    poster_path = serializers.CharField(allow_null=True)
    year = serializers.IntegerField(allow_null=True)


class ActivitySerializer(serializers.Serializer):
    """
    Enriched feed entry.

    Works on the dicts produced by the query service rather than on model
    instances, so the related data costs no extra queries here.
    """

    id = serializers.UUIDField()
    group_id = serializers.UUIDField()
    user_id = serializers.UUIDField()
    activity_type = serializers.CharField()
    target_movie_id = serializers.UUIDField(allow_null=True)
    target_user_id = serializers.UUIDField(allow_null=True)
    metadata = serializers.JSONField(allow_null=True)
    created_at = serializers.DateTimeField()
    profile = ActivityProfileSerializer()
    group = ActivityGroupSerializer()
    movie = ActivityMovieSerializer(allow_null=True)
    message = serializers.SerializerMethodField()
    color = serializers.SerializerMethodField()

    def get_message(self, obj):
        return get_activity_message(obj)

    def get_color(self, obj):
        return get_activity_color(obj['activity_type'])
