# ==========================================
# apps/activity/models.py
# ==========================================

from django.db import models
import uuid


class ActivityType(models.TextChoices):
    GROUP_CREATED = 'group_created', 'Group created'
    MOVIE_ADDED = 'movie_added', 'Movie added'
    MOVIE_RATED = 'movie_rated', 'Movie rated'
    RATING_UPDATED = 'rating_updated', 'Rating updated'
    WATCHLIST_ADDED = 'watchlist_added', 'Watchlist added'
    COMMENT_ADDED = 'comment_added', 'Comment added'
    MEMBER_JOINED = 'member_joined', 'Member joined'
    MEMBER_LEFT = 'member_left', 'Member left'


class Activity(models.Model):
    """
    Append-only feed entry describing a mutation in a group.

    Rows are never updated. They go away only with their group.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    group = models.ForeignKey('groups.Group', on_delete=models.CASCADE, related_name='activities')
    user = models.ForeignKey('accounts.User', on_delete=models.CASCADE, related_name='activities')
    activity_type = models.CharField(max_length=32, choices=ActivityType.choices)
    target_movie = models.ForeignKey(
        'movies.Movie',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='activities'
    )
    target_user = models.ForeignKey(
        'accounts.User',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='targeted_activities'
    )
    metadata = models.JSONField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'activity_feed'
        indexes = [
            models.Index(fields=['group', 'created_at'], name='activity_group_created_idx'),
            models.Index(fields=['group', 'activity_type', 'created_at'], name='activity_group_type_idx'),
        ]
        ordering = ['-created_at']
        verbose_name_plural = 'activities'

    def __str__(self):
        return f"{self.activity_type} in {self.group_id} by {self.user_id}"
