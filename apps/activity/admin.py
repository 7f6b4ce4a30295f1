# ==========================================
# apps/activity/admin.py
# ==========================================

from django.contrib import admin
from apps.activity.models import Activity


@admin.register(Activity)
class ActivityAdmin(admin.ModelAdmin):
    """Read-only view of the activity feed."""

    list_display = ['activity_type', 'group', 'user', 'target_movie', 'created_at']
    list_filter = ['activity_type', 'created_at']
    search_fields = ['group__name', 'user__email']
    readonly_fields = [
        'group',
        'user',
        'activity_type',
        'target_movie',
        'target_user',
        'metadata',
        'created_at',
    ]
    date_hierarchy = 'created_at'
    ordering = ['-created_at']

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def get_queryset(self, request):
        """Optimize query."""
        qs = super().get_queryset(request)
        return qs.select_related('group', 'user', 'target_movie')
