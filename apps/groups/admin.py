# ==========================================
# apps/groups/admin.py
# ==========================================

from django.contrib import admin
from apps.groups.models import Group, GroupMembership, Invitation, InviteCode


class GroupMembershipInline(admin.TabularInline):
    """Inline admin for group memberships."""
    model = GroupMembership
    extra = 0
    fields = ['user', 'role', 'joined_at']
    readonly_fields = ['joined_at']


class InviteCodeInline(admin.TabularInline):
    model = InviteCode
    extra = 0
    fields = ['code', 'is_active', 'created_by', 'created_at']
    readonly_fields = ['code', 'created_by', 'created_at']


@admin.register(Group)
class GroupAdmin(admin.ModelAdmin):
    """Admin interface for Groups."""

    list_display = [
        'name',
        'owner',
        'member_count',
        'created_at'
    ]
    list_filter = ['created_at']
    search_fields = ['name', 'description', 'owner__email']
    readonly_fields = ['created_at', 'updated_at']
    inlines = [GroupMembershipInline, InviteCodeInline]
    date_hierarchy = 'created_at'
    ordering = ['-created_at']

    fieldsets = (
        ('Basic Information', {
            'fields': ('name', 'description', 'owner')
        }),
        ('Metadata', {
            'fields': ('created_at', 'updated_at'),
            'classes': ('collapse',)
        }),
    )

    def member_count(self, obj):
        """Show number of members."""
        return obj.memberships.count()
    member_count.short_description = 'Members'

    actions = ['deactivate_invite_codes']

    def deactivate_invite_codes(self, request, queryset):
        """Turn off every invite code of the selected groups."""
        updated = InviteCode.objects.filter(group__in=queryset, is_active=True).update(is_active=False)
        self.message_user(request, f"Deactivated {updated} invite codes")
    deactivate_invite_codes.short_description = "Deactivate invite codes"


@admin.register(GroupMembership)
class GroupMembershipAdmin(admin.ModelAdmin):
    """Admin interface for Group Memberships."""

    list_display = ['user', 'group', 'role', 'joined_at']
    list_filter = ['role', 'joined_at']
    search_fields = ['user__email', 'group__name']
    readonly_fields = ['joined_at']
    date_hierarchy = 'joined_at'
    ordering = ['-joined_at']

    def get_queryset(self, request):
        """Optimize query."""
        qs = super().get_queryset(request)
        return qs.select_related('user', 'group')


@admin.register(Invitation)
class InvitationAdmin(admin.ModelAdmin):
    """Admin interface for email invitations. The token digest is never editable."""

    list_display = ['email', 'group', 'invited_by', 'status', 'expires_at', 'created_at']
    list_filter = ['created_at', 'expires_at']
    search_fields = ['email', 'group__name', 'invited_by__email']
    readonly_fields = ['token_hash', 'accepted_at', 'created_at']
    ordering = ['-created_at']

    @admin.display(description='Status')
    def status(self, obj):
        if obj.is_accepted:
            return 'Accepted'
        if obj.is_expired:
            return 'Expired'
        return 'Pending'

    def get_queryset(self, request):
        """Optimize query."""
        qs = super().get_queryset(request)
        return qs.select_related('group', 'invited_by')


@admin.register(InviteCode)
class InviteCodeAdmin(admin.ModelAdmin):
    """Admin interface for invite codes."""

    list_display = ['code', 'group', 'is_active', 'created_by', 'created_at']
    list_filter = ['is_active', 'created_at']
    search_fields = ['code', 'group__name']
    readonly_fields = ['code', 'created_at']
    ordering = ['-created_at']
