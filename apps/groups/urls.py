from django.urls import path, include
from rest_framework.routers import DefaultRouter
from . import views

app_name = 'groups'

# Router for ViewSets
router = DefaultRouter()
router.register(r'', views.GroupViewSet, basename='group')

urlpatterns = [
    # Group ViewSet routes
    # GET    /api/groups/                          - List user's groups
    # POST   /api/groups/                          - Create group
    # GET    /api/groups/{id}/                     - Group details with members
    # PATCH  /api/groups/{id}/                     - Update group (owner)
    # DELETE /api/groups/{id}/                     - Delete group (owner)

    # Custom group actions
    # GET    /api/groups/{id}/invitations/         - Pending invitations
    # POST   /api/groups/{id}/invitations/         - Invite by email
    # POST   /api/groups/{id}/invite-code/         - Get or create invite code
    # POST   /api/groups/{id}/leave/               - Leave group
    # DELETE /api/groups/{id}/members/{user_id}/   - Remove member (owner)
    # GET    /api/groups/{id}/activities/          - Group activity feed

    # Must precede the router so these are not read as group ids
    path('join/', views.join_group_with_code, name='join-with-code'),
    path('search/', views.search_groups, name='search'),

    # Include router URLs
    path('', include(router.urls)),
]
