import logging

from rest_framework import viewsets, status, serializers
from rest_framework.decorators import action, api_view, permission_classes, throttle_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from drf_spectacular.utils import extend_schema, OpenApiParameter

from .serializers import (
    GroupSerializer,
    GroupCreateSerializer,
    GroupUpdateSerializer,
    GroupMemberSerializer,
    InvitationSerializer,
    InvitationCreateSerializer,
    AcceptInvitationSerializer,
    JoinGroupSerializer,
)
from .throttling import AcceptInvitationRateThrottle, JoinRateThrottle, InvitationRateThrottle

from apps.activity.serializers import ActivitySerializer
from apps.activity.services import get_group_activities, ActivityAccessDeniedError
from apps.groups.services import (
    create_group,
    get_group_for_member,
    update_group,
    delete_group,
    list_user_groups,
    search_user_groups,
    get_group_members,
    leave_group,
    remove_member,
    send_invitation,
    resend_invitation,
    accept_invitation,
    list_pending_invitations,
    get_or_create_invite_code,
    redeem_invite_code,
    # Exceptions
    GroupsServiceError,
    GroupNotFoundError,
    InvitationNotFoundError,
    InviteCodeNotFoundError,
    MembershipNotFoundError,
    NotMemberError,
    InsufficientPermissionsError,
    OwnerCannotLeaveError,
    CannotRemoveOwnerError,
    CannotRemoveSelfError,
    GroupValidationError,
    InvalidInviteCodeError,
    AlreadyMemberError,
    InvitationPendingError,
    InvitationExpiredError,
    InvitationAlreadyUsedError,
    InviteCodeGenerationError,
)

logger = logging.getLogger(__name__)

UUID_PATTERN = r'[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}'


class ErrorResponseSerializer(serializers.Serializer):
    error = serializers.CharField()


def _field_errors(serializer):
    return Response(
        {'error': 'Invalid data', 'fieldErrors': serializer.errors},
        status=status.HTTP_400_BAD_REQUEST
    )


class GroupViewSet(viewsets.GenericViewSet):
    """
    ViewSet for groups.

    All business logic is handled by services.
    Views are thin HTTP handlers only.

    list: Groups the user is a member of
    create: Create a new group
    retrieve: Group details with members
    partial_update: Update name/description (owner only)
    destroy: Delete a group (owner only)
    """

    serializer_class = GroupSerializer
    permission_classes = [IsAuthenticated]
    lookup_value_regex = UUID_PATTERN

    def get_queryset(self):
        return list_user_groups(user=self.request.user)

    def list(self, request):
        """List the user's groups."""
        serializer = GroupSerializer(self.get_queryset(), many=True, context={'request': request})
        return Response({'groups': serializer.data})

    @extend_schema(request=GroupCreateSerializer, responses={201: GroupSerializer, 400: ErrorResponseSerializer})
    def create(self, request):
        """Create a new group."""
        serializer = GroupCreateSerializer(data=request.data)
        if not serializer.is_valid():
            return _field_errors(serializer)

        try:
            result = create_group(
                name=serializer.validated_data['name'],
                owner=request.user,
                description=serializer.validated_data.get('description', ''),
                member_ids=serializer.validated_data.get('member_ids', []),
            )
        except GroupValidationError as e:
            return Response(
                {'error': 'Invalid data', 'fieldErrors': e.field_errors},
                status=status.HTTP_400_BAD_REQUEST
            )

        return Response({
            'success': True,
            'group': GroupSerializer(result.group, context={'request': request}).data,
            'inviteCode': result.invite_code,
            'failedMemberIds': [str(member_id) for member_id in result.failed_member_ids],
        }, status=status.HTTP_201_CREATED)

    def retrieve(self, request, pk=None):
        """Get a group with its members."""
        try:
            group = get_group_for_member(group_id=pk, user=request.user)
            memberships = get_group_members(group_id=pk, user=request.user)
        except GroupNotFoundError as e:
            return Response({'error': str(e)}, status=status.HTTP_404_NOT_FOUND)
        except NotMemberError as e:
            return Response({'error': str(e)}, status=status.HTTP_403_FORBIDDEN)

        return Response({
            'group': GroupSerializer(group, context={'request': request}).data,
            'members': GroupMemberSerializer(memberships, many=True).data,
        })

    @extend_schema(request=GroupUpdateSerializer, responses={200: GroupSerializer, 400: ErrorResponseSerializer})
    def partial_update(self, request, pk=None):
        """Update a group (owner only)."""
        serializer = GroupUpdateSerializer(data=request.data, partial=True)
        if not serializer.is_valid():
            return _field_errors(serializer)

        try:
            group = update_group(
                group_id=pk,
                user=request.user,
                name=serializer.validated_data.get('name'),
                description=serializer.validated_data.get('description'),
            )
        except GroupNotFoundError as e:
            return Response({'error': str(e)}, status=status.HTTP_404_NOT_FOUND)
        except InsufficientPermissionsError as e:
            return Response({'error': str(e)}, status=status.HTTP_403_FORBIDDEN)
        except GroupValidationError as e:
            return Response(
                {'error': 'Invalid data', 'fieldErrors': e.field_errors},
                status=status.HTTP_400_BAD_REQUEST
            )

        return Response({'group': GroupSerializer(group, context={'request': request}).data})

    def destroy(self, request, pk=None):
        """Delete a group (owner only)."""
        try:
            delete_group(group_id=pk, user=request.user)
        except GroupNotFoundError as e:
            return Response({'error': str(e)}, status=status.HTTP_404_NOT_FOUND)
        except InsufficientPermissionsError as e:
            return Response({'error': str(e)}, status=status.HTTP_403_FORBIDDEN)

        return Response({'success': True})

    @extend_schema(request=InvitationCreateSerializer, responses={201: None, 400: ErrorResponseSerializer})
    @action(detail=True, methods=['get', 'post'], throttle_classes=[InvitationRateThrottle])
    def invitations(self, request, pk=None):
        """List pending invitations or invite an email address."""
        if request.method == 'GET':
            try:
                invitations = list_pending_invitations(group_id=pk, user=request.user)
            except GroupNotFoundError as e:
                return Response({'error': str(e)}, status=status.HTTP_404_NOT_FOUND)
            except NotMemberError as e:
                return Response({'error': str(e)}, status=status.HTTP_403_FORBIDDEN)
            return Response({'invitations': InvitationSerializer(invitations, many=True).data})

        serializer = InvitationCreateSerializer(data=request.data)
        if not serializer.is_valid():
            return _field_errors(serializer)

        try:
            send_invitation(
                group_id=pk,
                inviter=request.user,
                email=serializer.validated_data['email'],
            )
        except GroupNotFoundError as e:
            return Response({'error': str(e)}, status=status.HTTP_404_NOT_FOUND)
        except NotMemberError as e:
            return Response({'error': str(e)}, status=status.HTTP_403_FORBIDDEN)
        except (AlreadyMemberError, InvitationPendingError) as e:
            return Response({'error': str(e), 'code': e.code}, status=status.HTTP_409_CONFLICT)

        return Response({'success': True}, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=['post'], url_path='invite-code')
    def invite_code(self, request, pk=None):
        """Get the group's active invite code, creating one if needed."""
        try:
            code = get_or_create_invite_code(group_id=pk, user=request.user)
        except GroupNotFoundError as e:
            return Response({'error': str(e)}, status=status.HTTP_404_NOT_FOUND)
        except NotMemberError as e:
            return Response({'error': str(e)}, status=status.HTTP_403_FORBIDDEN)
        except InviteCodeGenerationError:
            logger.exception("Invite code generation failed for group %s", pk)
            return Response(
                {'error': 'Could not generate an invite code'},
                status=status.HTTP_500_INTERNAL_SERVER_ERROR
            )

        return Response({'code': code})

    @action(detail=True, methods=['post'])
    def leave(self, request, pk=None):
        """Leave a group."""
        try:
            leave_group(group_id=pk, user=request.user)
        except (GroupNotFoundError, NotMemberError) as e:
            return Response({'error': str(e)}, status=status.HTTP_404_NOT_FOUND)
        except OwnerCannotLeaveError as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

        return Response({'success': True})

    @action(detail=True, methods=['delete'], url_path=rf'members/(?P<user_id>{UUID_PATTERN})')
    def remove_member(self, request, pk=None, user_id=None):
        """Remove a member from the group (owner only)."""
        try:
            remove_member(group_id=pk, user_id=user_id, removed_by=request.user)
        except (GroupNotFoundError, MembershipNotFoundError) as e:
            return Response({'error': str(e)}, status=status.HTTP_404_NOT_FOUND)
        except (InsufficientPermissionsError, CannotRemoveSelfError, CannotRemoveOwnerError) as e:
            return Response({'error': str(e)}, status=status.HTTP_403_FORBIDDEN)

        return Response({'success': True})

    @extend_schema(
        parameters=[
            OpenApiParameter('limit', int, description='Page size (1-50, default 20)'),
            OpenApiParameter('offset', int, description='Number of entries to skip'),
            OpenApiParameter('filter', str, description='all, ratings, watchlist or comments'),
        ],
    )
    @action(detail=True, methods=['get'])
    def activities(self, request, pk=None):
        """Activity feed of the group."""
        try:
            page = get_group_activities(
                group_id=pk,
                user=request.user,
                limit=request.query_params.get('limit', 20),
                offset=request.query_params.get('offset', 0),
                filter=request.query_params.get('filter', 'all'),
            )
        except ActivityAccessDeniedError as e:
            return Response({'error': str(e)}, status=status.HTTP_403_FORBIDDEN)

        return Response({
            'activities': ActivitySerializer(page.activities, many=True).data,
            'hasMore': page.has_more,
        })


@extend_schema(request=JoinGroupSerializer, tags=['groups'])
@api_view(['POST'])
@permission_classes([IsAuthenticated])
@throttle_classes([JoinRateThrottle])
def join_group_with_code(request):
    """Join a group using an invite code."""
    serializer = JoinGroupSerializer(data=request.data)
    if not serializer.is_valid():
        return Response({'error': 'Invite code is required'}, status=status.HTTP_400_BAD_REQUEST)

    try:
        result = redeem_invite_code(code=serializer.validated_data['code'], user=request.user)
    except (InvalidInviteCodeError, InviteCodeNotFoundError) as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

    return Response({
        'success': True,
        'alreadyMember': result.already_member,
        'groupId': str(result.group.id),
        'groupName': result.group.name,
    })


@extend_schema(
    parameters=[OpenApiParameter('q', str, description='Name fragment')],
    responses={200: GroupSerializer(many=True)},
    tags=['groups'],
)
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def search_groups(request):
    """Search the caller's groups by name."""
    groups = search_user_groups(user=request.user, query=request.query_params.get('q'))
    return Response({'groups': GroupSerializer(groups, many=True, context={'request': request}).data})


@extend_schema(request=AcceptInvitationSerializer, tags=['invitations'])
@api_view(['POST'])
@permission_classes([IsAuthenticated])
@throttle_classes([AcceptInvitationRateThrottle])
def accept_invitation_view(request, invitation_id):
    """
    Accept an email invitation.

    Every failure is a 400 with a machine-readable ``code`` so the join
    screen can explain what went wrong.
    """
    serializer = AcceptInvitationSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(
            {'error': 'Token and groupId are required', 'code': 'validation_error'},
            status=status.HTTP_400_BAD_REQUEST
        )

    try:
        membership = accept_invitation(
            invitation_id=invitation_id,
            token=serializer.validated_data['token'],
            group_id=serializer.validated_data['group_id'],
            user=request.user,
        )
    except GroupsServiceError as e:
        return Response({'error': str(e), 'code': e.code}, status=status.HTTP_400_BAD_REQUEST)

    return Response({'success': True, 'groupId': str(membership.group_id)})


@extend_schema(request=None, tags=['invitations'])
@api_view(['POST'])
@permission_classes([IsAuthenticated])
@throttle_classes([InvitationRateThrottle])
def resend_invitation_view(request, invitation_id):
    """Issue a fresh link for a pending invitation and email it again."""
    try:
        resend_invitation(invitation_id=invitation_id, user=request.user)
    except InvitationNotFoundError as e:
        return Response({'error': str(e)}, status=status.HTTP_404_NOT_FOUND)
    except NotMemberError as e:
        return Response({'error': str(e)}, status=status.HTTP_403_FORBIDDEN)
    except (InvitationExpiredError, InvitationAlreadyUsedError) as e:
        return Response({'error': str(e), 'code': e.code}, status=status.HTTP_400_BAD_REQUEST)

    return Response({'success': True})
