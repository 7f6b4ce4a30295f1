from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from drf_spectacular.utils import extend_schema, OpenApiParameter

from .serializers import ActivitySerializer
from .services import get_user_activities


@extend_schema(
    parameters=[
        OpenApiParameter('limit', int, description='Page size (1-50, default 20)'),
        OpenApiParameter('offset', int, description='Number of entries to skip'),
        OpenApiParameter('filter', str, description='all, ratings, watchlist or comments'),
    ],
    description="Activity across every group the user belongs to, newest first.",
    tags=['activity'],
)
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def user_activities(request):
    """Get the user's combined activity feed."""
    page = get_user_activities(
        user=request.user,
        limit=request.query_params.get('limit', 20),
        offset=request.query_params.get('offset', 0),
        filter=request.query_params.get('filter', 'all'),
    )
    return Response({
        'activities': ActivitySerializer(page.activities, many=True).data,
        'hasMore': page.has_more,
    })
