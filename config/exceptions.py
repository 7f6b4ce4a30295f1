import logging

from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


def api_exception_handler(exc, context):
    """
    DRF exception handler that collapses unexpected errors into a generic 500.

    Known API exceptions (authentication, validation, throttling, ...) keep
    DRF's default rendering. Anything else is logged with its traceback and
    returned without internal detail.
    """
    response = exception_handler(exc, context)
    if response is not None:
        return response

    view = context.get('view')
    logger.exception(
        "Unhandled error in %s",
        view.__class__.__name__ if view is not None else 'unknown view',
        exc_info=exc,
    )
    return Response(
        {'error': 'Internal server error'},
        status=status.HTTP_500_INTERNAL_SERVER_ERROR
    )
