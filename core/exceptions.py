"""
CourierDesk error taxonomy

Services raise these; the API layer maps them to HTTP responses
through `api_exception_handler` (wired in REST_FRAMEWORK settings).
"""

import logging

from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


class CourierDeskError(Exception):
    """Base class for every typed failure raised by the services."""

    code = 'error'
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = 'Request could not be processed'

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidInput(CourierDeskError):
    """Malformed or out-of-range request data (e.g. non-positive weight)."""
    code = 'invalid_input'
    default_message = 'Invalid input'


class NotFound(CourierDeskError):
    """Referenced courier, shipment or tracking id does not exist."""
    code = 'not_found'
    status_code = status.HTTP_404_NOT_FOUND
    default_message = 'Not found'


class InvalidState(CourierDeskError):
    """Operation not permitted in the current lifecycle state."""
    code = 'invalid_state'
    default_message = 'Operation not allowed in the current state'


class InvalidTransition(CourierDeskError):
    """Simulated progression past the end of the status sequence."""
    code = 'invalid_transition'
    default_message = 'Shipment already at final status or cannot progress'


class Conflict(CourierDeskError):
    """Unique value collision (tracking id generation)."""
    code = 'conflict'
    status_code = status.HTTP_409_CONFLICT
    default_message = 'Conflicting resource'


def api_exception_handler(exc, context):
    """
    DRF exception handler.

    CourierDeskError -> {"error": code, "message": reason} with the
    error's status code. Everything else goes through DRF's default.
    """
    if isinstance(exc, CourierDeskError):
        view = context.get('view')
        logger.info(
            f"[API] {exc.code} in {view.__class__.__name__ if view else '?'}: {exc.message}"
        )
        return Response(
            {'error': exc.code, 'message': exc.message},
            status=exc.status_code
        )

    return exception_handler(exc, context)
