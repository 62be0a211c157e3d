"""
Domain error taxonomy and DRF exception handler.

Every error raised by a service carries a stable `kind` tag and a
human-readable message. The API layer maps kinds to HTTP status codes.
"""
from django.core.exceptions import ValidationError as DjangoValidationError
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler

from .observability import get_sanitized_logger, metrics

logger = get_sanitized_logger(__name__)


class DomainError(Exception):
    """Base class for typed domain errors."""
    kind = 'error'
    status_code = status.HTTP_400_BAD_REQUEST
    
    def __init__(self, message, details=None):
        super().__init__(message)
        self.message = message
        self.details = details or {}
    
    def as_dict(self):
        data = {'error': self.message, 'error_type': self.kind}
        if self.details:
            data['details'] = self.details
        return data


class NotFound(DomainError):
    """Entity id does not resolve."""
    kind = 'not_found'
    status_code = status.HTTP_404_NOT_FOUND


class Forbidden(DomainError):
    """Authorization rule violated (wrong role, not assignee/collaborator)."""
    kind = 'forbidden'
    status_code = status.HTTP_403_FORBIDDEN


class Conflict(DomainError):
    """An invariant would be violated."""
    kind = 'conflict'
    status_code = status.HTTP_409_CONFLICT


class DomainValidationError(DomainError):
    """Missing or malformed required fields."""
    kind = 'validation'
    status_code = status.HTTP_400_BAD_REQUEST


class InvalidRole(DomainValidationError):
    """Target user does not hold the role the operation requires."""
    kind = 'invalid_role'


def domain_exception_handler(exc, context):
    """
    DRF exception handler rendering domain errors as typed JSON.
    
    Falls back to DRF's default handler for everything else.
    """
    view = context.get('view')
    location = view.__class__.__name__ if view else 'unknown'
    
    if isinstance(exc, DomainError):
        metrics.exceptions_total.labels(
            exception_type=exc.__class__.__name__,
            location=location
        ).inc()
        logger.info(
            'Domain error returned to client',
            extra={
                'event': 'domain_error',
                'error_type': exc.kind,
                'view': location,
            }
        )
        return Response(exc.as_dict(), status=exc.status_code)
    
    if isinstance(exc, DjangoValidationError):
        if hasattr(exc, 'message_dict'):
            details = exc.message_dict
        else:
            details = {'non_field_errors': exc.messages}
        return Response(
            {'error': '; '.join(exc.messages), 'error_type': 'validation', 'details': details},
            status=status.HTTP_400_BAD_REQUEST
        )
    
    return exception_handler(exc, context)
