"""
Request correlation middleware.

Generates/propagates X-Request-ID, injects it into logs and records
HTTP request metrics.
"""
import uuid
import time
import logging
from threading import local

from django.utils.deprecation import MiddlewareMixin

_request_context = local()

logger = logging.getLogger(__name__)


def get_request_id():
    """Get current request ID from thread-local storage."""
    return getattr(_request_context, 'request_id', None)


def get_user_id():
    """Get current user ID from thread-local storage."""
    return getattr(_request_context, 'user_id', None)


def get_user_role():
    """Get current user role from thread-local storage."""
    return getattr(_request_context, 'user_role', None)


def _route_label(request):
    # Use the resolved route pattern to keep label cardinality bounded
    match = getattr(request, 'resolver_match', None)
    if match is not None and match.route:
        return match.route
    return 'unmatched'


class RequestCorrelationMiddleware(MiddlewareMixin):
    """
    Middleware to handle request correlation.
    
    - Generates/propagates X-Request-ID
    - Stores context in thread-local for logging
    - Adds correlation header to response
    - Tracks request duration and count
    """
    
    REQUEST_ID_HEADER = 'HTTP_X_REQUEST_ID'
    
    def process_request(self, request):
        request_id = request.META.get(self.REQUEST_ID_HEADER) or str(uuid.uuid4())
        
        request.request_id = request_id
        request.start_time = time.time()
        
        _request_context.request_id = request_id
        
        # Session-authenticated users are known here; JWT users are
        # resolved later by DRF and picked up in process_view.
        self._bind_user(getattr(request, 'user', None))
    
    def process_view(self, request, view_func, view_args, view_kwargs):
        self._bind_user(getattr(request, 'user', None))
    
    def process_response(self, request, response):
        from .metrics import metrics
        
        if hasattr(request, 'request_id'):
            response['X-Request-ID'] = request.request_id
        
        if hasattr(request, 'start_time'):
            duration = time.time() - request.start_time
            route = _route_label(request)
            metrics.http_requests_total.labels(
                path=route, method=request.method, status=str(response.status_code)
            ).inc()
            metrics.http_request_duration_seconds.labels(
                path=route, method=request.method
            ).observe(duration)
            
            logger.info(
                'Request completed',
                extra={
                    'event': 'http_request_completed',
                    'path': request.path,
                    'method': request.method,
                    'status_code': response.status_code,
                    'duration_ms': round(duration * 1000, 2),
                    'request_id': getattr(request, 'request_id', None),
                    'user_id': get_user_id(),
                    'user_role': get_user_role(),
                }
            )
        
        clear_request_context()
        return response
    
    def process_exception(self, request, exception):
        from .metrics import metrics
        
        duration_ms = 0
        if hasattr(request, 'start_time'):
            duration_ms = (time.time() - request.start_time) * 1000
        
        metrics.exceptions_total.labels(
            exception_type=exception.__class__.__name__,
            location=_route_label(request)
        ).inc()
        
        logger.error(
            f'Request failed: {exception.__class__.__name__}',
            exc_info=True,
            extra={
                'event': 'http_request_exception',
                'path': request.path,
                'method': request.method,
                'exception_type': exception.__class__.__name__,
                'duration_ms': round(duration_ms, 2),
                'request_id': getattr(request, 'request_id', None),
                'user_id': get_user_id(),
                'user_role': get_user_role(),
            }
        )
    
    @staticmethod
    def _bind_user(user):
        if user is not None and user.is_authenticated:
            _request_context.user_id = str(user.id)
            _request_context.user_role = getattr(user, 'role', None)
        else:
            _request_context.user_id = None
            _request_context.user_role = None


def clear_request_context():
    """Clear thread-local request context."""
    for attr in ['request_id', 'user_id', 'user_role']:
        if hasattr(_request_context, attr):
            delattr(_request_context, attr)
