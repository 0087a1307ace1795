"""
CourierDesk Security Middleware
===============================

Provides:
1. Rate Limiting (per IP) using the Django cache
2. Security Headers (X-Content-Type, X-Frame-Options, etc.)
3. Request Audit Logging for sensitive endpoints
"""

import logging
import hashlib
from django.conf import settings
from django.core.cache import cache
from django.http import JsonResponse
from django.utils.deprecation import MiddlewareMixin

from .audit import client_ip

logger = logging.getLogger('courierdesk.security')


class RateLimitMiddleware(MiddlewareMixin):
    """
    Rate limiting middleware backed by the Django cache.

    Configurable rates per endpoint pattern:
    - API endpoints: 100 requests/minute per IP
    - Auth endpoints: 10 requests/minute per IP (brute-force protection)
    - Rate comparison: 60 requests/minute per IP
    - Public tracking: 120 requests/minute per IP
    """

    # Rate limit configurations: (max_requests, time_window_seconds)
    RATE_LIMITS = {
        '/api/auth/login/': (10, 60),
        '/api/auth/register/': (10, 60),
        '/api/auth/token/refresh/': (20, 60),
        '/api/couriers/compare/': (60, 60),
        '/api/couriers/recommend/': (60, 60),
        '/api/tracking/': (120, 60),
    }

    # Default rate limit for all API endpoints
    DEFAULT_API_LIMIT = (100, 60)

    def _get_rate_limit(self, path):
        """Get rate limit config for the given path."""
        for pattern, limits in self.RATE_LIMITS.items():
            if path.startswith(pattern):
                return limits

        if path.startswith('/api/'):
            return self.DEFAULT_API_LIMIT

        return None

    def process_request(self, request):
        """Check rate limits before processing the request."""
        if settings.DEBUG and not getattr(settings, 'RATE_LIMIT_IN_DEBUG', False):
            return None

        path = request.path
        rate_limit = self._get_rate_limit(path)

        if rate_limit is None:
            return None

        max_requests, window = rate_limit
        ip = client_ip(request) or '0.0.0.0'

        path_hash = hashlib.md5(path.encode()).hexdigest()[:8]
        cache_key = f"rl:{ip}:{path_hash}"

        request_count = cache.get(cache_key, 0)

        if request_count >= max_requests:
            logger.warning(
                f"Rate limit exceeded: IP={ip} path={path} "
                f"count={request_count}/{max_requests} window={window}s"
            )
            return JsonResponse({
                'error': 'rate_limit_exceeded',
                'message': 'Too many requests. Please try again later.',
                'retry_after': window,
            }, status=429, headers={
                'Retry-After': str(window),
                'X-RateLimit-Limit': str(max_requests),
                'X-RateLimit-Remaining': '0',
            })

        try:
            new_count = cache.incr(cache_key)
        except ValueError:
            cache.set(cache_key, 1, window)
            new_count = 1

        request._rate_limit_remaining = max(0, max_requests - new_count)
        request._rate_limit_limit = max_requests

        return None

    def process_response(self, request, response):
        """Add rate limit headers to response."""
        if hasattr(request, '_rate_limit_limit'):
            response['X-RateLimit-Limit'] = str(request._rate_limit_limit)
            response['X-RateLimit-Remaining'] = str(request._rate_limit_remaining)
        return response


class SecurityHeadersMiddleware(MiddlewareMixin):
    """
    Add security headers to all responses.
    """

    def process_response(self, request, response):
        response['X-Content-Type-Options'] = 'nosniff'

        # Django admin uses iframes internally
        if not request.path.startswith('/admin/'):
            response['X-Frame-Options'] = 'DENY'

        response['Referrer-Policy'] = 'strict-origin-when-cross-origin'
        response['Permissions-Policy'] = 'geolocation=(), camera=(), microphone=(), payment=()'

        if 'Server' in response:
            del response['Server']

        if not settings.DEBUG:
            response['Strict-Transport-Security'] = (
                'max-age=31536000; includeSubDomains; preload'
            )

        return response


class RequestAuditMiddleware(MiddlewareMixin):
    """
    Audit logging for sensitive API operations.

    Logs:
    - All write operations (POST, PUT, PATCH, DELETE) on sensitive paths
    - Authentication attempts
    - Failed requests (4xx, 5xx)
    """

    SENSITIVE_PATHS = [
        '/api/auth/',
        '/api/shipments/',
        '/api/couriers/',
        '/api/admin/',
        '/admin/',
    ]

    def _should_log(self, request, response):
        path = request.path
        method = request.method

        if '/auth/' in path:
            return True

        if method in ('POST', 'PUT', 'PATCH', 'DELETE'):
            return any(path.startswith(p) for p in self.SENSITIVE_PATHS)

        if response.status_code >= 500:
            return True

        if response.status_code >= 400 and path.startswith('/api/'):
            return True

        return False

    def process_response(self, request, response):
        if self._should_log(request, response):
            user = getattr(request, 'user', None)
            user_info = str(user) if user and user.is_authenticated else 'anonymous'

            log_data = {
                'method': request.method,
                'path': request.path,
                'status': response.status_code,
                'user': user_info,
                'ip': client_ip(request) or '?',
                'user_agent': request.META.get('HTTP_USER_AGENT', '?')[:100],
            }

            if response.status_code >= 500:
                logger.error(f"AUDIT [ERROR] {log_data}")
            elif response.status_code >= 400:
                logger.warning(f"AUDIT [WARN] {log_data}")
            else:
                logger.info(f"AUDIT [OK] {log_data}")

        return response
