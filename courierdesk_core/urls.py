"""
CourierDesk Main URL Configuration
"""

from django.contrib import admin
from django.urls import path, include
from drf_spectacular.views import SpectacularAPIView, SpectacularSwaggerView
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response

from core.health import health_check, readiness_check


# ===========================================
# ADMIN SITE CUSTOMIZATION
# ===========================================
admin.site.site_header = "CourierDesk Control Tower"
admin.site.site_title = "CourierDesk Admin"
admin.site.index_title = "Shipment Operations"


@api_view(['GET'])
@permission_classes([AllowAny])
def api_root(request):
    """API Root endpoint with available routes."""
    return Response({
        'name': 'CourierDesk API',
        'version': '1.0.0',
        'endpoints': {
            'auth': {
                'register': '/api/auth/register/',
                'login': '/api/auth/login/',
                'refresh': '/api/auth/token/refresh/',
                'me': '/api/auth/me/',
            },
            'settings': '/api/settings/',
            'couriers': {
                'list': '/api/couriers/',
                'compare': '/api/couriers/compare/',
                'recommend': '/api/couriers/recommend/',
            },
            'shipments': '/api/shipments/',
            'tracking': '/api/tracking/<tracking_id>/',
            'notifications': '/api/notifications/',
            'analytics': '/api/analytics/dashboard/',
            'admin': '/api/admin/stats/',
        }
    })


urlpatterns = [
    # Admin
    path('admin/', admin.site.urls),

    # Health checks
    path('health/', health_check, name='health'),
    path('health/ready/', readiness_check, name='health-ready'),

    # API Root & schema
    path('api/', api_root, name='api-root'),
    path('api/schema/', SpectacularAPIView.as_view(), name='schema'),
    path('api/docs/', SpectacularSwaggerView.as_view(url_name='schema'), name='api-docs'),

    # App URLs
    path('api/', include('core.urls')),
    path('api/', include('logistics.urls')),
    path('api/', include('notifications.urls')),
    path('api/', include('analytics.urls')),
]
