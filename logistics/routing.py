"""
LOGISTICS App - WebSocket Routing Configuration
"""

from django.urls import re_path
from . import consumers


websocket_urlpatterns = [
    # ws://localhost:8000/ws/shipments/<tracking_id>/
    re_path(
        r'ws/shipments/(?P<tracking_id>[^/]+)/$',
        consumers.ShipmentTrackingConsumer.as_asgi()
    ),
]
