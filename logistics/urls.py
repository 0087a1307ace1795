"""
Logistics App URLs
"""

from django.urls import path, include
from rest_framework.routers import DefaultRouter

from .views import (
    CourierViewSet, ShipmentViewSet, AdminShipmentListView,
    TrackingSamplesView, TrackShipmentView, TimelineView, SimulateTrackingView,
)

router = DefaultRouter()
router.register(r'couriers', CourierViewSet, basename='courier')
router.register(r'shipments', ShipmentViewSet, basename='shipment')

urlpatterns = [
    # Public tracking
    path('tracking/samples/', TrackingSamplesView.as_view(), name='tracking-samples'),
    path('tracking/<str:tracking_id>/', TrackShipmentView.as_view(), name='tracking-detail'),
    path('tracking/<str:tracking_id>/timeline/', TimelineView.as_view(), name='tracking-timeline'),
    path(
        'tracking/<str:tracking_id>/simulate/',
        SimulateTrackingView.as_view(),
        name='tracking-simulate'
    ),

    # Admin
    path('admin/shipments/', AdminShipmentListView.as_view(), name='admin-shipments'),

    # Router URLs
    path('', include(router.urls)),
]
