"""
Logistics App Views - Couriers, Shipments & Tracking API
"""

import logging

from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import filters, generics, permissions, status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response
from rest_framework.views import APIView

from core.actors import Actor
from core.audit import record_action
from core.exceptions import InvalidState
from core.models import LogAction, LogModule
from core.permissions import IsAdminRole, IsStaffOrAdmin
from .filters import ShipmentFilter
from .models import Courier, Shipment
from .serializers import (
    CourierSerializer, CourierListSerializer,
    RateRequestSerializer, RecommendRequestSerializer,
    ShipmentSerializer, ShipmentListSerializer, ShipmentCreateSerializer,
    ShipmentUpdateSerializer, StatusUpdateSerializer, PickupSerializer,
    BulkShipmentSerializer, TrackingLogSerializer,
)
from .services.comparison import (
    ShipmentRequest, compare_rates, recommend_couriers,
    serialize_comparison, serialize_recommendations,
)
from .services.lifecycle import shipment_lifecycle
from .services.timeline import build_timeline, track_shipment, sample_tracking_ids

logger = logging.getLogger(__name__)


def active_couriers():
    """Courier rows as they are right now, in name order."""
    return Courier.objects.filter(is_active=True).order_by('name')


# ============================================
# COURIERS
# ============================================

class CourierViewSet(viewsets.ModelViewSet):
    """
    Courier partners.

    - List/Retrieve: public (?active=true for active only)
    - Create/Update/Delete: admin only
    - compare/recommend: authenticated users
    """

    queryset = Courier.objects.all().order_by('name')

    def get_permissions(self):
        if self.action in ['list', 'retrieve']:
            return [permissions.AllowAny()]
        if self.action in ['compare', 'recommend']:
            return [permissions.IsAuthenticated()]
        return [IsAdminRole()]

    def get_serializer_class(self):
        if self.action == 'list':
            return CourierListSerializer
        return CourierSerializer

    def get_queryset(self):
        queryset = super().get_queryset()
        if self.request.query_params.get('active') == 'true':
            queryset = queryset.filter(is_active=True)
        return queryset

    def _audit(self, action_name, description, courier):
        record_action(
            action_name, LogModule.COURIER, description,
            user_id=self.request.user.pk, user_email=self.request.user.email,
            details={'courier_id': str(courier.pk), 'code': courier.code},
            request=self.request,
        )

    def perform_create(self, serializer):
        courier = serializer.save()
        self._audit(LogAction.CREATE, f"Courier created: {courier.name}", courier)

    def perform_update(self, serializer):
        courier = serializer.save()
        self._audit(LogAction.UPDATE, f"Courier updated: {courier.name}", courier)

    def perform_destroy(self, instance):
        if instance.shipments.exists():
            raise InvalidState('Courier has shipments; deactivate it instead')
        self._audit(LogAction.DELETE, f"Courier deleted: {instance.name}", instance)
        instance.delete()

    @action(detail=False, methods=['post'])
    def compare(self, request):
        """
        Quote every active courier, cheapest first.

        POST /api/couriers/compare/
        {"weight": 2, "service_type": "express", "payment_mode": "cod"}
        """
        serializer = RateRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        rate_request = ShipmentRequest.from_data(serializer.validated_data)

        result = compare_rates(rate_request, active_couriers())
        return Response(serialize_comparison(result))

    @action(detail=False, methods=['post'])
    def recommend(self, request):
        """
        Rank active couriers for a priority: cost, speed, reliability
        or balanced.

        POST /api/couriers/recommend/
        """
        serializer = RecommendRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        rate_request = ShipmentRequest.from_data(serializer.validated_data, default_weight=1)

        result = recommend_couriers(
            rate_request, active_couriers(), serializer.validated_data['priority']
        )
        return Response(serialize_recommendations(result))


# ============================================
# SHIPMENTS
# ============================================

class ShipmentViewSet(viewsets.ModelViewSet):
    """
    Shipments.

    Business users see their own shipments; staff and admins see all.
    Status only changes through the `status` action (staff/admin).
    """

    permission_classes = [permissions.IsAuthenticated]
    filter_backends = [DjangoFilterBackend, filters.OrderingFilter]
    filterset_class = ShipmentFilter
    ordering_fields = ['created_at', 'total_cost', 'expected_delivery_date']

    def get_queryset(self):
        queryset = Shipment.objects.select_related('courier', 'user')
        actor = Actor.from_user(self.request.user)
        if actor.is_staff_member:
            return queryset
        return queryset.filter(user=self.request.user)

    def get_serializer_class(self):
        if self.action == 'list':
            return ShipmentListSerializer
        if self.action == 'create':
            return ShipmentCreateSerializer
        if self.action in ['update', 'partial_update']:
            return ShipmentUpdateSerializer
        return ShipmentSerializer

    def create(self, request, *args, **kwargs):
        serializer = ShipmentCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        shipment = shipment_lifecycle.create_shipment(
            request.user, serializer.validated_data, request=request
        )
        return Response(ShipmentSerializer(shipment).data, status=status.HTTP_201_CREATED)

    def retrieve(self, request, *args, **kwargs):
        shipment = self.get_object()
        logs = shipment.tracking_logs.order_by('-timestamp', '-sequence')
        return Response({
            **ShipmentSerializer(shipment).data,
            'tracking_logs': TrackingLogSerializer(logs, many=True).data,
        })

    def update(self, request, *args, **kwargs):
        partial = kwargs.pop('partial', False)
        shipment = self.get_object()
        serializer = ShipmentUpdateSerializer(shipment, data=request.data, partial=partial)
        serializer.is_valid(raise_exception=True)
        serializer.save()
        record_action(
            LogAction.UPDATE, LogModule.SHIPMENT,
            f"Shipment updated: {shipment.tracking_id}",
            user_id=request.user.pk, user_email=request.user.email,
            details={'fields': sorted(serializer.validated_data)}, request=request,
        )
        return Response(ShipmentSerializer(shipment).data)

    def destroy(self, request, *args, **kwargs):
        shipment = self.get_object()
        shipment_lifecycle.delete_shipment(Actor.from_user(request.user), shipment, request=request)
        return Response({'message': 'Shipment deleted'}, status=status.HTTP_200_OK)

    @action(detail=True, methods=['put', 'post'], permission_classes=[IsStaffOrAdmin])
    def status(self, request, pk=None):
        """Explicit status change (staff/admin)."""
        shipment = self.get_object()
        serializer = StatusUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        capability = Actor.from_user(request.user).as_staff()
        shipment_lifecycle.update_status(
            capability, shipment,
            serializer.validated_data['status'],
            location=serializer.validated_data.get('location'),
            remarks=serializer.validated_data.get('remarks', ''),
        )
        return Response(ShipmentSerializer(shipment).data)

    @action(detail=False, methods=['post'])
    def bulk(self, request):
        """Create many shipments; rows that fail are reported, not raised."""
        payload = BulkShipmentSerializer(data=request.data)
        payload.is_valid(raise_exception=True)

        rows = []
        for raw in payload.validated_data['shipments']:
            row = ShipmentCreateSerializer(data=raw)
            if row.is_valid():
                rows.append({'data': row.validated_data})
            else:
                rows.append({'errors': row.errors})

        result = shipment_lifecycle.bulk_create(request.user, rows, request=request)
        return Response({
            'created': len(result['created']),
            'errors': result['errors'],
            'results': ShipmentListSerializer(result['created'], many=True).data,
        }, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=['post'])
    def label(self, request, pk=None):
        shipment = self.get_object()
        label = shipment_lifecycle.generate_label(shipment)
        return Response({'message': 'Label generated successfully', **label})

    @action(detail=True, methods=['post'])
    def pickup(self, request, pk=None):
        shipment = self.get_object()
        serializer = PickupSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        shipment_lifecycle.schedule_pickup(
            Actor.from_user(request.user), shipment,
            serializer.validated_data['pickup_date'],
            serializer.validated_data.get('pickup_time'),
            serializer.validated_data.get('instructions', ''),
        )
        return Response({
            'message': 'Pickup scheduled successfully',
            'shipment': ShipmentSerializer(shipment).data,
        })


class AdminShipmentListView(generics.ListAPIView):
    """Every tenant's shipments, for the admin panel."""

    serializer_class = ShipmentSerializer
    permission_classes = [IsAdminRole]
    filter_backends = [DjangoFilterBackend, filters.OrderingFilter]
    filterset_class = ShipmentFilter
    queryset = Shipment.objects.select_related('courier', 'user')


# ============================================
# TRACKING
# ============================================

class TrackingSamplesView(APIView):
    """GET /api/tracking/samples/"""
    permission_classes = [permissions.AllowAny]

    def get(self, request):
        return Response({'results': sample_tracking_ids()})


class TrackShipmentView(APIView):
    """GET /api/tracking/<tracking_id>/ - public"""
    permission_classes = [permissions.AllowAny]

    def get(self, request, tracking_id):
        return Response(track_shipment(tracking_id))


class TimelineView(APIView):
    """GET /api/tracking/<tracking_id>/timeline/ - public, oldest first"""
    permission_classes = [permissions.AllowAny]

    def get(self, request, tracking_id):
        timeline = build_timeline(tracking_id)
        return Response({'count': len(timeline), 'results': timeline})


class SimulateTrackingView(APIView):
    """POST /api/tracking/<tracking_id>/simulate/ - staff/admin demo helper"""
    permission_classes = [IsStaffOrAdmin]

    def post(self, request, tracking_id):
        capability = Actor.from_user(request.user).as_staff()
        transition = shipment_lifecycle.simulate(capability, tracking_id)
        return Response({
            'message': f"Shipment status updated to: {transition.new_status}",
            'tracking_id': tracking_id,
            'previous_status': transition.previous_status,
            'new_status': transition.new_status,
        })
