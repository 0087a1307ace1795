"""
Logistics App Serializers - Couriers, Shipments & Tracking
"""

from decimal import Decimal

from rest_framework import serializers

from .models import (
    Courier, Shipment, TrackingLog, ShipmentStatus, ServiceType, PaymentMode,
)


class CourierSerializer(serializers.ModelSerializer):
    """Full serializer for Courier model (admin writes)."""

    class Meta:
        model = Courier
        fields = [
            'id', 'name', 'code', 'logo', 'description', 'is_active',
            'base_rate', 'weight_rate', 'express_multiplier', 'overnight_multiplier',
            'cod_charges', 'fuel_surcharge',
            'is_domestic', 'is_international', 'service_pincodes', 'restricted_pincodes',
            'avg_delivery_days', 'delivery_success_rate', 'avg_rating',
            'support_email', 'support_phone', 'website',
            'created_at', 'updated_at'
        ]
        read_only_fields = ['id', 'created_at', 'updated_at']

    def validate(self, data):
        for name in ('base_rate', 'weight_rate', 'cod_charges', 'fuel_surcharge'):
            if name in data and data[name] < 0:
                raise serializers.ValidationError({name: 'Must not be negative.'})
        for name in ('express_multiplier', 'overnight_multiplier'):
            if name in data and data[name] <= 0:
                raise serializers.ValidationError({name: 'Must be greater than 0.'})
        if 'avg_delivery_days' in data and data['avg_delivery_days'] < 1:
            raise serializers.ValidationError({'avg_delivery_days': 'Must be at least 1 day.'})
        return data


class CourierListSerializer(serializers.ModelSerializer):
    """Lightweight serializer for courier listings."""

    class Meta:
        model = Courier
        fields = [
            'id', 'name', 'code', 'logo', 'is_active',
            'avg_delivery_days', 'delivery_success_rate', 'avg_rating'
        ]


class RateRequestSerializer(serializers.Serializer):
    """Input of the compare endpoint."""

    weight = serializers.DecimalField(max_digits=8, decimal_places=3, min_value=Decimal('0.001'))
    service_type = serializers.ChoiceField(choices=ServiceType.choices, default=ServiceType.STANDARD)
    payment_mode = serializers.ChoiceField(choices=PaymentMode.choices, default=PaymentMode.PREPAID)
    from_pincode = serializers.CharField(required=False, allow_blank=True)
    to_pincode = serializers.CharField(required=False, allow_blank=True)


class RecommendRequestSerializer(serializers.Serializer):
    """Input of the recommend endpoint. Weight defaults to 1 kg."""

    weight = serializers.DecimalField(
        max_digits=8, decimal_places=3, min_value=Decimal('0.001'), required=False
    )
    service_type = serializers.ChoiceField(choices=ServiceType.choices, default=ServiceType.STANDARD)
    priority = serializers.CharField(required=False, default='balanced')
    from_city = serializers.CharField(required=False, allow_blank=True)
    to_city = serializers.CharField(required=False, allow_blank=True)


class TrackingLogSerializer(serializers.ModelSerializer):
    location = serializers.ReadOnlyField()

    class Meta:
        model = TrackingLog
        fields = [
            'id', 'tracking_id', 'status', 'description', 'location',
            'remarks', 'updated_by', 'timestamp'
        ]
        read_only_fields = fields


SHIPMENT_INPUT_FIELDS = [
    'courier',
    'sender_name', 'sender_phone', 'sender_email', 'sender_address',
    'sender_city', 'sender_state', 'sender_pincode',
    'receiver_name', 'receiver_phone', 'receiver_email', 'receiver_address',
    'receiver_city', 'receiver_state', 'receiver_pincode',
    'weight', 'length', 'width', 'height', 'package_description',
    'declared_value', 'category',
    'service_type', 'payment_mode', 'cod_amount',
    'shipping_cost', 'insurance_cost', 'special_instructions',
]


class ShipmentSerializer(serializers.ModelSerializer):
    """Full serializer for Shipment model."""

    courier_code = serializers.CharField(source='courier.code', read_only=True)
    owner_email = serializers.CharField(source='user.email', read_only=True)

    class Meta:
        model = Shipment
        fields = [
            'id', 'tracking_id', 'user', 'owner_email', 'courier_name', 'courier_code',
            *SHIPMENT_INPUT_FIELDS,
            'total_cost', 'status',
            'pickup_date', 'expected_delivery_date', 'actual_delivery_date',
            'label_generated', 'label_url', 'failure_reason', 'attempt_count',
            'created_at', 'updated_at'
        ]
        read_only_fields = [
            'id', 'tracking_id', 'user', 'courier_name', 'total_cost', 'status',
            'pickup_date', 'expected_delivery_date', 'actual_delivery_date',
            'label_generated', 'label_url', 'failure_reason', 'attempt_count',
            'created_at', 'updated_at'
        ]


class ShipmentListSerializer(serializers.ModelSerializer):
    """Lightweight serializer for shipment listings."""

    class Meta:
        model = Shipment
        fields = [
            'id', 'tracking_id', 'courier', 'courier_name', 'status',
            'receiver_name', 'receiver_city', 'service_type', 'payment_mode',
            'total_cost', 'expected_delivery_date', 'created_at'
        ]


class ShipmentAmountsSerializer(serializers.Serializer):
    """Bounded weight and cost fields shared by the create and update paths."""

    weight = serializers.DecimalField(max_digits=8, decimal_places=2, min_value=Decimal('0.01'))
    shipping_cost = serializers.DecimalField(
        max_digits=12, decimal_places=2, min_value=Decimal('0'), required=False
    )
    insurance_cost = serializers.DecimalField(
        max_digits=12, decimal_places=2, min_value=Decimal('0'), required=False
    )


class ShipmentCreateSerializer(ShipmentAmountsSerializer, serializers.ModelSerializer):
    """Validates shipment input. Costs are quoted when left empty."""

    courier = serializers.PrimaryKeyRelatedField(queryset=Courier.objects.all())

    class Meta:
        model = Shipment
        fields = SHIPMENT_INPUT_FIELDS

    def validate(self, data):
        if data.get('payment_mode') == PaymentMode.COD and not data.get('cod_amount'):
            raise serializers.ValidationError({'cod_amount': 'COD amount is required for COD shipments.'})
        return data


class ShipmentUpdateSerializer(ShipmentAmountsSerializer, serializers.ModelSerializer):
    """
    Generic update path. Tracking id, status and courier are not
    writable here; status only changes through the status endpoint.
    """

    class Meta:
        model = Shipment
        fields = [f for f in SHIPMENT_INPUT_FIELDS if f != 'courier']


class StatusUpdateSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=ShipmentStatus.choices)
    location = serializers.DictField(required=False)
    remarks = serializers.CharField(required=False, allow_blank=True, default='')


class PickupSerializer(serializers.Serializer):
    pickup_date = serializers.DateField()
    pickup_time = serializers.TimeField(required=False, allow_null=True)
    instructions = serializers.CharField(required=False, allow_blank=True, default='')


class BulkShipmentSerializer(serializers.Serializer):
    shipments = serializers.ListField(
        child=serializers.DictField(),
        allow_empty=False,
        max_length=500
    )
