"""
LOGISTICS App - Couriers, Shipments & Tracking for CourierDesk

Handles: Courier partners and their pricing, Shipments, Tracking history
"""

import uuid
from decimal import Decimal

from django.conf import settings
from django.db import models
from django.utils import timezone

from core.exceptions import InvalidState


class ServiceType(models.TextChoices):
    """Delivery speed/cost tier."""
    ECONOMY = 'economy', 'Economy'
    STANDARD = 'standard', 'Standard'
    EXPRESS = 'express', 'Express'
    OVERNIGHT = 'overnight', 'Overnight'


class PaymentMode(models.TextChoices):
    PREPAID = 'prepaid', 'Prepaid'
    COD = 'cod', 'Cash on delivery'


class ShipmentStatus(models.TextChoices):
    """Shipment status enumeration."""
    PENDING = 'pending', 'Pending'
    CONFIRMED = 'confirmed', 'Confirmed'
    PICKED_UP = 'picked_up', 'Picked up'
    IN_TRANSIT = 'in_transit', 'In transit'
    OUT_FOR_DELIVERY = 'out_for_delivery', 'Out for delivery'
    DELIVERED = 'delivered', 'Delivered'
    FAILED = 'failed', 'Failed'
    RETURNED = 'returned', 'Returned'
    CANCELLED = 'cancelled', 'Cancelled'


class TrackingEvent(models.TextChoices):
    """Status recorded on a tracking log entry."""
    ORDER_CREATED = 'order_created', 'Order created'
    PENDING = 'pending', 'Pending'
    CONFIRMED = 'confirmed', 'Confirmed'
    PICKUP_SCHEDULED = 'pickup_scheduled', 'Pickup scheduled'
    PICKED_UP = 'picked_up', 'Picked up'
    IN_TRANSIT = 'in_transit', 'In transit'
    REACHED_HUB = 'reached_hub', 'Reached hub'
    OUT_FOR_DELIVERY = 'out_for_delivery', 'Out for delivery'
    DELIVERED = 'delivered', 'Delivered'
    FAILED_ATTEMPT = 'failed_attempt', 'Failed attempt'
    RETURNED = 'returned', 'Returned'
    CANCELLED = 'cancelled', 'Cancelled'

    @classmethod
    def for_status(cls, status: str) -> str:
        """Event logged for a shipment status (`failed` is a failed attempt)."""
        if status == ShipmentStatus.FAILED:
            return cls.FAILED_ATTEMPT
        return cls(status)


class PackageCategory(models.TextChoices):
    DOCUMENTS = 'documents', 'Documents'
    ELECTRONICS = 'electronics', 'Electronics'
    CLOTHING = 'clothing', 'Clothing'
    FOOD = 'food', 'Food'
    FRAGILE = 'fragile', 'Fragile'
    OTHER = 'other', 'Other'


class Courier(models.Model):
    """
    Courier partner with its pricing parameters and performance stats.

    Pricing fields feed the rate engine (logistics.services.pricing);
    they are only changed through the admin endpoints.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=100, unique=True, verbose_name="Name")
    code = models.CharField(max_length=10, unique=True, verbose_name="Code")
    logo = models.CharField(max_length=255, blank=True, verbose_name="Logo")
    description = models.TextField(blank=True)
    is_active = models.BooleanField(default=True, verbose_name="Active")

    # Pricing
    base_rate = models.DecimalField(max_digits=10, decimal_places=2, verbose_name="Base rate")
    weight_rate = models.DecimalField(
        max_digits=10, decimal_places=2,
        verbose_name="Rate per kg"
    )
    express_multiplier = models.DecimalField(
        max_digits=5, decimal_places=2, default=Decimal('1.50')
    )
    overnight_multiplier = models.DecimalField(
        max_digits=5, decimal_places=2, default=Decimal('2.00')
    )
    cod_charges = models.DecimalField(
        max_digits=10, decimal_places=2, default=Decimal('50.00'),
        verbose_name="COD charges"
    )
    fuel_surcharge = models.DecimalField(
        max_digits=5, decimal_places=2, default=Decimal('0.00'),
        verbose_name="Fuel surcharge (%)"
    )

    # Coverage
    is_domestic = models.BooleanField(default=True)
    is_international = models.BooleanField(default=False)
    service_pincodes = models.JSONField(default=list, blank=True)
    restricted_pincodes = models.JSONField(default=list, blank=True)

    # Performance
    avg_delivery_days = models.PositiveIntegerField(default=3)
    delivery_success_rate = models.DecimalField(
        max_digits=5, decimal_places=2, default=Decimal('95.00'),
        verbose_name="Success rate (%)"
    )
    avg_rating = models.DecimalField(max_digits=3, decimal_places=2, default=Decimal('4.00'))

    # Contact
    support_email = models.EmailField(blank=True)
    support_phone = models.CharField(max_length=20, blank=True)
    website = models.URLField(blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = "Courier"
        verbose_name_plural = "Couriers"
        ordering = ['name']

    def __str__(self):
        return f"{self.name} ({self.code})"

    def save(self, *args, **kwargs):
        self.code = (self.code or '').upper()
        super().save(*args, **kwargs)


class Shipment(models.Model):
    """
    A parcel booked by a business user with one courier.

    `tracking_id` and `status` only change through
    logistics.services.lifecycle; total_cost is derived on every save.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    tracking_id = models.CharField(max_length=40, unique=True, verbose_name="Tracking ID")

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='shipments',
        verbose_name="Owner"
    )
    courier = models.ForeignKey(
        Courier,
        on_delete=models.PROTECT,
        related_name='shipments'
    )
    courier_name = models.CharField(max_length=100, blank=True)

    # Sender
    sender_name = models.CharField(max_length=150)
    sender_phone = models.CharField(max_length=20)
    sender_email = models.EmailField(blank=True)
    sender_address = models.TextField()
    sender_city = models.CharField(max_length=100)
    sender_state = models.CharField(max_length=100, blank=True)
    sender_pincode = models.CharField(max_length=10)

    # Receiver
    receiver_name = models.CharField(max_length=150)
    receiver_phone = models.CharField(max_length=20)
    receiver_email = models.EmailField(blank=True)
    receiver_address = models.TextField()
    receiver_city = models.CharField(max_length=100)
    receiver_state = models.CharField(max_length=100, blank=True)
    receiver_pincode = models.CharField(max_length=10)

    # Package
    weight = models.DecimalField(max_digits=8, decimal_places=2, verbose_name="Weight (kg)")
    length = models.DecimalField(max_digits=8, decimal_places=2, null=True, blank=True)
    width = models.DecimalField(max_digits=8, decimal_places=2, null=True, blank=True)
    height = models.DecimalField(max_digits=8, decimal_places=2, null=True, blank=True)
    package_description = models.CharField(max_length=255, blank=True)
    declared_value = models.DecimalField(
        max_digits=12, decimal_places=2, default=Decimal('0.00')
    )
    category = models.CharField(
        max_length=20,
        choices=PackageCategory.choices,
        default=PackageCategory.OTHER
    )

    # Service
    service_type = models.CharField(
        max_length=20,
        choices=ServiceType.choices,
        default=ServiceType.STANDARD
    )
    payment_mode = models.CharField(
        max_length=20,
        choices=PaymentMode.choices,
        default=PaymentMode.PREPAID
    )
    cod_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))

    # Costs
    shipping_cost = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    insurance_cost = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    total_cost = models.DecimalField(
        max_digits=12, decimal_places=2, default=Decimal('0.00'),
        editable=False
    )

    # Status
    status = models.CharField(
        max_length=20,
        choices=ShipmentStatus.choices,
        default=ShipmentStatus.PENDING,
        db_index=True
    )

    # Dates
    pickup_date = models.DateTimeField(null=True, blank=True)
    expected_delivery_date = models.DateTimeField(null=True, blank=True)
    actual_delivery_date = models.DateTimeField(null=True, blank=True)

    special_instructions = models.TextField(blank=True)
    label_generated = models.BooleanField(default=False)
    label_url = models.CharField(max_length=255, blank=True)

    # Failure metadata
    failure_reason = models.TextField(blank=True)
    attempt_count = models.PositiveIntegerField(default=0)

    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = "Shipment"
        verbose_name_plural = "Shipments"
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['user', 'status'], name='shipment_user_status_idx'),
        ]

    def __str__(self):
        return f"{self.tracking_id} ({self.status})"

    def save(self, *args, **kwargs):
        self.total_cost = (self.shipping_cost or Decimal('0')) + (self.insurance_cost or Decimal('0'))
        update_fields = kwargs.get('update_fields')
        if update_fields is not None and (
            'shipping_cost' in update_fields or 'insurance_cost' in update_fields
        ):
            kwargs['update_fields'] = list(set(update_fields) | {'total_cost'})
        super().save(*args, **kwargs)

    @property
    def is_deletable(self) -> bool:
        return self.status in (ShipmentStatus.PENDING, ShipmentStatus.CANCELLED)


class TrackingLogManager(models.Manager):

    def for_tracking_id(self, tracking_id):
        """Entries of one shipment, oldest first."""
        return self.filter(tracking_id=tracking_id).order_by('timestamp', 'sequence')

    def append(self, shipment, status, description, city='', state='',
               facility='', remarks='', updated_by='System', timestamp=None,
               latitude=None, longitude=None):
        """
        Append one entry to a shipment's history.

        The timestamp is never earlier than the latest entry already
        stored for the tracking id.
        """
        timestamp = timestamp or timezone.now()
        last = (
            self.filter(tracking_id=shipment.tracking_id)
            .order_by('-timestamp', '-sequence')
            .first()
        )
        sequence = 1
        if last is not None:
            sequence = last.sequence + 1
            if last.timestamp > timestamp:
                timestamp = last.timestamp

        return self.create(
            shipment=shipment,
            tracking_id=shipment.tracking_id,
            sequence=sequence,
            status=status,
            description=description,
            city=city or '',
            state=state or '',
            facility=facility or '',
            latitude=latitude,
            longitude=longitude,
            remarks=remarks or '',
            updated_by=updated_by,
            timestamp=timestamp,
        )


class TrackingLog(models.Model):
    """
    One immutable waypoint in a shipment's history.

    Rows are only ever inserted; they go away with their shipment.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    shipment = models.ForeignKey(
        Shipment,
        on_delete=models.CASCADE,
        related_name='tracking_logs'
    )
    tracking_id = models.CharField(max_length=40, db_index=True)
    sequence = models.PositiveIntegerField(default=1)
    status = models.CharField(max_length=20, choices=TrackingEvent.choices)
    description = models.CharField(max_length=255)

    # Location
    city = models.CharField(max_length=100, blank=True)
    state = models.CharField(max_length=100, blank=True)
    facility = models.CharField(max_length=150, blank=True)
    latitude = models.FloatField(null=True, blank=True)
    longitude = models.FloatField(null=True, blank=True)

    remarks = models.TextField(blank=True)
    updated_by = models.CharField(max_length=254, default='System')
    timestamp = models.DateTimeField(default=timezone.now)

    objects = TrackingLogManager()

    class Meta:
        verbose_name = "Tracking log"
        verbose_name_plural = "Tracking logs"
        ordering = ['timestamp', 'sequence']
        indexes = [
            models.Index(fields=['tracking_id', 'timestamp'], name='trackinglog_tid_ts_idx'),
        ]

    def __str__(self):
        return f"{self.tracking_id} - {self.status}"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise InvalidState('Tracking log entries cannot be modified')
        super().save(*args, **kwargs)

    @property
    def location(self) -> dict:
        return {
            'city': self.city,
            'state': self.state,
            'facility': self.facility,
            'latitude': self.latitude,
            'longitude': self.longitude,
        }
