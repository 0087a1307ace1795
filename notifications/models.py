"""
NOTIFICATIONS App - In-app notifications for CourierDesk
"""

import uuid
from django.conf import settings
from django.db import models


class NotificationType(models.TextChoices):
    SHIPMENT_CREATED = 'shipment_created', 'Shipment created'
    SHIPMENT_PICKED = 'shipment_picked', 'Shipment picked up'
    SHIPMENT_IN_TRANSIT = 'shipment_in_transit', 'Shipment in transit'
    SHIPMENT_DELIVERED = 'shipment_delivered', 'Shipment delivered'
    SHIPMENT_FAILED = 'shipment_failed', 'Shipment failed'
    SYSTEM = 'system', 'System'
    ALERT = 'alert', 'Alert'
    REMINDER = 'reminder', 'Reminder'


class Notification(models.Model):
    """
    Message shown in a user's notification feed.

    `data` carries the shipment id and tracking id for shipment events.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='notifications'
    )
    type = models.CharField(max_length=30, choices=NotificationType.choices)
    title = models.CharField(max_length=200)
    message = models.TextField()
    data = models.JSONField(default=dict, blank=True)
    is_read = models.BooleanField(default=False)
    is_email_sent = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = "Notification"
        verbose_name_plural = "Notifications"
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['user', 'is_read'], name='notification_user_read_idx'),
        ]

    def __str__(self):
        return f"{self.type}: {self.title}"
