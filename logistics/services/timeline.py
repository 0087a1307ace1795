"""
Tracking timeline builder.

Projects the tracking log of one shipment into display entries,
oldest first. Reversing for "latest first" is left to the client.
"""

from typing import Any, Dict, List

from core.exceptions import NotFound
from logistics.models import Shipment, TrackingEvent, TrackingLog

DEFAULT_ICON = '📍'

TIMELINE_ICONS = {
    TrackingEvent.ORDER_CREATED: '📦',
    TrackingEvent.PICKUP_SCHEDULED: '📅',
    TrackingEvent.PICKED_UP: '🚛',
    TrackingEvent.IN_TRANSIT: '✈️',
    TrackingEvent.REACHED_HUB: '🏢',
    TrackingEvent.OUT_FOR_DELIVERY: '🚚',
    TrackingEvent.DELIVERED: '✅',
    TrackingEvent.FAILED_ATTEMPT: '❌',
    TrackingEvent.RETURNED: '↩️',
    TrackingEvent.CANCELLED: '🚫',
}


def icon_for(status: str) -> str:
    return TIMELINE_ICONS.get(status, DEFAULT_ICON)


def timeline_entry(log: TrackingLog) -> Dict[str, Any]:
    return {
        'status': log.status,
        'icon': icon_for(log.status),
        'description': log.description,
        'location': log.location,
        'remarks': log.remarks,
        'timestamp': log.timestamp,
        'updated_by': log.updated_by,
    }


def build_timeline(tracking_id: str) -> List[Dict[str, Any]]:
    """
    Chronological timeline for a tracking id.

    Raises:
        NotFound: no log entries exist for the id.
    """
    entries = [timeline_entry(log) for log in TrackingLog.objects.for_tracking_id(tracking_id)]
    if not entries:
        raise NotFound('No tracking information found')
    return entries


def track_shipment(tracking_id: str) -> Dict[str, Any]:
    """Public tracking summary: shipment essentials plus its timeline."""
    shipment = (
        Shipment.objects.select_related('courier')
        .filter(tracking_id=tracking_id)
        .first()
    )
    if shipment is None:
        raise NotFound('Shipment not found. Please check the tracking ID.')

    courier = shipment.courier
    return {
        'tracking_id': shipment.tracking_id,
        'status': shipment.status,
        'courier': shipment.courier_name,
        'courier_details': {
            'name': courier.name,
            'code': courier.code,
            'logo': courier.logo,
            'support_email': courier.support_email,
            'support_phone': courier.support_phone,
            'website': courier.website,
        },
        'sender': {'city': shipment.sender_city, 'state': shipment.sender_state},
        'receiver': {
            'name': shipment.receiver_name,
            'city': shipment.receiver_city,
            'state': shipment.receiver_state,
        },
        'package': {
            'weight': str(shipment.weight),
            'description': shipment.package_description,
            'category': shipment.category,
        },
        'service_type': shipment.service_type,
        'created_at': shipment.created_at,
        'expected_delivery_date': shipment.expected_delivery_date,
        'actual_delivery_date': shipment.actual_delivery_date,
        'timeline': [
            timeline_entry(log) for log in TrackingLog.objects.for_tracking_id(tracking_id)
        ],
    }


def sample_tracking_ids(limit: int = 5) -> List[Dict[str, Any]]:
    """Latest tracking ids, for the demo tracking page."""
    shipments = Shipment.objects.order_by('-created_at').only(
        'tracking_id', 'status', 'courier_name'
    )[:limit]
    return [
        {'tracking_id': s.tracking_id, 'status': s.status, 'courier': s.courier_name}
        for s in shipments
    ]
