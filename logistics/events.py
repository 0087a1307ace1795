"""
LOGISTICS App - Real-time Event Broadcasting

Pushes shipment status changes to WebSocket clients through
Django Channels. Called by the lifecycle service after commit.
"""

import logging

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from django.utils import timezone

logger = logging.getLogger(__name__)


def shipment_group_name(tracking_id: str) -> str:
    return f'shipment_{tracking_id}'


def _send_group_event(group_name: str, event: dict) -> bool:
    """Send event to a channel group."""
    channel_layer = get_channel_layer()
    if not channel_layer:
        return False

    try:
        async_to_sync(channel_layer.group_send)(group_name, event)
        return True
    except Exception as e:
        # A failed push never fails the transition that triggered it.
        logger.error(f"[EVENTS] Failed to send to group {group_name}: {e}")
        return False


def broadcast_shipment_status(tracking_id: str, new_status: str, description: str = "",
                              city: str = "", state: str = "") -> bool:
    """Notify every client watching this tracking id."""
    sent = _send_group_event(
        shipment_group_name(tracking_id),
        {
            'type': 'shipment_status_update',
            'tracking_id': tracking_id,
            'status': new_status,
            'description': description,
            'location': {'city': city, 'state': state},
            'timestamp': timezone.now().isoformat(),
        }
    )
    logger.debug(f"[EVENTS] {tracking_id} -> {new_status} (sent={sent})")
    return sent
