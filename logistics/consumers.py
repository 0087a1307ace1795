"""
LOGISTICS App - WebSocket Consumer for Real-time Tracking

Clients connect to: ws://host/ws/shipments/<tracking_id>/
"""

import logging
from typing import Any, Dict, Optional

from channels.db import database_sync_to_async
from channels.generic.websocket import AsyncJsonWebsocketConsumer

from .events import shipment_group_name

logger = logging.getLogger(__name__)


class ShipmentTrackingConsumer(AsyncJsonWebsocketConsumer):
    """
    WebSocket consumer for tracking one shipment.

    Events received:
    - shipment_status_update: status changed (explicit update or simulation)
    """

    async def connect(self):
        self.tracking_id = self.scope['url_route']['kwargs']['tracking_id']
        self.room_group_name = shipment_group_name(self.tracking_id)

        shipment = await self.get_shipment()
        if not shipment:
            await self.close(code=4004)
            return

        await self.channel_layer.group_add(self.room_group_name, self.channel_name)
        await self.accept()

        await self.send_json({
            'type': 'connection_established',
            'tracking_id': self.tracking_id,
            'status': shipment['status'],
        })
        logger.info(f"[WS] Client connected to shipment {self.tracking_id}")

    async def disconnect(self, close_code):
        if hasattr(self, 'room_group_name'):
            await self.channel_layer.group_discard(self.room_group_name, self.channel_name)
        logger.info(f"[WS] Client disconnected from shipment {getattr(self, 'tracking_id', '?')}")

    async def receive_json(self, content):
        if content.get('type') == 'ping':
            await self.send_json({'type': 'pong'})

    async def shipment_status_update(self, event):
        await self.send_json({
            'type': 'status_update',
            'tracking_id': event['tracking_id'],
            'status': event['status'],
            'description': event.get('description', ''),
            'location': event.get('location', {}),
            'timestamp': event['timestamp'],
        })

    @database_sync_to_async
    def get_shipment(self) -> Optional[Dict[str, Any]]:
        from logistics.models import Shipment

        shipment = Shipment.objects.filter(tracking_id=self.tracking_id).only('status').first()
        if shipment is None:
            return None
        return {'status': shipment.status}
