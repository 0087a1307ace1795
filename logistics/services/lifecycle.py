"""
Shipment lifecycle for CourierDesk.

Status changes are planned by pure functions that return a `Transition`:
the field changes to apply plus an ordered list of effects (tracking log
entry, owner notification, WebSocket broadcast). `ShipmentLifecycle`
applies a transition inside one database transaction; broadcasts are
deferred until the transaction commits.

Status graph for explicit updates is permissive: staff may set any
status from any status. The simulator only walks SIMULATION_SEQUENCE.
"""

import logging
import random
import secrets
import string
import time
from dataclasses import dataclass, field
from datetime import datetime, time as dt_time
from functools import partial
from typing import Any, Dict, List, Optional

from django.conf import settings
from django.db import IntegrityError, transaction
from django.utils import timezone

from core.actors import Actor, StaffCapability
from core.audit import record_action
from core.exceptions import Conflict, InvalidInput, InvalidState, InvalidTransition, NotFound
from core.models import LogAction, LogModule, LogStatus
from logistics.events import broadcast_shipment_status
from logistics.models import (
    Shipment, ShipmentStatus, TrackingEvent, TrackingLog, PaymentMode,
)
from notifications.models import NotificationType
from notifications.services import NotificationService
from .pricing import rate_engine

logger = logging.getLogger(__name__)


# ============================================
# LOOKUP TABLES
# ============================================

STATUS_DESCRIPTIONS = {
    ShipmentStatus.PENDING: 'Order is pending confirmation',
    ShipmentStatus.CONFIRMED: 'Order has been confirmed',
    ShipmentStatus.PICKED_UP: 'Package has been picked up',
    ShipmentStatus.IN_TRANSIT: 'Package is in transit',
    ShipmentStatus.OUT_FOR_DELIVERY: 'Package is out for delivery',
    ShipmentStatus.DELIVERED: 'Package has been delivered',
    ShipmentStatus.FAILED: 'Delivery attempt failed',
    ShipmentStatus.RETURNED: 'Package is being returned to sender',
    ShipmentStatus.CANCELLED: 'Order has been cancelled',
}

SIMULATION_DESCRIPTIONS = {
    ShipmentStatus.CONFIRMED: 'Order confirmed, awaiting pickup',
    ShipmentStatus.PICKED_UP: 'Package picked up from sender',
    ShipmentStatus.IN_TRANSIT: 'Package in transit to destination',
    ShipmentStatus.OUT_FOR_DELIVERY: 'Package out for delivery',
    ShipmentStatus.DELIVERED: 'Package delivered successfully',
}

NOTIFICATION_TYPES = {
    ShipmentStatus.PICKED_UP: NotificationType.SHIPMENT_PICKED,
    ShipmentStatus.IN_TRANSIT: NotificationType.SHIPMENT_IN_TRANSIT,
    ShipmentStatus.DELIVERED: NotificationType.SHIPMENT_DELIVERED,
    ShipmentStatus.FAILED: NotificationType.SHIPMENT_FAILED,
}

SIMULATION_SEQUENCE = [
    ShipmentStatus.PENDING,
    ShipmentStatus.CONFIRMED,
    ShipmentStatus.PICKED_UP,
    ShipmentStatus.IN_TRANSIT,
    ShipmentStatus.OUT_FOR_DELIVERY,
    ShipmentStatus.DELIVERED,
]

DELETABLE_STATUSES = (ShipmentStatus.PENDING, ShipmentStatus.CANCELLED)
PICKUP_STATUSES = (ShipmentStatus.PENDING, ShipmentStatus.CONFIRMED)

CREATED_DESCRIPTION = 'Order has been created and is awaiting pickup'
BULK_CREATED_DESCRIPTION = 'Order created via bulk upload'
SIMULATION_ACTOR = 'Simulation'
TRANSIT_HUB_STATE = 'Transit Hub'


def describe_status(status: str) -> str:
    return STATUS_DESCRIPTIONS.get(status, f"Status updated to {status}")


# ============================================
# TRACKING IDS
# ============================================

BASE36_ALPHABET = string.digits + string.ascii_uppercase


def to_base36(number: int) -> str:
    if number < 0:
        raise ValueError('base36 needs a non-negative number')
    if number == 0:
        return '0'
    digits = []
    while number:
        number, remainder = divmod(number, 36)
        digits.append(BASE36_ALPHABET[remainder])
    return ''.join(reversed(digits))


def generate_tracking_id(courier_name: str, now_ms: Optional[int] = None) -> str:
    """
    `{courier prefix}{base36 ms timestamp}{4 random base36 chars}`, uppercased.

    e.g. BlueDart -> BLULXK9Z2QF3A7
    """
    prefix = (courier_name or '')[:3].upper()
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    suffix = ''.join(secrets.choice(BASE36_ALPHABET) for _ in range(4))
    return f"{prefix}{to_base36(now_ms)}{suffix}"


# ============================================
# EFFECTS & TRANSITIONS
# ============================================

@dataclass(frozen=True)
class AppendTrackingLog:
    status: str
    description: str
    city: str = ''
    state: str = ''
    facility: str = ''
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    remarks: str = ''
    updated_by: str = 'System'


@dataclass(frozen=True)
class EmitNotification:
    notification_type: str
    title: str
    message: str


@dataclass(frozen=True)
class BroadcastStatus:
    status: str
    description: str
    city: str = ''
    state: str = ''


@dataclass
class Transition:
    """Field changes for one shipment plus the effects, in commit order."""
    previous_status: Optional[str]
    new_status: str
    changes: Dict[str, Any] = field(default_factory=dict)
    effects: List[Any] = field(default_factory=list)

    @property
    def log_entries(self) -> List[AppendTrackingLog]:
        return [e for e in self.effects if isinstance(e, AppendTrackingLog)]

    @property
    def notifications(self) -> List[EmitNotification]:
        return [e for e in self.effects if isinstance(e, EmitNotification)]


def _clean_location(location: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    location = location or {}
    if not isinstance(location, dict):
        raise InvalidInput('Location must be an object')
    return {
        'city': location.get('city') or '',
        'state': location.get('state') or '',
        'facility': location.get('facility') or '',
        'latitude': location.get('latitude'),
        'longitude': location.get('longitude'),
    }


def plan_creation(shipment, description: str = CREATED_DESCRIPTION,
                  notify: bool = True) -> Transition:
    """Genesis entry (and owner notification) for a new shipment."""
    effects = [
        AppendTrackingLog(
            status=TrackingEvent.ORDER_CREATED,
            description=description,
            city=shipment.sender_city,
            state=shipment.sender_state,
        ),
    ]
    if notify:
        effects.append(EmitNotification(
            notification_type=NotificationType.SHIPMENT_CREATED,
            title='Shipment Created',
            message=f"Your shipment {shipment.tracking_id} has been created successfully",
        ))
    return Transition(previous_status=None, new_status=shipment.status, effects=effects)


def plan_status_change(shipment, new_status: str, location: Optional[Dict[str, Any]] = None,
                       remarks: str = '', updated_by: str = 'System',
                       now: Optional[datetime] = None) -> Transition:
    """
    Explicit status update by staff.

    Any status may follow any other. Always one log entry; the owner
    is notified for picked_up, in_transit, delivered and failed.
    """
    if new_status not in ShipmentStatus.values:
        raise InvalidInput(f"Unknown status '{new_status}'")

    now = now or timezone.now()
    remarks = remarks or ''
    loc = _clean_location(location)
    description = describe_status(new_status)

    changes: Dict[str, Any] = {'status': new_status}
    if new_status == ShipmentStatus.DELIVERED:
        changes['actual_delivery_date'] = now
    if new_status == ShipmentStatus.FAILED:
        changes['failure_reason'] = remarks
        changes['attempt_count'] = shipment.attempt_count + 1

    effects: List[Any] = [
        AppendTrackingLog(
            status=TrackingEvent.for_status(new_status),
            description=description,
            remarks=remarks,
            updated_by=updated_by,
            **loc,
        ),
    ]

    notification_type = NOTIFICATION_TYPES.get(new_status)
    if notification_type:
        effects.append(EmitNotification(
            notification_type=notification_type,
            title=f"Shipment {new_status.replace('_', ' ').upper()}",
            message=f"Your shipment {shipment.tracking_id} status: {description}",
        ))

    effects.append(BroadcastStatus(
        status=new_status, description=description, city=loc['city'], state=loc['state'],
    ))

    return Transition(
        previous_status=shipment.status, new_status=new_status,
        changes=changes, effects=effects,
    )


def plan_simulation_step(shipment, now: Optional[datetime] = None,
                         hub_city: Optional[str] = None) -> Transition:
    """
    Advance one step along SIMULATION_SEQUENCE.

    Raises:
        InvalidTransition: status outside the sequence or already delivered.
    """
    try:
        index = SIMULATION_SEQUENCE.index(shipment.status)
    except ValueError:
        raise InvalidTransition()
    if index >= len(SIMULATION_SEQUENCE) - 1:
        raise InvalidTransition()

    now = now or timezone.now()
    next_status = SIMULATION_SEQUENCE[index + 1]
    description = SIMULATION_DESCRIPTIONS[next_status]

    changes: Dict[str, Any] = {'status': next_status}
    if next_status == ShipmentStatus.DELIVERED:
        changes['actual_delivery_date'] = now
        city, state = shipment.receiver_city, shipment.receiver_state
    else:
        city = hub_city or random.choice(settings.SIMULATION_HUB_CITIES)
        state = TRANSIT_HUB_STATE

    effects = [
        AppendTrackingLog(
            status=TrackingEvent.for_status(next_status),
            description=description,
            city=city,
            state=state,
            updated_by=SIMULATION_ACTOR,
        ),
        BroadcastStatus(status=next_status, description=description, city=city, state=state),
    ]
    return Transition(
        previous_status=shipment.status, new_status=next_status,
        changes=changes, effects=effects,
    )


def plan_pickup(shipment, pickup_at: datetime, pickup_label: str,
                instructions: str = '', updated_by: str = 'System') -> Transition:
    """Schedule the pickup; the shipment becomes confirmed."""
    if shipment.status not in PICKUP_STATUSES:
        raise InvalidState(f"Cannot schedule a pickup for a {shipment.status} shipment")

    description = f"Pickup scheduled for {pickup_label}"
    return Transition(
        previous_status=shipment.status,
        new_status=ShipmentStatus.CONFIRMED,
        changes={
            'status': ShipmentStatus.CONFIRMED,
            'pickup_date': pickup_at,
            'special_instructions': instructions or '',
        },
        effects=[
            AppendTrackingLog(
                status=TrackingEvent.PICKUP_SCHEDULED,
                description=description,
                city=shipment.sender_city,
                state=shipment.sender_state,
                updated_by=updated_by,
            ),
            BroadcastStatus(
                status=ShipmentStatus.CONFIRMED, description=description,
                city=shipment.sender_city, state=shipment.sender_state,
            ),
        ],
    )


# ============================================
# COMMIT
# ============================================

class ShipmentLifecycle:
    """
    Applies planned transitions to the database.

    Each public method runs in one transaction: the shipment row, its
    tracking log entries, notifications and system log commit together.
    """

    def _apply(self, shipment, transition: Transition):
        if transition.changes:
            for name, value in transition.changes.items():
                setattr(shipment, name, value)
            shipment.save(update_fields=[*transition.changes, 'updated_at'])

        for effect in transition.effects:
            if isinstance(effect, AppendTrackingLog):
                TrackingLog.objects.append(
                    shipment,
                    status=effect.status,
                    description=effect.description,
                    city=effect.city,
                    state=effect.state,
                    facility=effect.facility,
                    latitude=effect.latitude,
                    longitude=effect.longitude,
                    remarks=effect.remarks,
                    updated_by=effect.updated_by,
                )
            elif isinstance(effect, EmitNotification):
                NotificationService.emit(
                    shipment.user,
                    effect.notification_type,
                    effect.title,
                    effect.message,
                    data={'shipment_id': str(shipment.pk), 'tracking_id': shipment.tracking_id},
                )
            elif isinstance(effect, BroadcastStatus):
                transaction.on_commit(partial(
                    broadcast_shipment_status,
                    shipment.tracking_id,
                    effect.status,
                    effect.description,
                    effect.city,
                    effect.state,
                ))

    # ----- creation -----

    def _insert_with_unique_tracking_id(self, shipment):
        max_attempts = settings.TRACKING_ID_MAX_ATTEMPTS
        for attempt in range(1, max_attempts + 1):
            tracking_id = generate_tracking_id(shipment.courier_name)
            if Shipment.objects.filter(tracking_id=tracking_id).exists():
                logger.warning(f"[LIFECYCLE] Tracking id collision {tracking_id} (attempt {attempt})")
                continue

            shipment.tracking_id = tracking_id
            try:
                with transaction.atomic():
                    shipment.save(force_insert=True)
                return shipment
            except IntegrityError:
                if not Shipment.objects.filter(tracking_id=tracking_id).exists():
                    raise
                logger.warning(f"[LIFECYCLE] Tracking id race on {tracking_id} (attempt {attempt})")

        raise Conflict(f"Could not generate a unique tracking id after {max_attempts} attempts")

    def _build_shipment(self, owner, data: Dict[str, Any]) -> Shipment:
        data = dict(data)
        courier = data.pop('courier', None)
        if courier is None:
            raise InvalidInput('Courier is required')
        if not courier.is_active:
            raise InvalidState(f"Courier {courier.name} is not accepting shipments")

        data.pop('status', None)
        data.pop('tracking_id', None)

        service_type = data.get('service_type') or 'standard'
        data['service_type'] = service_type
        data['weight'] = rate_engine.clean_weight(data.get('weight'))
        is_cod = data.get('payment_mode') == PaymentMode.COD

        if not data.get('shipping_cost'):
            data['shipping_cost'] = rate_engine.calculate_rate(
                courier, data['weight'], service_type, is_cod
            )
        data['expected_delivery_date'] = rate_engine.estimated_delivery_date(courier, service_type)

        return Shipment(
            user=owner,
            courier=courier,
            courier_name=courier.name,
            status=ShipmentStatus.PENDING,
            **data,
        )

    def create_shipment(self, owner, data: Dict[str, Any], *, bulk: bool = False,
                        request=None) -> Shipment:
        """
        Create a shipment with its genesis tracking entry.

        Shipping cost is quoted by the rate engine unless given. The
        shipment, its first log entry, the owner notification and the
        system log are written atomically.
        """
        shipment = self._build_shipment(owner, data)

        with transaction.atomic():
            self._insert_with_unique_tracking_id(shipment)
            transition = plan_creation(
                shipment,
                description=BULK_CREATED_DESCRIPTION if bulk else CREATED_DESCRIPTION,
                notify=not bulk,
            )
            self._apply(shipment, transition)
            if not bulk:
                record_action(
                    LogAction.CREATE, LogModule.SHIPMENT,
                    f"Shipment created: {shipment.tracking_id}",
                    user_id=owner.pk, user_email=owner.email,
                    details={'shipment_id': str(shipment.pk), 'tracking_id': shipment.tracking_id},
                    request=request,
                )

        logger.info(f"[LIFECYCLE] Created {shipment.tracking_id} for {owner.email}")
        return shipment

    def bulk_create(self, owner, rows: List[Dict[str, Any]], request=None) -> Dict[str, Any]:
        """
        Create shipments row by row; failures are collected, not raised.

        `rows` hold already-validated data or an `errors` dict from
        validation. Row numbers in the result are 1-based.
        """
        created: List[Shipment] = []
        errors: List[Dict[str, Any]] = []

        for index, row in enumerate(rows, start=1):
            if 'errors' in row:
                errors.append({'row': index, 'error': row['errors']})
                continue
            try:
                created.append(self.create_shipment(owner, row['data'], bulk=True))
            except (InvalidInput, InvalidState, Conflict) as e:
                errors.append({'row': index, 'error': e.message})

        if not errors:
            outcome = LogStatus.SUCCESS
        elif created:
            outcome = LogStatus.PARTIAL
        else:
            outcome = LogStatus.FAILED

        record_action(
            LogAction.BULK_UPLOAD, LogModule.SHIPMENT,
            f"Bulk created {len(created)} shipments",
            user_id=owner.pk, user_email=owner.email,
            details={'created': len(created), 'errors': len(errors)},
            status=outcome, request=request,
        )
        logger.info(f"[LIFECYCLE] Bulk upload by {owner.email}: {len(created)} ok, {len(errors)} failed")
        return {'created': created, 'errors': errors}

    # ----- status -----

    def update_status(self, capability: StaffCapability, shipment, new_status: str,
                      location: Optional[Dict[str, Any]] = None, remarks: str = '') -> Transition:
        """Explicit status change; callers hold a StaffCapability."""
        transition = plan_status_change(
            shipment, new_status, location=location, remarks=remarks,
            updated_by=capability.label,
        )
        with transaction.atomic():
            self._apply(shipment, transition)
            record_action(
                LogAction.UPDATE, LogModule.TRACKING,
                f"Shipment {shipment.tracking_id}: {transition.previous_status} -> {new_status}",
                user_id=capability.actor.id, user_email=capability.actor.email,
                details={'tracking_id': shipment.tracking_id, 'status': new_status},
            )

        logger.info(
            f"[LIFECYCLE] {shipment.tracking_id} {transition.previous_status} -> {new_status} "
            f"by {capability.label}"
        )
        return transition

    def simulate(self, capability: StaffCapability, tracking_id: str) -> Transition:
        """Advance a shipment one simulated step."""
        with transaction.atomic():
            shipment = (
                Shipment.objects.select_for_update()
                .select_related('user')
                .filter(tracking_id=tracking_id)
                .first()
            )
            if shipment is None:
                raise NotFound('Shipment not found')

            transition = plan_simulation_step(shipment)
            self._apply(shipment, transition)

        logger.info(
            f"[LIFECYCLE] Simulated {tracking_id} {transition.previous_status} -> "
            f"{transition.new_status} (requested by {capability.label})"
        )
        return transition

    def schedule_pickup(self, actor: Actor, shipment, pickup_date, pickup_time: Optional[dt_time] = None,
                        instructions: str = '') -> Transition:
        pickup_at = datetime.combine(pickup_date, pickup_time or dt_time(9, 0))
        if timezone.is_naive(pickup_at):
            pickup_at = timezone.make_aware(pickup_at)
        label = pickup_date.isoformat()
        if pickup_time:
            label = f"{label} {pickup_time.strftime('%H:%M')}"

        transition = plan_pickup(
            shipment, pickup_at, label, instructions=instructions, updated_by=actor.email,
        )
        with transaction.atomic():
            self._apply(shipment, transition)

        logger.info(f"[LIFECYCLE] Pickup for {shipment.tracking_id} scheduled {label}")
        return transition

    # ----- label & deletion -----

    def generate_label(self, shipment) -> Dict[str, Any]:
        """Mark the label as generated and return the printable data."""
        shipment.label_generated = True
        shipment.label_url = f"/labels/{shipment.tracking_id}.pdf"
        shipment.save(update_fields=['label_generated', 'label_url', 'updated_at'])

        return {
            'label_url': shipment.label_url,
            'label_data': {
                'tracking_id': shipment.tracking_id,
                'courier': shipment.courier_name,
                'sender': {
                    'name': shipment.sender_name,
                    'phone': shipment.sender_phone,
                    'address': shipment.sender_address,
                    'city': shipment.sender_city,
                    'state': shipment.sender_state,
                    'pincode': shipment.sender_pincode,
                },
                'receiver': {
                    'name': shipment.receiver_name,
                    'phone': shipment.receiver_phone,
                    'address': shipment.receiver_address,
                    'city': shipment.receiver_city,
                    'state': shipment.receiver_state,
                    'pincode': shipment.receiver_pincode,
                },
                'package': {
                    'weight': str(shipment.weight),
                    'description': shipment.package_description,
                    'category': shipment.category,
                },
                'service_type': shipment.service_type,
                'payment_mode': shipment.payment_mode,
                'cod_amount': str(shipment.cod_amount),
            },
        }

    def delete_shipment(self, actor: Actor, shipment, request=None):
        """
        Delete a pending or cancelled shipment; its log entries cascade.

        Raises:
            InvalidState: shipment is in any other status.
        """
        if shipment.status not in DELETABLE_STATUSES:
            raise InvalidState('Can only delete pending or cancelled shipments')

        tracking_id = shipment.tracking_id
        with transaction.atomic():
            shipment.delete()
            record_action(
                LogAction.DELETE, LogModule.SHIPMENT,
                f"Shipment deleted: {tracking_id}",
                user_id=actor.id, user_email=actor.email,
                details={'tracking_id': tracking_id},
                request=request,
            )
        logger.info(f"[LIFECYCLE] Deleted {tracking_id}")


# Singleton instance
shipment_lifecycle = ShipmentLifecycle()
