"""
Shipment lifecycle tests:
1. Tracking ids (format, collisions)
2. Planning functions (pure, no database)
3. Creation, status updates, simulation, pickup, deletion
4. Tracking log append-only rules
"""

from datetime import date, time, timedelta
from decimal import Decimal
from types import SimpleNamespace
from unittest.mock import patch

from django.core.exceptions import PermissionDenied
from django.test import SimpleTestCase, TestCase, override_settings
from django.utils import timezone

from core.actors import Actor
from core.exceptions import Conflict, InvalidInput, InvalidState, InvalidTransition, NotFound
from core.models import LogAction, LogStatus, SystemLog, UserRole
from logistics.models import Shipment, ShipmentStatus, TrackingEvent, TrackingLog
from logistics.services.lifecycle import (
    AppendTrackingLog, BroadcastStatus, EmitNotification,
    generate_tracking_id, to_base36, describe_status,
    plan_status_change, plan_simulation_step, plan_pickup,
    shipment_lifecycle, SIMULATION_ACTOR, TRANSIT_HUB_STATE,
)
from notifications.models import Notification, NotificationType
from .helpers import make_courier, make_shipment, make_user, shipment_data


class TestTrackingIds(SimpleTestCase):

    def test_bluedart_prefix(self):
        self.assertRegex(generate_tracking_id('BlueDart'), r'^BLU[0-9A-Z]+$')

    def test_layout(self):
        tracking_id = generate_tracking_id('Delhivery', now_ms=1700000000000)
        self.assertTrue(tracking_id.startswith('DEL' + to_base36(1700000000000)))
        self.assertEqual(len(tracking_id), 3 + len(to_base36(1700000000000)) + 4)

    def test_base36(self):
        self.assertEqual(to_base36(0), '0')
        self.assertEqual(to_base36(35), 'Z')
        self.assertEqual(to_base36(36), '10')

    def test_random_suffix(self):
        ids = {generate_tracking_id('DTDC', now_ms=1) for _ in range(20)}
        self.assertGreater(len(ids), 1)


def fake_shipment(**overrides):
    fields = {
        'tracking_id': 'DELTEST0001',
        'status': ShipmentStatus.PENDING,
        'attempt_count': 0,
        'sender_city': 'Bengaluru',
        'sender_state': 'Karnataka',
        'receiver_city': 'Kolkata',
        'receiver_state': 'West Bengal',
    }
    fields.update(overrides)
    return SimpleNamespace(**fields)


class TestPlanning(SimpleTestCase):

    def test_status_change_effect_order(self):
        transition = plan_status_change(
            fake_shipment(status=ShipmentStatus.CONFIRMED), ShipmentStatus.PICKED_UP,
            location={'city': 'Bengaluru', 'state': 'Karnataka'}, updated_by='ops@example.com',
        )
        self.assertEqual(
            [type(e) for e in transition.effects],
            [AppendTrackingLog, EmitNotification, BroadcastStatus],
        )
        self.assertEqual(transition.previous_status, ShipmentStatus.CONFIRMED)
        self.assertEqual(transition.changes, {'status': ShipmentStatus.PICKED_UP})
        self.assertEqual(transition.log_entries[0].updated_by, 'ops@example.com')
        self.assertEqual(transition.notifications[0].notification_type, NotificationType.SHIPMENT_PICKED)

    def test_non_notifiable_statuses(self):
        for status in (ShipmentStatus.CONFIRMED, ShipmentStatus.RETURNED, ShipmentStatus.CANCELLED):
            with self.subTest(status=status):
                transition = plan_status_change(fake_shipment(), status)
                self.assertEqual(transition.notifications, [])
                self.assertEqual(len(transition.log_entries), 1)

    def test_any_status_may_follow_any_other(self):
        transition = plan_status_change(
            fake_shipment(status=ShipmentStatus.DELIVERED), ShipmentStatus.PENDING
        )
        self.assertEqual(transition.new_status, ShipmentStatus.PENDING)

    def test_unknown_status(self):
        with self.assertRaises(InvalidInput):
            plan_status_change(fake_shipment(), 'lost_in_space')

    def test_delivered_sets_delivery_date(self):
        now = timezone.now()
        transition = plan_status_change(fake_shipment(), ShipmentStatus.DELIVERED, now=now)
        self.assertEqual(transition.changes['actual_delivery_date'], now)

    def test_failed_records_attempt(self):
        transition = plan_status_change(
            fake_shipment(attempt_count=1), ShipmentStatus.FAILED, remarks='Door locked'
        )
        self.assertEqual(transition.changes['failure_reason'], 'Door locked')
        self.assertEqual(transition.changes['attempt_count'], 2)
        self.assertEqual(transition.log_entries[0].status, TrackingEvent.FAILED_ATTEMPT)

    def test_description_fallback(self):
        self.assertEqual(describe_status('mystery'), 'Status updated to mystery')

    def test_simulation_uses_hub_city(self):
        transition = plan_simulation_step(fake_shipment(), hub_city='Nagpur')
        entry = transition.log_entries[0]
        self.assertEqual(transition.new_status, ShipmentStatus.CONFIRMED)
        self.assertEqual((entry.city, entry.state), ('Nagpur', TRANSIT_HUB_STATE))
        self.assertEqual(entry.updated_by, SIMULATION_ACTOR)
        self.assertEqual(transition.notifications, [])

    def test_simulation_delivery_uses_receiver(self):
        transition = plan_simulation_step(fake_shipment(status=ShipmentStatus.OUT_FOR_DELIVERY))
        entry = transition.log_entries[0]
        self.assertEqual(transition.new_status, ShipmentStatus.DELIVERED)
        self.assertEqual((entry.city, entry.state), ('Kolkata', 'West Bengal'))
        self.assertIn('actual_delivery_date', transition.changes)

    def test_simulation_outside_sequence(self):
        for status in (ShipmentStatus.DELIVERED, ShipmentStatus.FAILED, ShipmentStatus.CANCELLED):
            with self.subTest(status=status):
                with self.assertRaises(InvalidTransition):
                    plan_simulation_step(fake_shipment(status=status))

    def test_pickup_only_before_pickup(self):
        with self.assertRaises(InvalidState):
            plan_pickup(fake_shipment(status=ShipmentStatus.IN_TRANSIT), timezone.now(), 'tomorrow')


class LifecycleTestBase(TestCase):

    @classmethod
    def setUpTestData(cls):
        cls.owner = make_user()
        cls.staff = make_user('ops@example.com', role=UserRole.STAFF)
        cls.courier = make_courier()

    def setUp(self):
        self.capability = Actor.from_user(self.staff).as_staff()


class TestCreateShipment(LifecycleTestBase):

    def test_creates_genesis_entry(self):
        shipment = make_shipment(self.owner, self.courier)

        self.assertEqual(shipment.status, ShipmentStatus.PENDING)
        self.assertRegex(shipment.tracking_id, r'^DEL[0-9A-Z]+$')
        logs = list(TrackingLog.objects.for_tracking_id(shipment.tracking_id))
        self.assertEqual(len(logs), 1)
        self.assertEqual(logs[0].status, TrackingEvent.ORDER_CREATED)
        self.assertEqual(logs[0].city, 'Bengaluru')

    def test_quotes_cost_when_missing(self):
        shipment = make_shipment(self.owner, self.courier, insurance_cost=Decimal('10'))
        self.assertEqual(shipment.shipping_cost, 104)
        self.assertEqual(shipment.total_cost, Decimal('114'))
        self.assertIsNotNone(shipment.expected_delivery_date)

    def test_keeps_given_cost(self):
        shipment = make_shipment(self.owner, self.courier, shipping_cost=Decimal('250'))
        self.assertEqual(shipment.total_cost, Decimal('250'))

    def test_notifies_owner_and_logs(self):
        shipment = make_shipment(self.owner, self.courier)
        notification = Notification.objects.get(user=self.owner)
        self.assertEqual(notification.type, NotificationType.SHIPMENT_CREATED)
        self.assertEqual(notification.data['tracking_id'], shipment.tracking_id)
        self.assertTrue(SystemLog.objects.filter(action=LogAction.CREATE, user=self.owner).exists())

    def test_ignores_status_and_tracking_id_input(self):
        shipment = make_shipment(
            self.owner, self.courier, status=ShipmentStatus.DELIVERED, tracking_id='HACKED'
        )
        self.assertEqual(shipment.status, ShipmentStatus.PENDING)
        self.assertNotEqual(shipment.tracking_id, 'HACKED')

    def test_inactive_courier(self):
        self.courier.is_active = False
        self.courier.save()
        with self.assertRaises(InvalidState):
            make_shipment(self.owner, self.courier)
        self.assertFalse(Shipment.objects.exists())

    def test_rejects_non_positive_weight(self):
        for weight in (Decimal('0'), Decimal('-1')):
            with self.subTest(weight=weight):
                with self.assertRaises(InvalidInput):
                    make_shipment(self.owner, self.courier, weight=weight)
        self.assertFalse(Shipment.objects.exists())

    def test_rejects_missing_weight(self):
        data = shipment_data(self.courier)
        del data['weight']
        with self.assertRaises(InvalidInput):
            shipment_lifecycle.create_shipment(self.owner, data)
        self.assertFalse(Shipment.objects.exists())

    def test_nothing_persists_when_genesis_entry_fails(self):
        with patch('logistics.models.TrackingLogManager.append', side_effect=RuntimeError('disk full')):
            with self.assertRaises(RuntimeError):
                make_shipment(self.owner, self.courier)
        self.assertFalse(Shipment.objects.exists())
        self.assertFalse(TrackingLog.objects.exists())

    def test_nothing_persists_when_notification_fails(self):
        with patch('logistics.services.lifecycle.NotificationService.emit', side_effect=RuntimeError('boom')):
            with self.assertRaises(RuntimeError):
                make_shipment(self.owner, self.courier)
        self.assertFalse(Shipment.objects.exists())
        self.assertFalse(TrackingLog.objects.exists())
        self.assertFalse(Notification.objects.exists())

    def test_regenerates_on_collision(self):
        existing = make_shipment(self.owner, self.courier)
        with patch(
            'logistics.services.lifecycle.generate_tracking_id',
            side_effect=[existing.tracking_id, 'DELFRESH0001'],
        ) as generator:
            shipment = make_shipment(self.owner, self.courier)
        self.assertEqual(shipment.tracking_id, 'DELFRESH0001')
        self.assertEqual(generator.call_count, 2)

    @override_settings(TRACKING_ID_MAX_ATTEMPTS=3)
    def test_gives_up_after_max_attempts(self):
        existing = make_shipment(self.owner, self.courier)
        with patch(
            'logistics.services.lifecycle.generate_tracking_id',
            return_value=existing.tracking_id,
        ) as generator:
            with self.assertRaises(Conflict):
                make_shipment(self.owner, self.courier)
        self.assertEqual(generator.call_count, 3)
        self.assertEqual(Shipment.objects.count(), 1)


class TestBulkCreate(LifecycleTestBase):

    def test_partial_upload(self):
        rows = [
            {'data': shipment_data(self.courier)},
            {'errors': {'receiver_name': ['This field is required.']}},
            {'data': shipment_data(self.courier, weight=Decimal('5'))},
        ]
        result = shipment_lifecycle.bulk_create(self.owner, rows)

        self.assertEqual(len(result['created']), 2)
        self.assertEqual(result['errors'], [
            {'row': 2, 'error': {'receiver_name': ['This field is required.']}},
        ])
        first_log = TrackingLog.objects.filter(shipment=result['created'][0]).get()
        self.assertEqual(first_log.description, 'Order created via bulk upload')
        self.assertFalse(Notification.objects.exists())

        log = SystemLog.objects.get(action=LogAction.BULK_UPLOAD)
        self.assertEqual(log.status, LogStatus.PARTIAL)

    def test_all_rows_fail(self):
        self.courier.is_active = False
        self.courier.save()
        result = shipment_lifecycle.bulk_create(self.owner, [{'data': shipment_data(self.courier)}])
        self.assertEqual(result['created'], [])
        self.assertEqual(result['errors'][0]['row'], 1)
        self.assertEqual(SystemLog.objects.get(action=LogAction.BULK_UPLOAD).status, LogStatus.FAILED)


class TestUpdateStatus(LifecycleTestBase):

    def setUp(self):
        super().setUp()
        self.shipment = make_shipment(self.owner, self.courier)
        Notification.objects.all().delete()

    def test_appends_log_and_notifies(self):
        shipment_lifecycle.update_status(
            self.capability, self.shipment, ShipmentStatus.PICKED_UP,
            location={'city': 'Bengaluru', 'state': 'Karnataka'}, remarks='Collected',
        )
        self.shipment.refresh_from_db()
        self.assertEqual(self.shipment.status, ShipmentStatus.PICKED_UP)

        latest = TrackingLog.objects.for_tracking_id(self.shipment.tracking_id).last()
        self.assertEqual(latest.status, TrackingEvent.PICKED_UP)
        self.assertEqual(latest.remarks, 'Collected')
        self.assertEqual(latest.updated_by, 'ops@example.com')

        notification = Notification.objects.get(user=self.owner)
        self.assertEqual(notification.type, NotificationType.SHIPMENT_PICKED)

    def test_confirmed_does_not_notify(self):
        shipment_lifecycle.update_status(self.capability, self.shipment, ShipmentStatus.CONFIRMED)
        self.assertFalse(Notification.objects.exists())
        self.assertEqual(TrackingLog.objects.filter(shipment=self.shipment).count(), 2)

    def test_failed(self):
        shipment_lifecycle.update_status(
            self.capability, self.shipment, ShipmentStatus.FAILED, remarks='Nobody home'
        )
        self.shipment.refresh_from_db()
        self.assertEqual(self.shipment.failure_reason, 'Nobody home')
        self.assertEqual(self.shipment.attempt_count, 1)
        self.assertEqual(Notification.objects.get().type, NotificationType.SHIPMENT_FAILED)

    def test_delivered_sets_date(self):
        shipment_lifecycle.update_status(self.capability, self.shipment, ShipmentStatus.DELIVERED)
        self.shipment.refresh_from_db()
        self.assertIsNotNone(self.shipment.actual_delivery_date)

    def test_broadcast_after_commit(self):
        with patch('logistics.services.lifecycle.broadcast_shipment_status') as broadcast:
            with self.captureOnCommitCallbacks(execute=True):
                shipment_lifecycle.update_status(
                    self.capability, self.shipment, ShipmentStatus.CONFIRMED,
                    location={'city': 'Mysuru'},
                )
                broadcast.assert_not_called()
        broadcast.assert_called_once_with(
            self.shipment.tracking_id, ShipmentStatus.CONFIRMED,
            'Order has been confirmed', 'Mysuru', '',
        )

    def test_business_user_has_no_capability(self):
        with self.assertRaises(PermissionDenied):
            Actor.from_user(self.owner).as_staff()


class TestSimulate(LifecycleTestBase):

    def setUp(self):
        super().setUp()
        self.shipment = make_shipment(self.owner, self.courier)

    def test_five_steps_reach_delivered(self):
        seen = []
        for _ in range(5):
            seen.append(shipment_lifecycle.simulate(self.capability, self.shipment.tracking_id).new_status)

        self.assertEqual(seen, [
            ShipmentStatus.CONFIRMED, ShipmentStatus.PICKED_UP, ShipmentStatus.IN_TRANSIT,
            ShipmentStatus.OUT_FOR_DELIVERY, ShipmentStatus.DELIVERED,
        ])
        self.shipment.refresh_from_db()
        self.assertEqual(self.shipment.status, ShipmentStatus.DELIVERED)
        self.assertIsNotNone(self.shipment.actual_delivery_date)

        logs = list(TrackingLog.objects.for_tracking_id(self.shipment.tracking_id))
        self.assertEqual(len(logs), 6)
        timestamps = [log.timestamp for log in logs]
        self.assertEqual(timestamps, sorted(timestamps))
        self.assertEqual([log.sequence for log in logs], [1, 2, 3, 4, 5, 6])
        self.assertEqual(logs[-1].city, 'Kolkata')

    def test_delivered_cannot_progress(self):
        for _ in range(5):
            shipment_lifecycle.simulate(self.capability, self.shipment.tracking_id)

        with self.assertRaises(InvalidTransition):
            shipment_lifecycle.simulate(self.capability, self.shipment.tracking_id)
        self.assertEqual(TrackingLog.objects.filter(shipment=self.shipment).count(), 6)

    def test_simulation_does_not_notify(self):
        Notification.objects.all().delete()
        shipment_lifecycle.simulate(self.capability, self.shipment.tracking_id)
        self.assertFalse(Notification.objects.exists())

    def test_unknown_tracking_id(self):
        with self.assertRaises(NotFound):
            shipment_lifecycle.simulate(self.capability, 'NOPE123')


class TestPickupAndLabel(LifecycleTestBase):

    def setUp(self):
        super().setUp()
        self.shipment = make_shipment(self.owner, self.courier)
        self.actor = Actor.from_user(self.owner)

    def test_schedule_pickup(self):
        pickup_day = date.today() + timedelta(days=1)
        shipment_lifecycle.schedule_pickup(
            self.actor, self.shipment, pickup_day, time(14, 30), 'Ring the bell'
        )
        self.shipment.refresh_from_db()
        self.assertEqual(self.shipment.status, ShipmentStatus.CONFIRMED)
        self.assertEqual(self.shipment.special_instructions, 'Ring the bell')
        self.assertIsNotNone(self.shipment.pickup_date)

        latest = TrackingLog.objects.for_tracking_id(self.shipment.tracking_id).last()
        self.assertEqual(latest.status, TrackingEvent.PICKUP_SCHEDULED)
        self.assertEqual(latest.description, f"Pickup scheduled for {pickup_day.isoformat()} 14:30")

    def test_pickup_after_dispatch(self):
        Shipment.objects.filter(pk=self.shipment.pk).update(status=ShipmentStatus.IN_TRANSIT)
        self.shipment.refresh_from_db()
        with self.assertRaises(InvalidState):
            shipment_lifecycle.schedule_pickup(self.actor, self.shipment, date.today())

    def test_generate_label(self):
        label = shipment_lifecycle.generate_label(self.shipment)
        self.shipment.refresh_from_db()
        self.assertTrue(self.shipment.label_generated)
        self.assertEqual(label['label_url'], f"/labels/{self.shipment.tracking_id}.pdf")
        self.assertEqual(label['label_data']['receiver']['city'], 'Kolkata')


class TestDeleteShipment(LifecycleTestBase):

    def setUp(self):
        super().setUp()
        self.shipment = make_shipment(self.owner, self.courier)
        self.actor = Actor.from_user(self.owner)

    def test_picked_up_cannot_be_deleted(self):
        shipment_lifecycle.update_status(self.capability, self.shipment, ShipmentStatus.PICKED_UP)
        with self.assertRaises(InvalidState):
            shipment_lifecycle.delete_shipment(self.actor, self.shipment)
        self.assertTrue(Shipment.objects.filter(pk=self.shipment.pk).exists())

    def test_cancelled_deletes_history(self):
        shipment_lifecycle.update_status(self.capability, self.shipment, ShipmentStatus.CANCELLED)
        tracking_id = self.shipment.tracking_id

        shipment_lifecycle.delete_shipment(self.actor, self.shipment)

        self.assertFalse(Shipment.objects.filter(tracking_id=tracking_id).exists())
        self.assertFalse(TrackingLog.objects.filter(tracking_id=tracking_id).exists())
        self.assertTrue(SystemLog.objects.filter(action=LogAction.DELETE).exists())

    def test_pending_can_be_deleted(self):
        shipment_lifecycle.delete_shipment(self.actor, self.shipment)
        self.assertFalse(Shipment.objects.exists())


class TestTrackingLog(LifecycleTestBase):

    def setUp(self):
        super().setUp()
        self.shipment = make_shipment(self.owner, self.courier)

    def test_entries_are_immutable(self):
        entry = TrackingLog.objects.filter(shipment=self.shipment).get()
        entry.description = 'Rewritten history'
        with self.assertRaises(InvalidState):
            entry.save()

    def test_timestamp_never_goes_backwards(self):
        genesis = TrackingLog.objects.filter(shipment=self.shipment).get()
        entry = TrackingLog.objects.append(
            self.shipment, TrackingEvent.REACHED_HUB, 'Reached hub',
            timestamp=genesis.timestamp - timedelta(hours=3),
        )
        self.assertEqual(entry.timestamp, genesis.timestamp)
        self.assertEqual(entry.sequence, 2)

    def test_total_cost_follows_cost_updates(self):
        self.shipment.insurance_cost = Decimal('20')
        self.shipment.save(update_fields=['insurance_cost'])
        self.shipment.refresh_from_db()
        self.assertEqual(self.shipment.total_cost, Decimal('124'))
