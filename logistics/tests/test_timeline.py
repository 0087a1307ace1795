"""
Tracking timeline tests.
"""

from django.test import SimpleTestCase, TestCase

from core.actors import Actor
from core.exceptions import NotFound
from core.models import UserRole
from logistics.models import ShipmentStatus, TrackingEvent
from logistics.services.lifecycle import shipment_lifecycle
from logistics.services.timeline import (
    DEFAULT_ICON, build_timeline, icon_for, sample_tracking_ids, track_shipment,
)
from .helpers import make_courier, make_shipment, make_user


class TestIcons(SimpleTestCase):

    def test_known_status(self):
        self.assertEqual(icon_for(TrackingEvent.DELIVERED), '✅')
        self.assertEqual(icon_for(TrackingEvent.ORDER_CREATED), '📦')

    def test_unknown_status_falls_back(self):
        self.assertEqual(icon_for('teleported'), DEFAULT_ICON)
        self.assertEqual(icon_for(''), DEFAULT_ICON)

    def test_every_event_has_an_icon_or_the_default(self):
        for event in TrackingEvent.values:
            self.assertTrue(icon_for(event))


class TestBuildTimeline(TestCase):

    @classmethod
    def setUpTestData(cls):
        cls.owner = make_user()
        cls.staff = make_user('ops@example.com', role=UserRole.STAFF)
        cls.courier = make_courier()

    def setUp(self):
        self.shipment = make_shipment(self.owner, self.courier)
        capability = Actor.from_user(self.staff).as_staff()
        shipment_lifecycle.update_status(
            capability, self.shipment, ShipmentStatus.PICKED_UP,
            location={'city': 'Bengaluru', 'state': 'Karnataka'}, remarks='Collected at dock 3',
        )
        shipment_lifecycle.update_status(capability, self.shipment, ShipmentStatus.FAILED)

    def test_chronological(self):
        timeline = build_timeline(self.shipment.tracking_id)
        self.assertEqual(
            [entry['status'] for entry in timeline],
            [TrackingEvent.ORDER_CREATED, TrackingEvent.PICKED_UP, TrackingEvent.FAILED_ATTEMPT],
        )
        timestamps = [entry['timestamp'] for entry in timeline]
        self.assertEqual(timestamps, sorted(timestamps))

    def test_entry_shape(self):
        entry = build_timeline(self.shipment.tracking_id)[1]
        self.assertEqual(entry['icon'], '🚛')
        self.assertEqual(entry['location']['city'], 'Bengaluru')
        self.assertEqual(entry['remarks'], 'Collected at dock 3')
        self.assertEqual(entry['updated_by'], 'ops@example.com')
        self.assertEqual(entry['description'], 'Package has been picked up')

    def test_unknown_tracking_id(self):
        with self.assertRaises(NotFound):
            build_timeline('NOSUCHID')

    def test_track_shipment(self):
        data = track_shipment(self.shipment.tracking_id)
        self.assertEqual(data['status'], ShipmentStatus.FAILED)
        self.assertEqual(data['courier_details']['code'], 'DEL')
        self.assertEqual(data['receiver']['city'], 'Kolkata')
        self.assertEqual(len(data['timeline']), 3)

    def test_track_unknown(self):
        with self.assertRaises(NotFound):
            track_shipment('NOSUCHID')

    def test_samples(self):
        samples = sample_tracking_ids()
        self.assertEqual(samples[0]['tracking_id'], self.shipment.tracking_id)
        self.assertEqual(samples[0]['courier'], 'Delhivery')
