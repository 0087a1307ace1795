"""
Logistics API tests: couriers, shipments, tracking.
"""

from datetime import date, timedelta
from decimal import Decimal

from rest_framework import status
from rest_framework.test import APITestCase

from core.actors import Actor
from core.models import LogAction, SystemLog, UserRole
from logistics.models import Courier, Shipment, ShipmentStatus, TrackingLog
from logistics.services.lifecycle import shipment_lifecycle
from .helpers import make_courier, make_shipment, make_user


def shipment_payload(courier, **overrides):
    payload = {
        'courier': str(courier.pk),
        'sender_name': 'Acme Traders',
        'sender_phone': '9876543210',
        'sender_address': '12 MG Road',
        'sender_city': 'Bengaluru',
        'sender_state': 'Karnataka',
        'sender_pincode': '560001',
        'receiver_name': 'Ravi Kumar',
        'receiver_phone': '9123456780',
        'receiver_address': '44 Park Street',
        'receiver_city': 'Kolkata',
        'receiver_state': 'West Bengal',
        'receiver_pincode': '700016',
        'weight': '2',
    }
    payload.update(overrides)
    return payload


class LogisticsAPITestBase(APITestCase):

    @classmethod
    def setUpTestData(cls):
        cls.owner = make_user()
        cls.other = make_user('other@example.com')
        cls.staff = make_user('ops@example.com', role=UserRole.STAFF)
        cls.admin = make_user('admin@example.com', role=UserRole.ADMIN)
        cls.courier = make_courier()
        cls.bluedart = make_courier(
            'BlueDart', 'BLU', base_rate=Decimal('60'), weight_rate=Decimal('20'),
            fuel_surcharge=Decimal('0'), avg_delivery_days=2, avg_rating=Decimal('4.5'),
        )


class TestCourierAPI(LogisticsAPITestBase):

    def test_list_is_public(self):
        Courier.objects.filter(code='BLU').update(is_active=False)
        response = self.client.get('/api/couriers/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total'], 2)

        response = self.client.get('/api/couriers/', {'active': 'true'})
        self.assertEqual([c['code'] for c in response.data['results']], ['DEL'])

    def test_compare_requires_login(self):
        response = self.client.post('/api/couriers/compare/', {'weight': 2}, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_compare(self):
        self.client.force_authenticate(self.owner)
        response = self.client.post('/api/couriers/compare/', {'weight': 2}, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        rates = [row['rate'] for row in response.data['comparison']]
        self.assertEqual(rates, [100, 104])
        self.assertEqual(response.data['recommendations']['cheapest']['courier']['code'], 'BLU')

    def test_compare_skips_inactive(self):
        Courier.objects.filter(code='BLU').update(is_active=False)
        self.client.force_authenticate(self.owner)
        response = self.client.post('/api/couriers/compare/', {'weight': 2}, format='json')
        self.assertEqual([row['courier']['code'] for row in response.data['comparison']], ['DEL'])

    def test_compare_without_couriers(self):
        Courier.objects.update(is_active=False)
        self.client.force_authenticate(self.owner)
        response = self.client.post('/api/couriers/compare/', {'weight': 2}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data, {'comparison': [], 'recommendations': {}})

    def test_compare_rejects_bad_weight(self):
        self.client.force_authenticate(self.owner)
        response = self.client.post('/api/couriers/compare/', {'weight': 0}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_recommend(self):
        self.client.force_authenticate(self.owner)
        response = self.client.post(
            '/api/couriers/recommend/', {'priority': 'speed'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['priority'], 'speed')
        self.assertEqual(response.data['top_recommendation']['courier']['code'], 'BLU')

    def test_only_admin_writes(self):
        payload = {'name': 'XpressBees', 'code': 'xpb', 'base_rate': '35', 'weight_rate': '18'}

        self.client.force_authenticate(self.owner)
        response = self.client.post('/api/couriers/', payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        self.client.force_authenticate(self.admin)
        response = self.client.post('/api/couriers/', payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['code'], 'XPB')
        self.assertTrue(SystemLog.objects.filter(action=LogAction.CREATE, user=self.admin).exists())

    def test_negative_rate_rejected(self):
        self.client.force_authenticate(self.admin)
        response = self.client.patch(
            f'/api/couriers/{self.courier.pk}/', {'base_rate': '-5'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_courier_with_shipments_cannot_be_deleted(self):
        make_shipment(self.owner, self.courier)
        self.client.force_authenticate(self.admin)
        response = self.client.delete(f'/api/couriers/{self.courier.pk}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'invalid_state')


class TestShipmentAPI(LogisticsAPITestBase):

    def test_create(self):
        self.client.force_authenticate(self.owner)
        response = self.client.post('/api/shipments/', shipment_payload(self.courier), format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(response.data['tracking_id'].startswith('DEL'))
        self.assertEqual(response.data['status'], ShipmentStatus.PENDING)
        self.assertEqual(Decimal(response.data['total_cost']), Decimal('104'))
        self.assertEqual(TrackingLog.objects.filter(tracking_id=response.data['tracking_id']).count(), 1)

    def test_cod_needs_amount(self):
        self.client.force_authenticate(self.owner)
        response = self.client.post(
            '/api/shipments/', shipment_payload(self.courier, payment_mode='cod'), format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('cod_amount', response.data)

    def test_list_is_scoped_to_owner(self):
        mine = make_shipment(self.owner, self.courier)
        make_shipment(self.other, self.courier)

        self.client.force_authenticate(self.owner)
        response = self.client.get('/api/shipments/')
        self.assertEqual([s['tracking_id'] for s in response.data['results']], [mine.tracking_id])

        self.client.force_authenticate(self.staff)
        response = self.client.get('/api/shipments/')
        self.assertEqual(response.data['total'], 2)

    def test_filters(self):
        first = make_shipment(self.owner, self.courier, receiver_city='Chennai')
        make_shipment(self.owner, self.bluedart)
        self.client.force_authenticate(self.owner)

        response = self.client.get('/api/shipments/', {'search': 'chenn'})
        self.assertEqual([s['tracking_id'] for s in response.data['results']], [first.tracking_id])

        response = self.client.get('/api/shipments/', {'courier': str(self.bluedart.pk)})
        self.assertEqual(response.data['total'], 1)

        response = self.client.get('/api/shipments/', {'status': 'all'})
        self.assertEqual(response.data['total'], 2)

        response = self.client.get('/api/shipments/', {'status': 'delivered'})
        self.assertEqual(response.data['total'], 0)

    def test_other_tenant_gets_404(self):
        shipment = make_shipment(self.other, self.courier)
        self.client.force_authenticate(self.owner)
        response = self.client.get(f'/api/shipments/{shipment.pk}/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_retrieve_lists_latest_log_first(self):
        shipment = make_shipment(self.owner, self.courier)
        capability = Actor.from_user(self.staff).as_staff()
        shipment_lifecycle.update_status(capability, shipment, ShipmentStatus.CONFIRMED)

        self.client.force_authenticate(self.owner)
        response = self.client.get(f'/api/shipments/{shipment.pk}/')
        self.assertEqual(
            [log['status'] for log in response.data['tracking_logs']],
            ['confirmed', 'order_created'],
        )

    def test_update_cannot_touch_status(self):
        shipment = make_shipment(self.owner, self.courier)
        self.client.force_authenticate(self.owner)
        response = self.client.patch(
            f'/api/shipments/{shipment.pk}/',
            {'status': 'delivered', 'tracking_id': 'X', 'receiver_name': 'Asha Rao'},
            format='json',
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        shipment.refresh_from_db()
        self.assertEqual(shipment.status, ShipmentStatus.PENDING)
        self.assertNotEqual(shipment.tracking_id, 'X')
        self.assertEqual(shipment.receiver_name, 'Asha Rao')

    def test_update_rejects_negative_amounts(self):
        shipment = make_shipment(self.owner, self.courier)
        self.client.force_authenticate(self.owner)
        for field in ('weight', 'shipping_cost', 'insurance_cost'):
            with self.subTest(field=field):
                response = self.client.patch(
                    f'/api/shipments/{shipment.pk}/', {field: '-5'}, format='json'
                )
                self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        shipment.refresh_from_db()
        self.assertEqual(shipment.weight, Decimal('2'))
        self.assertEqual(shipment.total_cost, Decimal('104'))

    def test_create_requires_weight(self):
        self.client.force_authenticate(self.owner)
        payload = shipment_payload(self.courier)
        del payload['weight']
        response = self.client.post('/api/shipments/', payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(Shipment.objects.exists())

    def test_status_update_requires_staff(self):
        shipment = make_shipment(self.owner, self.courier)
        url = f'/api/shipments/{shipment.pk}/status/'

        self.client.force_authenticate(self.owner)
        response = self.client.put(url, {'status': 'picked_up'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        self.client.force_authenticate(self.staff)
        response = self.client.put(
            url, {'status': 'picked_up', 'location': {'city': 'Bengaluru'}}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'picked_up')

    def test_delete_rules(self):
        shipment = make_shipment(self.owner, self.courier)
        shipment_lifecycle.update_status(
            Actor.from_user(self.staff).as_staff(), shipment, ShipmentStatus.PICKED_UP
        )
        self.client.force_authenticate(self.owner)

        response = self.client.delete(f'/api/shipments/{shipment.pk}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'invalid_state')

        pending = make_shipment(self.owner, self.courier)
        response = self.client.delete(f'/api/shipments/{pending.pk}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(Shipment.objects.filter(pk=pending.pk).exists())

    def test_bulk(self):
        self.client.force_authenticate(self.owner)
        payload = {'shipments': [
            shipment_payload(self.courier),
            shipment_payload(self.courier, receiver_name=''),
        ]}
        response = self.client.post('/api/shipments/bulk/', payload, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['created'], 1)
        self.assertEqual(response.data['errors'][0]['row'], 2)

    def test_label_and_pickup(self):
        shipment = make_shipment(self.owner, self.courier)
        self.client.force_authenticate(self.owner)

        response = self.client.post(f'/api/shipments/{shipment.pk}/label/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['label_url'], f'/labels/{shipment.tracking_id}.pdf')

        tomorrow = (date.today() + timedelta(days=1)).isoformat()
        response = self.client.post(
            f'/api/shipments/{shipment.pk}/pickup/',
            {'pickup_date': tomorrow, 'pickup_time': '10:00'}, format='json',
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['shipment']['status'], 'confirmed')

    def test_admin_list(self):
        make_shipment(self.owner, self.courier)
        make_shipment(self.other, self.courier)

        self.client.force_authenticate(self.staff)
        self.assertEqual(self.client.get('/api/admin/shipments/').status_code, status.HTTP_403_FORBIDDEN)

        self.client.force_authenticate(self.admin)
        response = self.client.get('/api/admin/shipments/')
        self.assertEqual(response.data['total'], 2)


class TestTrackingAPI(LogisticsAPITestBase):

    def setUp(self):
        self.shipment = make_shipment(self.owner, self.courier)

    def test_public_tracking(self):
        response = self.client.get(f'/api/tracking/{self.shipment.tracking_id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['tracking_id'], self.shipment.tracking_id)
        self.assertEqual(len(response.data['timeline']), 1)

    def test_unknown_tracking_id(self):
        response = self.client.get('/api/tracking/NOSUCHID/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['error'], 'not_found')

    def test_timeline(self):
        response = self.client.get(f'/api/tracking/{self.shipment.tracking_id}/timeline/')
        self.assertEqual(response.data['count'], 1)
        self.assertEqual(response.data['results'][0]['icon'], '📦')

    def test_samples(self):
        response = self.client.get('/api/tracking/samples/')
        self.assertEqual(response.data['results'][0]['tracking_id'], self.shipment.tracking_id)

    def test_simulate(self):
        url = f'/api/tracking/{self.shipment.tracking_id}/simulate/'

        self.client.force_authenticate(self.owner)
        self.assertEqual(self.client.post(url).status_code, status.HTTP_403_FORBIDDEN)

        self.client.force_authenticate(self.staff)
        for expected in ('confirmed', 'picked_up', 'in_transit', 'out_for_delivery', 'delivered'):
            response = self.client.post(url)
            self.assertEqual(response.status_code, status.HTTP_200_OK)
            self.assertEqual(response.data['new_status'], expected)

        response = self.client.post(url)
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'invalid_transition')
