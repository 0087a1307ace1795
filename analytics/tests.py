"""
CourierDesk Analytics Tests
"""

from datetime import datetime, timedelta, timezone as dt_timezone
from decimal import Decimal

from django.core import mail
from django.test import SimpleTestCase
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APITestCase

from analytics import services
from analytics.tasks import send_weekly_reports
from core.actors import Actor
from core.models import UserRole
from core.preferences import PreferenceService
from logistics.models import Shipment, ShipmentStatus
from logistics.tests.helpers import make_courier, make_shipment, make_user


class TestMonthsAgo(SimpleTestCase):

    def test_same_day(self):
        now = datetime(2024, 8, 15, 12, 0, tzinfo=dt_timezone.utc)
        self.assertEqual(services.months_ago(now, 6), datetime(2024, 2, 15, 12, 0, tzinfo=dt_timezone.utc))

    def test_crosses_year(self):
        now = datetime(2024, 3, 10, tzinfo=dt_timezone.utc)
        self.assertEqual(services.months_ago(now, 12), datetime(2023, 3, 10, tzinfo=dt_timezone.utc))

    def test_clamps_to_month_end(self):
        now = datetime(2024, 5, 31, tzinfo=dt_timezone.utc)
        self.assertEqual(services.months_ago(now, 3), datetime(2024, 2, 29, tzinfo=dt_timezone.utc))


def set_status(shipment, status, **fields):
    Shipment.objects.filter(pk=shipment.pk).update(status=status, **fields)


class AnalyticsTestBase(APITestCase):

    @classmethod
    def setUpTestData(cls):
        cls.owner = make_user()
        cls.other = make_user('other@example.com')
        cls.admin = make_user('admin@example.com', role=UserRole.ADMIN)
        cls.delhivery = make_courier()
        cls.bluedart = make_courier(
            'BlueDart', 'BLU', base_rate=Decimal('60'), weight_rate=Decimal('20'),
            fuel_surcharge=Decimal('0'), avg_delivery_days=2,
        )

        # owner: DEL 104 (delivered after 2 days), DEL 104 (in transit), BLU 100 (failed)
        cls.delivered = make_shipment(cls.owner, cls.delhivery)
        set_status(
            cls.delivered, ShipmentStatus.DELIVERED,
            actual_delivery_date=cls.delivered.created_at + timedelta(days=2),
        )
        cls.moving = make_shipment(cls.owner, cls.delhivery)
        set_status(cls.moving, ShipmentStatus.IN_TRANSIT)
        cls.failed = make_shipment(cls.owner, cls.bluedart)
        set_status(cls.failed, ShipmentStatus.FAILED)

        # other tenant: BLU 100 (pending)
        cls.foreign = make_shipment(cls.other, cls.bluedart)

    def owner_actor(self):
        return Actor.from_user(self.owner)

    def admin_actor(self):
        return Actor.from_user(self.admin)


class TestDashboardStats(AnalyticsTestBase):

    def test_scoped_to_owner(self):
        stats = services.dashboard_stats(self.owner_actor())
        self.assertEqual(stats['counts'], {
            'total': 3, 'pending': 0, 'in_transit': 1, 'delivered': 1, 'failed': 1,
        })
        self.assertEqual(stats['costs'], {'total': 308, 'average': 103})
        self.assertEqual(len(stats['recent_shipments']), 3)

    def test_admin_sees_everything(self):
        stats = services.dashboard_stats(self.admin_actor())
        self.assertEqual(stats['counts']['total'], 4)
        self.assertEqual(stats['counts']['pending'], 1)
        self.assertEqual(stats['costs']['total'], 408)

    def test_empty(self):
        stats = services.dashboard_stats(Actor.from_user(make_user('new@example.com')))
        self.assertEqual(stats['counts']['total'], 0)
        self.assertEqual(stats['costs'], {'total': 0, 'average': 0})
        self.assertEqual(stats['recent_shipments'], [])


class TestCourierPerformance(AnalyticsTestBase):

    def test_per_courier(self):
        rows = services.courier_performance(self.owner_actor())
        self.assertEqual([r['courier_name'] for r in rows], ['Delhivery', 'BlueDart'])

        delhivery = rows[0]
        self.assertEqual(delhivery['total_shipments'], 2)
        self.assertEqual(delhivery['delivered_count'], 1)
        self.assertEqual(delhivery['total_cost'], Decimal('208'))
        self.assertEqual(delhivery['avg_cost'], Decimal('104.00'))
        self.assertEqual(delhivery['success_rate'], Decimal('50.00'))

        self.assertEqual(rows[1]['success_rate'], Decimal('0.00'))


class TestMonthlyAggregates(AnalyticsTestBase):

    def test_monthly_costs(self):
        Shipment.objects.filter(pk=self.failed.pk).update(created_at=timezone.now() - timedelta(days=800))
        rows = services.monthly_costs(self.owner_actor())
        self.assertEqual(len(rows), 1)
        self.assertEqual(rows[0]['total_cost'], 208)
        self.assertEqual(rows[0]['shipments'], 2)
        self.assertRegex(rows[0]['month'], r'^[A-Z][a-z]{2} \d{4}$')

    def test_success_rate(self):
        rows = services.success_rate(self.owner_actor())
        self.assertEqual(len(rows), 1)
        self.assertEqual(rows[0]['total'], 3)
        self.assertEqual(rows[0]['success_rate'], Decimal('33.3'))

    def test_delivery_time(self):
        rows = services.delivery_time_analysis(self.owner_actor())
        self.assertEqual(rows, [{'courier': 'Delhivery', 'avg_days': Decimal('2.0'), 'count': 1}])


class TestAdminStats(AnalyticsTestBase):

    def test_totals(self):
        self.other.is_active = False
        self.other.save()
        stats = services.admin_stats()
        self.assertEqual(stats, {
            'total_users': 3,
            'active_users': 2,
            'total_shipments': 4,
            'total_couriers': 2,
            'total_revenue': 408,
        })


class TestWeeklyReports(AnalyticsTestBase):

    def test_sends_to_opted_in_users(self):
        PreferenceService.update(self.other, {'weekly_reports': False})

        sent = send_weekly_reports()

        self.assertEqual(sent, 2)
        recipients = sorted(message.to[0] for message in mail.outbox)
        self.assertEqual(recipients, ['admin@example.com', 'shipper@example.com'])
        owner_mail = next(m for m in mail.outbox if m.to == ['shipper@example.com'])
        self.assertIn('Created:   3', owner_mail.body)
        self.assertIn('Spend:     308', owner_mail.body)


class TestAnalyticsAPI(AnalyticsTestBase):

    def test_dashboard(self):
        self.client.force_authenticate(self.owner)
        response = self.client.get('/api/analytics/dashboard/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['counts']['total'], 3)

    def test_requires_login(self):
        response = self.client.get('/api/analytics/dashboard/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_months_param(self):
        self.client.force_authenticate(self.owner)
        response = self.client.get('/api/analytics/monthly-costs/', {'months': 3})
        self.assertEqual(response.status_code, status.HTTP_200_OK)

        response = self.client.get('/api/analytics/success-rate/', {'months': 'lots'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'invalid_input')

    def test_other_endpoints(self):
        self.client.force_authenticate(self.owner)
        for url in ('/api/analytics/courier-performance/', '/api/analytics/delivery-time/'):
            with self.subTest(url=url):
                self.assertEqual(self.client.get(url).status_code, status.HTTP_200_OK)

    def test_admin_stats_requires_admin(self):
        self.client.force_authenticate(self.owner)
        self.assertEqual(self.client.get('/api/admin/stats/').status_code, status.HTTP_403_FORBIDDEN)

        self.client.force_authenticate(self.admin)
        response = self.client.get('/api/admin/stats/')
        self.assertEqual(response.data['total_shipments'], 4)
