"""
CourierDesk Notification Tests
"""

from unittest.mock import patch

from django.core import mail
from django.test import TestCase
from rest_framework import status
from rest_framework.test import APITestCase

from core.preferences import PreferenceService
from logistics.tests.helpers import make_courier, make_shipment, make_user
from notifications.models import Notification, NotificationType
from notifications.services import NotificationService
from notifications.tasks import send_notification_email


class TestNotificationService(TestCase):

    def setUp(self):
        self.user = make_user()

    def test_emit_queues_email_after_commit(self):
        with patch('notifications.tasks.send_notification_email.delay') as delay:
            with self.captureOnCommitCallbacks(execute=True):
                notification = NotificationService.emit(
                    self.user, NotificationType.SHIPMENT_CREATED, 'Shipment Created', 'Hello',
                    data={'tracking_id': 'DEL123'},
                )
                delay.assert_not_called()
        delay.assert_called_once_with(str(notification.pk))

    def test_no_email_when_disabled(self):
        PreferenceService.update(self.user, {'email_notifications': False})
        with patch('notifications.tasks.send_notification_email.delay') as delay:
            with self.captureOnCommitCallbacks(execute=True):
                NotificationService.emit(self.user, NotificationType.SYSTEM, 'Hi', 'Hello')
        delay.assert_not_called()
        self.assertEqual(Notification.objects.filter(user=self.user).count(), 1)

    def test_shipment_updates_toggle(self):
        PreferenceService.update(self.user, {'shipment_updates': False})
        self.assertFalse(NotificationService.wants_email(self.user, NotificationType.SHIPMENT_DELIVERED))
        self.assertTrue(NotificationService.wants_email(self.user, NotificationType.ALERT))

    def test_unread_count(self):
        NotificationService.emit(self.user, NotificationType.SYSTEM, 'One', 'x')
        Notification.objects.create(user=self.user, type=NotificationType.SYSTEM, title='Two',
                                    message='y', is_read=True)
        self.assertEqual(NotificationService.unread_count(self.user), 1)


class TestNotificationEmailTask(TestCase):

    def test_sends_and_marks(self):
        user = make_user()
        notification = Notification.objects.create(
            user=user, type=NotificationType.SHIPMENT_DELIVERED,
            title='Shipment DELIVERED', message='Your parcel arrived',
        )
        self.assertTrue(send_notification_email.apply(args=[str(notification.pk)]).get())

        self.assertEqual(len(mail.outbox), 1)
        self.assertEqual(mail.outbox[0].subject, '[CourierDesk] Shipment DELIVERED')
        self.assertEqual(mail.outbox[0].to, [user.email])
        notification.refresh_from_db()
        self.assertTrue(notification.is_email_sent)

    def test_sent_only_once(self):
        user = make_user()
        notification = Notification.objects.create(
            user=user, type=NotificationType.SYSTEM, title='Hi', message='x', is_email_sent=True,
        )
        send_notification_email.apply(args=[str(notification.pk)])
        self.assertEqual(len(mail.outbox), 0)

    def test_missing_notification(self):
        result = send_notification_email.apply(args=['00000000-0000-0000-0000-000000000000'])
        self.assertFalse(result.get())


class TestNotificationAPI(APITestCase):

    def setUp(self):
        self.user = make_user()
        self.other = make_user('other@example.com')
        self.client.force_authenticate(self.user)
        self.shipment = make_shipment(self.user, make_courier())
        make_shipment(self.other, make_courier('BlueDart', 'BLU'))

    def test_list_only_own(self):
        response = self.client.get('/api/notifications/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total'], 1)
        self.assertEqual(response.data['unread_count'], 1)
        self.assertEqual(response.data['results'][0]['type'], NotificationType.SHIPMENT_CREATED)

    def test_unread_filter_and_mark_read(self):
        notification = Notification.objects.get(user=self.user)
        response = self.client.post(f'/api/notifications/{notification.pk}/read/')
        self.assertTrue(response.data['is_read'])

        response = self.client.get('/api/notifications/', {'unread': 'true'})
        self.assertEqual(response.data['total'], 0)
        self.assertEqual(response.data['unread_count'], 0)

    def test_read_all(self):
        NotificationService.emit(self.user, NotificationType.SYSTEM, 'Two', 'x')
        response = self.client.post('/api/notifications/read-all/')
        self.assertEqual(response.data['updated'], 2)
        self.assertEqual(NotificationService.unread_count(self.user), 0)

    def test_cannot_touch_other_users_notifications(self):
        foreign = Notification.objects.get(user=self.other)
        response = self.client.post(f'/api/notifications/{foreign.pk}/read/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        response = self.client.delete(f'/api/notifications/{foreign.pk}/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_delete(self):
        notification = Notification.objects.get(user=self.user)
        response = self.client.delete(f'/api/notifications/{notification.pk}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(Notification.objects.filter(pk=notification.pk).exists())

    def test_send_email(self):
        with patch('notifications.views.send_notification_email.delay') as delay:
            response = self.client.post(
                '/api/notifications/send-email/',
                {'tracking_id': self.shipment.tracking_id}, format='json',
            )
        self.assertEqual(response.status_code, status.HTTP_202_ACCEPTED)
        self.assertEqual(response.data['queued'], 1)
        delay.assert_called_once()

    def test_send_email_unknown_shipment(self):
        response = self.client.post(
            '/api/notifications/send-email/', {'tracking_id': 'NOSUCHID'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['error'], 'not_found')
