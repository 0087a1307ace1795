"""
CourierDesk Core Tests
======================

Tests for:
1. Custom User model (email login, roles)
2. Preferences merge (server > cached > default)
3. Auth endpoints (register, login, me, password)
4. Settings & admin endpoints
5. Error handler, health checks & security middleware
"""

import pytest
from unittest.mock import patch

from django.core.cache import cache
from django.test import TestCase, SimpleTestCase, override_settings
from rest_framework import status
from rest_framework.test import APITestCase

from core.actors import Actor
from core.exceptions import InvalidInput, NotFound, Conflict, api_exception_handler
from core.middleware import RateLimitMiddleware
from core.models import User, UserRole, SystemLog, LogAction, LogModule, LogStatus
from core.preferences import Preferences, PreferenceService, clean_update


class TestUserModel(TestCase):

    def setUp(self):
        self.user = User.objects.create_user(
            email='Shipper@Example.COM', password='S3cure-pass!', full_name='Shipper'
        )

    def test_email_login_identifier(self):
        self.assertEqual(self.user.email, 'Shipper@example.com')
        self.assertTrue(self.user.check_password('S3cure-pass!'))

    def test_default_role_is_business(self):
        self.assertEqual(self.user.role, UserRole.BUSINESS)
        self.assertFalse(self.user.is_staff_member)

    def test_superuser_is_admin(self):
        admin = User.objects.create_superuser(email='root@example.com', password='S3cure-pass!')
        self.assertTrue(admin.is_admin)
        self.assertTrue(admin.is_staff)

    def test_email_required(self):
        with self.assertRaises(ValueError):
            User.objects.create_user(email='')

    def test_actor_capabilities(self):
        staff = User.objects.create_user(email='ops@example.com', role=UserRole.STAFF)
        actor = Actor.from_user(staff)
        self.assertTrue(actor.is_staff_member)
        self.assertFalse(actor.is_admin)
        self.assertEqual(actor.as_staff().label, 'ops@example.com')
        self.assertTrue(Actor.from_user(self.user).can_access(self.user.pk))
        self.assertFalse(Actor.from_user(self.user).can_access(staff.pk))


class TestPreferencesMerge(SimpleTestCase):

    def test_defaults(self):
        prefs = Preferences.resolve()
        self.assertTrue(prefs.dark_mode)
        self.assertEqual(prefs.currency, 'INR')

    def test_server_beats_cache(self):
        prefs = Preferences.resolve(server={'dark_mode': False}, cached={'dark_mode': True})
        self.assertFalse(prefs.dark_mode)

    def test_cache_fills_missing_server_keys(self):
        prefs = Preferences.resolve(
            server={'currency': 'USD'},
            cached={'currency': 'EUR', 'compact_view': True},
        )
        self.assertEqual(prefs.currency, 'USD')
        self.assertTrue(prefs.compact_view)
        self.assertTrue(prefs.weekly_reports)

    def test_unknown_keys_ignored(self):
        prefs = Preferences.resolve(server={'favourite_colour': 'teal'})
        self.assertNotIn('favourite_colour', prefs.as_dict())

    def test_clean_update_validates(self):
        self.assertEqual(clean_update({'dark_mode': False, 'junk': 1}), {'dark_mode': False})
        with self.assertRaises(InvalidInput):
            clean_update({'dark_mode': 'yes'})
        with self.assertRaises(InvalidInput):
            clean_update({'default_service_type': 'teleport'})


class TestPreferenceService(TestCase):

    def setUp(self):
        self.user = User.objects.create_user(email='prefs@example.com', password='S3cure-pass!')

    def test_update_writes_both_layers(self):
        PreferenceService.update(self.user, {'compact_view': True})
        self.user.refresh_from_db()
        self.assertTrue(self.user.preferences['compact_view'])
        self.assertTrue(cache.get(f"prefs:{self.user.pk}")['compact_view'])

    def test_cached_value_used_when_server_copy_is_partial(self):
        cache.set(f"prefs:{self.user.pk}", {'currency': 'USD'})
        self.user.preferences = {'dark_mode': False}
        prefs = PreferenceService.load(self.user)
        self.assertFalse(prefs.dark_mode)
        self.assertEqual(prefs.currency, 'USD')

    def test_reset(self):
        PreferenceService.update(self.user, {'dark_mode': False})
        prefs = PreferenceService.reset(self.user)
        self.assertEqual(prefs, Preferences())


class TestAuthAPI(APITestCase):

    def setUp(self):
        self.user = User.objects.create_user(
            email='shipper@example.com', password='S3cure-pass!', full_name='Shipper'
        )

    def test_register(self):
        response = self.client.post('/api/auth/register/', {
            'email': 'new@example.com', 'password': 'An0ther-pass!', 'company': 'Acme',
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['user']['role'], UserRole.BUSINESS)
        self.assertIn('access', response.data)
        self.assertTrue(SystemLog.objects.filter(
            action=LogAction.CREATE, module=LogModule.AUTH, user_email='new@example.com'
        ).exists())

    def test_register_cannot_choose_role(self):
        response = self.client.post('/api/auth/register/', {
            'email': 'sneaky@example.com', 'password': 'An0ther-pass!', 'role': 'admin',
        }, format='json')
        self.assertEqual(response.data['user']['role'], UserRole.BUSINESS)

    def test_login(self):
        response = self.client.post('/api/auth/login/', {
            'email': 'shipper@example.com', 'password': 'S3cure-pass!',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('refresh', response.data)
        self.user.refresh_from_db()
        self.assertIsNotNone(self.user.last_login)

    def test_failed_login_is_logged(self):
        response = self.client.post('/api/auth/login/', {
            'email': 'shipper@example.com', 'password': 'wrong',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(response.data['error'], 'invalid_credentials')
        log = SystemLog.objects.get(action=LogAction.LOGIN)
        self.assertEqual(log.status, LogStatus.FAILED)

    def test_inactive_account_rejected(self):
        self.user.is_active = False
        self.user.save()
        response = self.client.post('/api/auth/login/', {
            'email': 'shipper@example.com', 'password': 'S3cure-pass!',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(response.data['error'], 'account_disabled')

    def test_token_grants_access(self):
        login = self.client.post('/api/auth/login/', {
            'email': 'shipper@example.com', 'password': 'S3cure-pass!',
        }, format='json')
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {login.data['access']}")
        response = self.client.get('/api/auth/me/')
        self.assertEqual(response.data['email'], 'shipper@example.com')

    def test_me_requires_auth(self):
        self.assertEqual(self.client.get('/api/auth/me/').status_code, status.HTTP_401_UNAUTHORIZED)

    def test_profile_update(self):
        self.client.force_authenticate(self.user)
        response = self.client.patch('/api/auth/me/', {'company': 'Acme Traders'}, format='json')
        self.assertEqual(response.data['company'], 'Acme Traders')

    def test_password_change(self):
        self.client.force_authenticate(self.user)
        response = self.client.post('/api/auth/password/', {
            'current_password': 'wrong', 'new_password': 'Brand-new-pass9',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

        response = self.client.post('/api/auth/password/', {
            'current_password': 'S3cure-pass!', 'new_password': 'Brand-new-pass9',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.user.refresh_from_db()
        self.assertTrue(self.user.check_password('Brand-new-pass9'))


class TestSettingsAPI(APITestCase):

    def setUp(self):
        self.user = User.objects.create_user(email='shipper@example.com', password='S3cure-pass!')
        self.client.force_authenticate(self.user)

    def test_get_defaults(self):
        response = self.client.get('/api/settings/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data, Preferences().as_dict())

    def test_update_and_reset(self):
        response = self.client.put('/api/settings/', {'dark_mode': False, 'role': 'admin'}, format='json')
        self.assertFalse(response.data['dark_mode'])
        self.assertNotIn('role', response.data)

        response = self.client.post('/api/settings/reset/')
        self.assertTrue(response.data['dark_mode'])

    def test_invalid_value(self):
        response = self.client.put('/api/settings/', {'weekly_reports': 'sometimes'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'invalid_input')

    def test_export(self):
        response = self.client.get('/api/settings/export/')
        self.assertEqual(response.data['user']['email'], 'shipper@example.com')
        self.assertEqual(response.data['shipments'], [])
        self.assertTrue(SystemLog.objects.filter(action=LogAction.EXPORT).exists())

    def test_delete_request(self):
        response = self.client.post('/api/settings/delete-account/', {'reason': 'Closing shop'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_202_ACCEPTED)
        log = SystemLog.objects.get(action=LogAction.DELETE_REQUEST)
        self.assertEqual(log.status, LogStatus.PENDING)
        self.assertEqual(log.details['reason'], 'Closing shop')
        self.assertTrue(User.objects.filter(pk=self.user.pk).exists())


class TestAdminAPI(APITestCase):

    def setUp(self):
        self.admin = User.objects.create_user(email='admin@example.com', role=UserRole.ADMIN)
        self.user = User.objects.create_user(email='shipper@example.com')
        self.client.force_authenticate(self.admin)

    def test_requires_admin(self):
        self.client.force_authenticate(self.user)
        self.assertEqual(self.client.get('/api/admin/users/').status_code, status.HTTP_403_FORBIDDEN)

    def test_list_users(self):
        response = self.client.get('/api/admin/users/', {'role': 'business'})
        self.assertEqual([u['email'] for u in response.data['results']], ['shipper@example.com'])
        self.assertEqual(response.data['results'][0]['shipment_count'], 0)

    def test_deactivate_user(self):
        response = self.client.patch(f'/api/admin/users/{self.user.pk}/', {'is_active': False}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.user.refresh_from_db()
        self.assertFalse(self.user.is_active)

    def test_delete_user(self):
        response = self.client.delete(f'/api/admin/users/{self.user.pk}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(User.objects.filter(pk=self.user.pk).exists())

    def test_admin_cannot_be_deleted(self):
        other_admin = User.objects.create_user(email='boss@example.com', role=UserRole.ADMIN)
        response = self.client.delete(f'/api/admin/users/{other_admin.pk}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'invalid_state')

    def test_logs_summary(self):
        SystemLog.objects.create(
            action=LogAction.LOGIN, module=LogModule.AUTH, description='bad', status=LogStatus.FAILED
        )
        response = self.client.get('/api/admin/logs/summary/')
        self.assertEqual(response.data['failed_last_24h'], 1)
        self.assertEqual(response.data['modules'][0]['module'], LogModule.AUTH)


class TestErrorHandler(SimpleTestCase):

    def test_typed_errors(self):
        for exc, code, http in (
            (InvalidInput('Weight must be greater than 0'), 'invalid_input', 400),
            (NotFound(), 'not_found', 404),
            (Conflict(), 'conflict', 409),
        ):
            with self.subTest(code=code):
                response = api_exception_handler(exc, {})
                self.assertEqual(response.status_code, http)
                self.assertEqual(response.data['error'], code)
                self.assertEqual(response.data['message'], exc.message)

    def test_other_exceptions_fall_through(self):
        self.assertIsNone(api_exception_handler(ValueError('boom'), {}))


class TestHealthAndMiddleware(TestCase):

    def test_health(self):
        response = self.client.get('/health/')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['service'], 'courierdesk')

    @override_settings(CELERY_TASK_ALWAYS_EAGER=True)
    def test_readiness(self):
        response = self.client.get('/health/ready/')
        self.assertEqual(response.status_code, 200)
        checks = response.json()['checks']
        self.assertEqual(checks['database']['status'], 'healthy')
        self.assertEqual(checks['celery']['status'], 'eager')

    def test_security_headers(self):
        response = self.client.get('/health/')
        self.assertEqual(response['X-Content-Type-Options'], 'nosniff')
        self.assertEqual(response['X-Frame-Options'], 'DENY')
        self.assertIn('Referrer-Policy', response)

    @override_settings(DEBUG=False)
    def test_rate_limit(self):
        with patch.dict(RateLimitMiddleware.RATE_LIMITS, {'/api/auth/login/': (2, 60)}):
            payload = {'email': 'nobody@example.com', 'password': 'x'}
            for _ in range(2):
                response = self.client.post('/api/auth/login/', payload, content_type='application/json')
                self.assertEqual(response.status_code, 401)
            response = self.client.post('/api/auth/login/', payload, content_type='application/json')
        self.assertEqual(response.status_code, 429)
        self.assertEqual(response.json()['error'], 'rate_limit_exceeded')


@pytest.mark.django_db
def test_user_str():
    user = User.objects.create_user(email='str@example.com', full_name='Str Test')
    assert str(user) == 'Str Test (business)'
