"""
Core App URLs
"""

from django.urls import path, include
from rest_framework.routers import DefaultRouter
from rest_framework_simplejwt.views import TokenRefreshView

from .views import (
    RegisterView, LoginView, MeView, PasswordChangeView,
    SettingsViewSet, AdminUserViewSet, SystemLogViewSet,
)

router = DefaultRouter()
router.register(r'admin/users', AdminUserViewSet, basename='admin-user')
router.register(r'admin/logs', SystemLogViewSet, basename='admin-log')

settings_view = SettingsViewSet.as_view({'get': 'list', 'put': 'update_preferences'})

urlpatterns = [
    # JWT Authentication
    path('auth/register/', RegisterView.as_view(), name='auth-register'),
    path('auth/login/', LoginView.as_view(), name='auth-login'),
    path('auth/token/refresh/', TokenRefreshView.as_view(), name='token_refresh'),
    path('auth/me/', MeView.as_view(), name='auth-me'),
    path('auth/password/', PasswordChangeView.as_view(), name='auth-password'),

    # Preferences
    path('settings/', settings_view, name='settings'),
    path('settings/reset/', SettingsViewSet.as_view({'post': 'reset'}), name='settings-reset'),
    path('settings/export/', SettingsViewSet.as_view({'get': 'export'}), name='settings-export'),
    path(
        'settings/delete-account/',
        SettingsViewSet.as_view({'post': 'delete_account'}),
        name='settings-delete-account'
    ),

    # Router URLs
    path('', include(router.urls)),
]
