"""
CORE App - Users & System Logs for CourierDesk

Handles: Users (Businesses, Staff, Admins), audit trail of user actions
"""

import uuid
from django.contrib.auth.models import AbstractBaseUser, BaseUserManager, PermissionsMixin
from django.db import models


class UserRole(models.TextChoices):
    """User role enumeration."""
    BUSINESS = 'business', 'Business'
    STAFF = 'staff', 'Staff'
    ADMIN = 'admin', 'Administrator'


class UserManager(BaseUserManager):
    """Custom user manager for email-based authentication."""

    def create_user(self, email, password=None, **extra_fields):
        if not email:
            raise ValueError('An email address is required')

        email = self.normalize_email(email)
        user = self.model(email=email, **extra_fields)
        if password:
            user.set_password(password)
        else:
            user.set_unusable_password()
        user.save(using=self._db)
        return user

    def create_superuser(self, email, password=None, **extra_fields):
        extra_fields.setdefault('is_staff', True)
        extra_fields.setdefault('is_superuser', True)
        extra_fields.setdefault('role', UserRole.ADMIN)

        if extra_fields.get('is_staff') is not True:
            raise ValueError('Superuser must have is_staff=True.')
        if extra_fields.get('is_superuser') is not True:
            raise ValueError('Superuser must have is_superuser=True.')

        return self.create_user(email, password, **extra_fields)


class User(AbstractBaseUser, PermissionsMixin):
    """
    Custom User model using email as the login identifier.

    Business users own shipments; staff and admins operate on
    every tenant's shipments (status updates, simulation).
    `preferences` holds the server-side copy of dashboard settings,
    see core.preferences for the merge rules.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    email = models.EmailField(unique=True, verbose_name="Email")

    # Profile
    full_name = models.CharField(max_length=150, blank=True, verbose_name="Full name")
    company = models.CharField(max_length=150, blank=True, verbose_name="Company")
    phone = models.CharField(max_length=20, blank=True, verbose_name="Phone")
    role = models.CharField(
        max_length=20,
        choices=UserRole.choices,
        default=UserRole.BUSINESS,
        verbose_name="Role"
    )

    preferences = models.JSONField(default=dict, blank=True, verbose_name="Preferences")

    # Django Auth Fields
    is_active = models.BooleanField(default=True)
    is_staff = models.BooleanField(default=False)
    date_joined = models.DateTimeField(auto_now_add=True)

    objects = UserManager()

    USERNAME_FIELD = 'email'
    REQUIRED_FIELDS = []

    class Meta:
        verbose_name = "User"
        verbose_name_plural = "Users"
        ordering = ['-date_joined']

    def __str__(self):
        return f"{self.full_name or self.email} ({self.role})"

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    @property
    def is_staff_member(self) -> bool:
        """Staff or admin: allowed to drive shipment status."""
        return self.role in (UserRole.STAFF, UserRole.ADMIN)


class LogAction(models.TextChoices):
    LOGIN = 'login', 'Login'
    LOGOUT = 'logout', 'Logout'
    CREATE = 'create', 'Create'
    UPDATE = 'update', 'Update'
    DELETE = 'delete', 'Delete'
    BULK_UPLOAD = 'bulk_upload', 'Bulk upload'
    EXPORT = 'export', 'Export'
    API_CALL = 'api_call', 'API call'
    ERROR = 'error', 'Error'
    SYSTEM = 'system', 'System'
    DELETE_REQUEST = 'delete_request', 'Deletion request'


class LogModule(models.TextChoices):
    AUTH = 'auth', 'Auth'
    SHIPMENT = 'shipment', 'Shipment'
    COURIER = 'courier', 'Courier'
    TRACKING = 'tracking', 'Tracking'
    USER = 'user', 'User'
    ANALYTICS = 'analytics', 'Analytics'
    ADMIN = 'admin', 'Admin'
    SYSTEM = 'system', 'System'
    SETTINGS = 'settings', 'Settings'
    SECURITY = 'security', 'Security'


class LogStatus(models.TextChoices):
    SUCCESS = 'success', 'Success'
    FAILED = 'failed', 'Failed'
    PARTIAL = 'partial', 'Partial'
    PENDING = 'pending', 'Pending'


class SystemLog(models.Model):
    """
    Audit record of a user or system action, reviewed by admins.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    action = models.CharField(max_length=20, choices=LogAction.choices)
    module = models.CharField(max_length=20, choices=LogModule.choices)
    user = models.ForeignKey(
        'core.User',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='system_logs'
    )
    user_email = models.CharField(max_length=254, blank=True)
    description = models.TextField()
    details = models.JSONField(default=dict, blank=True)
    ip_address = models.GenericIPAddressField(null=True, blank=True)
    user_agent = models.CharField(max_length=255, blank=True)
    status = models.CharField(
        max_length=20,
        choices=LogStatus.choices,
        default=LogStatus.SUCCESS
    )
    error_message = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = "System log"
        verbose_name_plural = "System logs"
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['user', 'action'], name='systemlog_user_action_idx'),
            models.Index(fields=['module'], name='systemlog_module_idx'),
        ]

    def __str__(self):
        return f"[{self.module}/{self.action}] {self.description}"
