"""
Role-based DRF permissions.
"""

from rest_framework import permissions

from .models import UserRole


class IsAdminRole(permissions.BasePermission):
    """Permission for admin users only."""

    def has_permission(self, request, view):
        return request.user.is_authenticated and request.user.role == UserRole.ADMIN


class IsStaffOrAdmin(permissions.BasePermission):
    """Permission for staff and admin users (shipment status management)."""

    def has_permission(self, request, view):
        return (
            request.user.is_authenticated
            and request.user.role in (UserRole.STAFF, UserRole.ADMIN)
        )
