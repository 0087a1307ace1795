"""
Core App Views - Auth, Settings & Admin API
"""

import logging
from datetime import timedelta

from django.contrib.auth import get_user_model
from django.db.models import Count, Q
from django.utils import timezone
from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import filters, mixins, permissions, status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response
from rest_framework.views import APIView
from rest_framework_simplejwt.tokens import RefreshToken

from .audit import record_action
from .exceptions import InvalidState
from .models import SystemLog, LogAction, LogModule, LogStatus
from .permissions import IsAdminRole
from .preferences import PreferenceService
from .serializers import (
    UserSerializer, UserCreateSerializer, LoginSerializer,
    ProfileUpdateSerializer, PasswordChangeSerializer,
    AdminUserSerializer, SystemLogSerializer,
)

logger = logging.getLogger(__name__)

User = get_user_model()


def _token_pair(user):
    refresh = RefreshToken.for_user(user)
    return {'access': str(refresh.access_token), 'refresh': str(refresh)}


# ============================================
# AUTHENTICATION
# ============================================

class RegisterView(APIView):
    """
    Create a business account and return a JWT pair.

    POST /api/auth/register/
    """
    permission_classes = [permissions.AllowAny]

    def post(self, request):
        serializer = UserCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = serializer.save()

        record_action(
            LogAction.CREATE, LogModule.AUTH,
            f"New user registered: {user.email}",
            user_id=user.pk, user_email=user.email, request=request,
        )
        logger.info(f"[AUTH] Registered {user.email}")

        return Response({
            'user': UserSerializer(user).data,
            **_token_pair(user),
        }, status=status.HTTP_201_CREATED)


class LoginView(APIView):
    """
    Email/password login returning a JWT pair.

    POST /api/auth/login/
    """
    permission_classes = [permissions.AllowAny]

    def post(self, request):
        serializer = LoginSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        email = serializer.validated_data['email'].lower()
        password = serializer.validated_data['password']

        user = User.objects.filter(email__iexact=email).first()
        if user is None or not user.check_password(password):
            record_action(
                LogAction.LOGIN, LogModule.AUTH,
                f"Failed login attempt for {email}",
                user_email=email, status=LogStatus.FAILED,
                error_message='Invalid credentials', request=request,
            )
            return Response(
                {'error': 'invalid_credentials', 'message': 'Invalid email or password'},
                status=status.HTTP_401_UNAUTHORIZED
            )

        if not user.is_active:
            return Response(
                {'error': 'account_disabled', 'message': 'Account is deactivated'},
                status=status.HTTP_403_FORBIDDEN
            )

        user.last_login = timezone.now()
        user.save(update_fields=['last_login'])

        record_action(
            LogAction.LOGIN, LogModule.AUTH,
            f"User logged in: {user.email}",
            user_id=user.pk, user_email=user.email, request=request,
        )

        return Response({
            'user': UserSerializer(user).data,
            **_token_pair(user),
        })


class MeView(APIView):
    """
    GET /api/auth/me/ - current user
    PATCH /api/auth/me/ - update profile fields
    """
    permission_classes = [permissions.IsAuthenticated]

    def get(self, request):
        return Response(UserSerializer(request.user).data)

    def patch(self, request):
        serializer = ProfileUpdateSerializer(request.user, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        serializer.save()
        record_action(
            LogAction.UPDATE, LogModule.USER,
            "Profile updated",
            user_id=request.user.pk, user_email=request.user.email,
            details={'fields': sorted(serializer.validated_data)}, request=request,
        )
        return Response(UserSerializer(request.user).data)


class PasswordChangeView(APIView):
    """POST /api/auth/password/"""
    permission_classes = [permissions.IsAuthenticated]

    def post(self, request):
        serializer = PasswordChangeSerializer(data=request.data, context={'request': request})
        serializer.is_valid(raise_exception=True)
        request.user.set_password(serializer.validated_data['new_password'])
        request.user.save(update_fields=['password'])
        record_action(
            LogAction.UPDATE, LogModule.SECURITY,
            "Password changed",
            user_id=request.user.pk, user_email=request.user.email, request=request,
        )
        return Response({'message': 'Password updated'})


# ============================================
# SETTINGS
# ============================================

class SettingsViewSet(viewsets.ViewSet):
    """
    Dashboard preferences of the current user.

    GET  /api/settings/              - resolved preferences
    PUT  /api/settings/              - update known keys
    POST /api/settings/reset/        - back to defaults
    GET  /api/settings/export/       - account data export
    POST /api/settings/delete-account/ - request account deletion
    """
    permission_classes = [permissions.IsAuthenticated]

    def list(self, request):
        return Response(PreferenceService.load(request.user).as_dict())

    def update_preferences(self, request):
        prefs = PreferenceService.update(request.user, request.data)
        record_action(
            LogAction.UPDATE, LogModule.SETTINGS,
            "Preferences updated",
            user_id=request.user.pk, user_email=request.user.email, request=request,
        )
        return Response(prefs.as_dict())

    @action(detail=False, methods=['post'])
    def reset(self, request):
        prefs = PreferenceService.reset(request.user)
        record_action(
            LogAction.UPDATE, LogModule.SETTINGS,
            "Preferences reset to defaults",
            user_id=request.user.pk, user_email=request.user.email, request=request,
        )
        return Response(prefs.as_dict())

    @action(detail=False, methods=['get'])
    def export(self, request):
        from logistics.serializers import ShipmentListSerializer

        user = request.user
        shipments = user.shipments.select_related('courier').all()
        record_action(
            LogAction.EXPORT, LogModule.SETTINGS,
            "Account data exported",
            user_id=user.pk, user_email=user.email,
            details={'shipments': shipments.count()}, request=request,
        )
        return Response({
            'exported_at': timezone.now().isoformat(),
            'user': UserSerializer(user).data,
            'preferences': PreferenceService.load(user).as_dict(),
            'shipments': ShipmentListSerializer(shipments, many=True).data,
        })

    @action(detail=False, methods=['post'], url_path='delete-account')
    def delete_account(self, request):
        record_action(
            LogAction.DELETE_REQUEST, LogModule.USER,
            f"Account deletion requested by {request.user.email}",
            user_id=request.user.pk, user_email=request.user.email,
            details={'reason': request.data.get('reason', '')},
            status=LogStatus.PENDING, request=request,
        )
        return Response(
            {'message': 'Deletion request received. An administrator will review it.'},
            status=status.HTTP_202_ACCEPTED
        )


# ============================================
# ADMIN
# ============================================

class AdminUserViewSet(mixins.ListModelMixin,
                       mixins.RetrieveModelMixin,
                       mixins.UpdateModelMixin,
                       mixins.DestroyModelMixin,
                       viewsets.GenericViewSet):
    """
    User management for admins.

    - List: search by email/name/company, filter by role and active flag
    - Retrieve: includes the user's shipment count
    - Delete: admin accounts cannot be deleted
    """

    serializer_class = AdminUserSerializer
    permission_classes = [IsAdminRole]
    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    filterset_fields = ['role', 'is_active']
    search_fields = ['email', 'full_name', 'company']
    ordering_fields = ['date_joined', 'email']

    def get_queryset(self):
        return User.objects.annotate(shipment_count=Count('shipments'))

    def perform_update(self, serializer):
        user = serializer.save()
        record_action(
            LogAction.UPDATE, LogModule.ADMIN,
            f"User updated: {user.email}",
            user_id=self.request.user.pk, user_email=self.request.user.email,
            details={'target': str(user.pk), 'fields': sorted(serializer.validated_data)},
            request=self.request,
        )

    def perform_destroy(self, instance):
        if instance.is_admin:
            raise InvalidState('Administrator accounts cannot be deleted')
        email = instance.email
        instance.delete()
        record_action(
            LogAction.DELETE, LogModule.ADMIN,
            f"User deleted: {email}",
            user_id=self.request.user.pk, user_email=self.request.user.email,
            request=self.request,
        )


class SystemLogViewSet(viewsets.ReadOnlyModelViewSet):
    """Audit trail, filterable by action, module, status and user."""

    queryset = SystemLog.objects.all()
    serializer_class = SystemLogSerializer
    permission_classes = [IsAdminRole]
    filter_backends = [DjangoFilterBackend, filters.SearchFilter]
    filterset_fields = ['action', 'module', 'status', 'user']
    search_fields = ['description', 'user_email']

    @action(detail=False, methods=['get'])
    def summary(self, request):
        """Counts per module plus failures of the last 24 hours."""
        since = timezone.now() - timedelta(hours=24)
        per_module = (
            SystemLog.objects.values('module')
            .annotate(
                total=Count('id'),
                failed=Count('id', filter=Q(status=LogStatus.FAILED)),
            )
            .order_by('module')
        )
        return Response({
            'modules': list(per_module),
            'failed_last_24h': SystemLog.objects.filter(
                status=LogStatus.FAILED, created_at__gte=since
            ).count(),
        })
