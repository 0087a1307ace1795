"""
NOTIFICATIONS App - Views

GET    /api/notifications/            - feed (?unread=true), with unread_count
POST   /api/notifications/<id>/read/  - mark one read
POST   /api/notifications/read-all/   - mark all read
DELETE /api/notifications/<id>/       - delete one
POST   /api/notifications/send-email/ - e-mail the notifications of a shipment
"""

import logging

from rest_framework import mixins, permissions, status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from core.exceptions import NotFound
from .models import Notification
from .serializers import NotificationSerializer, SendEmailSerializer
from .services import NotificationService
from .tasks import send_notification_email

logger = logging.getLogger(__name__)


class NotificationViewSet(mixins.ListModelMixin,
                          mixins.DestroyModelMixin,
                          viewsets.GenericViewSet):
    """Notifications of the current user."""

    serializer_class = NotificationSerializer
    permission_classes = [permissions.IsAuthenticated]

    def get_queryset(self):
        queryset = Notification.objects.filter(user=self.request.user)
        if self.action == 'list' and self.request.query_params.get('unread') == 'true':
            queryset = queryset.filter(is_read=False)
        return queryset

    def list(self, request, *args, **kwargs):
        response = super().list(request, *args, **kwargs)
        response.data['unread_count'] = NotificationService.unread_count(request.user)
        return response

    @action(detail=True, methods=['post', 'put'])
    def read(self, request, pk=None):
        notification = self.get_object()
        if not notification.is_read:
            notification.is_read = True
            notification.save(update_fields=['is_read'])
        return Response(NotificationSerializer(notification).data)

    @action(detail=False, methods=['post', 'put'], url_path='read-all')
    def read_all(self, request):
        updated = Notification.objects.filter(user=request.user, is_read=False).update(is_read=True)
        return Response({'message': 'All notifications marked as read', 'updated': updated})

    @action(detail=False, methods=['post'], url_path='send-email')
    def send_email(self, request):
        serializer = SendEmailSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        tracking_id = serializer.validated_data['tracking_id']

        notifications = Notification.objects.filter(
            user=request.user, data__tracking_id=tracking_id
        )
        if serializer.validated_data.get('type'):
            notifications = notifications.filter(type=serializer.validated_data['type'])

        ids = [str(pk) for pk in notifications.values_list('pk', flat=True)]
        if not ids:
            raise NotFound(f"No notifications for {tracking_id}")

        for notification_id in ids:
            send_notification_email.delay(notification_id)

        logger.info(f"[NOTIFY] Queued {len(ids)} e-mail(s) for {tracking_id}")
        return Response(
            {'message': f"Email notification queued for {tracking_id}", 'queued': len(ids)},
            status=status.HTTP_202_ACCEPTED
        )
