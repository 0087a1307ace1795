from rest_framework import serializers

from .models import Notification


class NotificationSerializer(serializers.ModelSerializer):
    class Meta:
        model = Notification
        fields = ['id', 'type', 'title', 'message', 'data', 'is_read', 'is_email_sent', 'created_at']
        read_only_fields = fields


class SendEmailSerializer(serializers.Serializer):
    tracking_id = serializers.CharField(max_length=40)
    type = serializers.CharField(max_length=30, required=False, allow_blank=True)
