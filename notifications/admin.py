from django.contrib import admin

from .models import Notification


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    list_display = ('title', 'user', 'type', 'is_read', 'is_email_sent', 'created_at')
    list_filter = ('type', 'is_read', 'is_email_sent')
    search_fields = ('title', 'message', 'user__email')
    raw_id_fields = ('user',)
