"""
Django Admin configuration for LOGISTICS app.
"""

from django.contrib import admin
from .models import Courier, Shipment, TrackingLog


@admin.register(Courier)
class CourierAdmin(admin.ModelAdmin):
    list_display = (
        'name', 'code', 'base_rate', 'weight_rate', 'fuel_surcharge',
        'avg_delivery_days', 'delivery_success_rate', 'avg_rating', 'is_active'
    )
    list_filter = ('is_active', 'is_domestic', 'is_international')
    search_fields = ('name', 'code')
    ordering = ('name',)

    fieldsets = (
        (None, {
            'fields': ('name', 'code', 'logo', 'description', 'is_active')
        }),
        ('Pricing', {
            'fields': (
                'base_rate', 'weight_rate', 'express_multiplier',
                'overnight_multiplier', 'cod_charges', 'fuel_surcharge'
            )
        }),
        ('Coverage', {
            'fields': ('is_domestic', 'is_international', 'service_pincodes', 'restricted_pincodes'),
            'classes': ('collapse',)
        }),
        ('Performance', {
            'fields': ('avg_delivery_days', 'delivery_success_rate', 'avg_rating')
        }),
        ('Contact', {
            'fields': ('support_email', 'support_phone', 'website'),
            'classes': ('collapse',)
        }),
    )


class TrackingLogInline(admin.TabularInline):
    model = TrackingLog
    extra = 0
    can_delete = False
    fields = ('timestamp', 'status', 'description', 'city', 'state', 'remarks', 'updated_by')
    readonly_fields = fields
    ordering = ('timestamp', 'sequence')

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Shipment)
class ShipmentAdmin(admin.ModelAdmin):
    """Shipments are read-mostly here; status changes go through the API."""

    list_display = (
        'tracking_id', 'user', 'courier_name', 'status', 'service_type',
        'payment_mode', 'total_cost', 'created_at'
    )
    list_filter = ('status', 'service_type', 'payment_mode', 'courier')
    search_fields = ('tracking_id', 'receiver_name', 'receiver_city', 'user__email')
    readonly_fields = (
        'tracking_id', 'status', 'total_cost', 'actual_delivery_date',
        'attempt_count', 'created_at', 'updated_at'
    )
    raw_id_fields = ('user',)
    date_hierarchy = 'created_at'
    inlines = [TrackingLogInline]


@admin.register(TrackingLog)
class TrackingLogAdmin(admin.ModelAdmin):
    list_display = ('tracking_id', 'status', 'city', 'updated_by', 'timestamp')
    list_filter = ('status',)
    search_fields = ('tracking_id',)
    readonly_fields = [f.name for f in TrackingLog._meta.fields]

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False
