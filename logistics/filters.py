"""
Shipment list filters: ?status=&courier=&start_date=&end_date=&search=
"""

import django_filters
from django.db.models import Q

from .models import Shipment, ShipmentStatus


class ShipmentFilter(django_filters.FilterSet):
    """Filter for shipment listings. `status=all` means no status filter."""

    status = django_filters.CharFilter(method='filter_status')
    courier = django_filters.UUIDFilter(field_name='courier_id')
    start_date = django_filters.DateFilter(field_name='created_at', lookup_expr='date__gte')
    end_date = django_filters.DateFilter(field_name='created_at', lookup_expr='date__lte')
    service_type = django_filters.CharFilter()
    payment_mode = django_filters.CharFilter()
    search = django_filters.CharFilter(method='filter_search')

    class Meta:
        model = Shipment
        fields = ['status', 'courier', 'service_type', 'payment_mode']

    def filter_status(self, queryset, name, value):
        if not value or value == 'all':
            return queryset
        if value not in ShipmentStatus.values:
            return queryset.none()
        return queryset.filter(status=value)

    def filter_search(self, queryset, name, value):
        """Tracking id, receiver name or receiver city."""
        return queryset.filter(
            Q(tracking_id__icontains=value) |
            Q(receiver_name__icontains=value) |
            Q(receiver_city__icontains=value)
        )
