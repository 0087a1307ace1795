"""
ANALYTICS App URLs
"""

from django.urls import path

from .views import (
    DashboardStatsView, CourierPerformanceView, MonthlyCostsView,
    SuccessRateView, DeliveryTimeView, AdminStatsView,
)

urlpatterns = [
    path('analytics/dashboard/', DashboardStatsView.as_view(), name='analytics-dashboard'),
    path('analytics/courier-performance/', CourierPerformanceView.as_view(), name='analytics-courier-performance'),
    path('analytics/monthly-costs/', MonthlyCostsView.as_view(), name='analytics-monthly-costs'),
    path('analytics/success-rate/', SuccessRateView.as_view(), name='analytics-success-rate'),
    path('analytics/delivery-time/', DeliveryTimeView.as_view(), name='analytics-delivery-time'),
    path('admin/stats/', AdminStatsView.as_view(), name='admin-stats'),
]
