"""
ANALYTICS App - Views

GET /api/analytics/dashboard/            - status counts, costs, recent shipments
GET /api/analytics/courier-performance/  - per-courier totals
GET /api/analytics/monthly-costs/        - ?months=12
GET /api/analytics/success-rate/         - ?months=6
GET /api/analytics/delivery-time/        - avg days to delivery per courier
GET /api/admin/stats/                    - platform totals (admin)
"""

from rest_framework import permissions
from rest_framework.response import Response
from rest_framework.views import APIView

from core.actors import Actor
from core.exceptions import InvalidInput
from core.permissions import IsAdminRole
from . import services

MAX_MONTHS = 36


def months_param(request, default: int) -> int:
    raw = request.query_params.get('months')
    if raw in (None, ''):
        return default
    try:
        months = int(raw)
    except (TypeError, ValueError):
        raise InvalidInput("'months' must be an integer")
    if not 1 <= months <= MAX_MONTHS:
        raise InvalidInput(f"'months' must be between 1 and {MAX_MONTHS}")
    return months


class AnalyticsView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    def actor(self):
        return Actor.from_user(self.request.user)


class DashboardStatsView(AnalyticsView):
    def get(self, request):
        return Response(services.dashboard_stats(self.actor()))


class CourierPerformanceView(AnalyticsView):
    def get(self, request):
        return Response(services.courier_performance(self.actor()))


class MonthlyCostsView(AnalyticsView):
    def get(self, request):
        months = months_param(request, default=12)
        return Response(services.monthly_costs(self.actor(), months=months))


class SuccessRateView(AnalyticsView):
    def get(self, request):
        months = months_param(request, default=6)
        return Response(services.success_rate(self.actor(), months=months))


class DeliveryTimeView(AnalyticsView):
    def get(self, request):
        return Response(services.delivery_time_analysis(self.actor()))


class AdminStatsView(APIView):
    permission_classes = [IsAdminRole]

    def get(self, request):
        return Response(services.admin_stats())
