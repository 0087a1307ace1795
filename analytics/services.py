"""
ANALYTICS App - Aggregations over shipments

Every query is scoped to the actor: admins see all tenants, everyone
else only their own shipments.
"""

from collections import defaultdict
from datetime import datetime, timedelta
from decimal import Decimal, ROUND_HALF_UP

from django.db.models import Avg, Count, Q, Sum
from django.db.models.functions import TruncMonth
from django.utils import timezone

from core.actors import Actor
from logistics.models import Courier, Shipment, ShipmentStatus

MONTH_NAMES = [
    'Jan', 'Feb', 'Mar', 'Apr', 'May', 'Jun',
    'Jul', 'Aug', 'Sep', 'Oct', 'Nov', 'Dec',
]

PENDING_STATUSES = [ShipmentStatus.PENDING, ShipmentStatus.CONFIRMED]
IN_TRANSIT_STATUSES = [
    ShipmentStatus.PICKED_UP, ShipmentStatus.IN_TRANSIT, ShipmentStatus.OUT_FOR_DELIVERY,
]
FAILED_STATUSES = [ShipmentStatus.FAILED, ShipmentStatus.RETURNED]

RECENT_LIMIT = 10


def _round(value, places='1') -> Decimal:
    return Decimal(str(value or 0)).quantize(Decimal(places), rounding=ROUND_HALF_UP)


def _whole(value) -> int:
    return int(_round(value))


def _percent(part, total) -> Decimal:
    return Decimal(part) * 100 / max(total, 1)


def months_ago(now: datetime, months: int) -> datetime:
    """Same day and time `months` calendar months earlier, clamped to month end."""
    month_index = now.year * 12 + (now.month - 1) - months
    year, month = divmod(month_index, 12)
    month += 1
    for day in (now.day, 30, 29, 28):
        try:
            return now.replace(year=year, month=month, day=day)
        except ValueError:
            continue
    raise ValueError(f"Cannot step back {months} months from {now}")


def scoped_shipments(actor: Actor):
    queryset = Shipment.objects.all()
    if actor.is_admin:
        return queryset
    return queryset.filter(user_id=actor.id)


def dashboard_stats(actor: Actor) -> dict:
    shipments = scoped_shipments(actor)

    counts = shipments.aggregate(
        total=Count('id'),
        pending=Count('id', filter=Q(status__in=PENDING_STATUSES)),
        in_transit=Count('id', filter=Q(status__in=IN_TRANSIT_STATUSES)),
        delivered=Count('id', filter=Q(status=ShipmentStatus.DELIVERED)),
        failed=Count('id', filter=Q(status__in=FAILED_STATUSES)),
    )
    costs = shipments.aggregate(total=Sum('total_cost'), average=Avg('total_cost'))

    recent = (
        shipments.select_related('courier')
        .order_by('-created_at')[:RECENT_LIMIT]
    )

    return {
        'counts': counts,
        'costs': {
            'total': _whole(costs['total']),
            'average': _whole(costs['average']),
        },
        'recent_shipments': [
            {
                'tracking_id': s.tracking_id,
                'status': s.status,
                'courier_name': s.courier_name,
                'courier_code': s.courier.code,
                'receiver_name': s.receiver_name,
                'receiver_city': s.receiver_city,
                'total_cost': s.total_cost,
                'created_at': s.created_at,
            }
            for s in recent
        ],
    }


def courier_performance(actor: Actor) -> list:
    """Per courier: shipments, deliveries, costs and success %, busiest first."""
    rows = (
        scoped_shipments(actor)
        .values('courier_id', 'courier_name')
        .annotate(
            total_shipments=Count('id'),
            delivered_count=Count('id', filter=Q(status=ShipmentStatus.DELIVERED)),
            total_cost=Sum('total_cost'),
            avg_cost=Avg('total_cost'),
        )
        .order_by('-total_shipments', 'courier_name')
    )
    return [
        {
            'courier_id': row['courier_id'],
            'courier_name': row['courier_name'],
            'total_shipments': row['total_shipments'],
            'delivered_count': row['delivered_count'],
            'total_cost': row['total_cost'] or Decimal('0'),
            'avg_cost': _round(row['avg_cost'], '0.01'),
            'success_rate': _round(_percent(row['delivered_count'], row['total_shipments']), '0.01'),
        }
        for row in rows
    ]


def _monthly(actor: Actor, months: int, now=None):
    now = now or timezone.now()
    return (
        scoped_shipments(actor)
        .filter(created_at__gte=months_ago(now, months))
        .annotate(month=TruncMonth('created_at'))
        .values('month')
        .annotate(
            total=Count('id'),
            delivered=Count('id', filter=Q(status=ShipmentStatus.DELIVERED)),
            total_cost=Sum('total_cost'),
        )
        .order_by('month')
    )


def monthly_costs(actor: Actor, months: int = 12, now=None) -> list:
    return [
        {
            'month': f"{MONTH_NAMES[row['month'].month - 1]} {row['month'].year}",
            'total_cost': _whole(row['total_cost']),
            'shipments': row['total'],
        }
        for row in _monthly(actor, months, now)
    ]


def success_rate(actor: Actor, months: int = 6, now=None) -> list:
    return [
        {
            'month': MONTH_NAMES[row['month'].month - 1],
            'success_rate': _round(_percent(row['delivered'], row['total']), '0.1'),
            'total': row['total'],
        }
        for row in _monthly(actor, months, now)
    ]


def delivery_time_analysis(actor: Actor) -> list:
    """
    Average days from booking to delivery per courier, fastest first.

    Durations are computed in Python so the result does not depend on
    the database's interval arithmetic.
    """
    delivered = (
        scoped_shipments(actor)
        .filter(status=ShipmentStatus.DELIVERED, actual_delivery_date__isnull=False)
        .values_list('courier_name', 'created_at', 'actual_delivery_date')
    )

    durations = defaultdict(list)
    for courier_name, created_at, delivered_at in delivered:
        durations[courier_name].append((delivered_at - created_at).total_seconds() / 86400)

    results = [
        {
            'courier': courier_name,
            'avg_days': _round(sum(days) / len(days), '0.1'),
            'count': len(days),
        }
        for courier_name, days in durations.items()
    ]
    results.sort(key=lambda row: (row['avg_days'], row['courier']))
    return results


def admin_stats() -> dict:
    from core.models import User

    revenue = Shipment.objects.aggregate(total=Sum('total_cost'))['total']
    return {
        'total_users': User.objects.count(),
        'active_users': User.objects.filter(is_active=True).count(),
        'total_shipments': Shipment.objects.count(),
        'total_couriers': Courier.objects.filter(is_active=True).count(),
        'total_revenue': _whole(revenue),
    }


def weekly_summary(actor: Actor, now=None) -> dict:
    """Counts and spend of the last seven days, for the weekly e-mail."""
    now = now or timezone.now()
    week = scoped_shipments(actor).filter(created_at__gte=now - timedelta(days=7))
    stats = week.aggregate(
        created=Count('id'),
        delivered=Count('id', filter=Q(status=ShipmentStatus.DELIVERED)),
        failed=Count('id', filter=Q(status__in=FAILED_STATUSES)),
        spend=Sum('total_cost'),
    )
    stats['spend'] = _whole(stats['spend'])
    return stats
