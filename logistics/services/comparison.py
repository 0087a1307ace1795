"""
Courier comparison & recommendation engine.

Quotes every active courier through the rate engine, ranks the quotes
and names the cheapest, fastest and best-rated options. Quotes are
computed from the courier rows passed in on every call and never cached.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, Iterable, List, Optional

from django.utils import timezone

from core.exceptions import InvalidInput
from logistics.models import ServiceType, PaymentMode
from .pricing import rate_engine

logger = logging.getLogger(__name__)


class Priority:
    COST = 'cost'
    SPEED = 'speed'
    RELIABILITY = 'reliability'
    BALANCED = 'balanced'

    ALL = (COST, SPEED, RELIABILITY, BALANCED)


@dataclass(frozen=True)
class ShipmentRequest:
    """Parcel description a comparison is run for."""
    weight: Decimal
    service_type: str = ServiceType.STANDARD
    payment_mode: str = PaymentMode.PREPAID
    origin: Optional[str] = None
    destination: Optional[str] = None

    @property
    def is_cod(self) -> bool:
        return self.payment_mode == PaymentMode.COD

    @classmethod
    def from_data(cls, data: Dict[str, Any], default_weight=None) -> 'ShipmentRequest':
        """
        Build a request from API data.

        Accepts `from_pincode`/`from_city` as origin and
        `to_pincode`/`to_city` as destination.

        Raises:
            InvalidInput: missing or non-positive weight, unknown service
                type or payment mode.
        """
        weight = data.get('weight')
        if weight in (None, ''):
            if default_weight is None:
                raise InvalidInput('Please provide package weight')
            weight = default_weight

        service_type = data.get('service_type') or ServiceType.STANDARD
        payment_mode = data.get('payment_mode') or PaymentMode.PREPAID
        if payment_mode not in PaymentMode.values:
            raise InvalidInput(f"Unknown payment mode '{payment_mode}'")

        return cls(
            weight=rate_engine.clean_weight(weight),
            service_type=rate_engine.clean_service_type(service_type),
            payment_mode=payment_mode,
            origin=data.get('from_pincode') or data.get('from_city') or None,
            destination=data.get('to_pincode') or data.get('to_city') or None,
        )


@dataclass
class RateQuote:
    """One courier's price and transit estimate for a request."""
    courier_id: Any
    courier_name: str
    courier_code: str
    courier_logo: str
    rate: int
    estimated_days: int
    estimated_date: datetime
    success_rate: Decimal
    rating: Decimal
    domestic: bool = True
    international: bool = False
    score: Optional[Decimal] = None

    @property
    def courier(self) -> Dict[str, Any]:
        return {
            'id': str(self.courier_id),
            'name': self.courier_name,
            'code': self.courier_code,
            'logo': self.courier_logo,
        }

    def as_dict(self) -> Dict[str, Any]:
        data = {
            'courier': self.courier,
            'rate': self.rate,
            'estimated_days': self.estimated_days,
            'estimated_date': self.estimated_date.isoformat(),
            'success_rate': float(self.success_rate),
            'rating': float(self.rating),
            'features': {
                'domestic': self.domestic,
                'international': self.international,
                'tracking': True,
                'insurance': True,
            },
        }
        if self.score is not None:
            data['score'] = float(self.score)
        return data


def quote(courier, request: ShipmentRequest, now=None, is_cod=None) -> RateQuote:
    """Price one courier for the request."""
    now = now or timezone.now()
    if is_cod is None:
        is_cod = request.is_cod
    return RateQuote(
        courier_id=courier.pk,
        courier_name=courier.name,
        courier_code=courier.code,
        courier_logo=courier.logo or '',
        rate=rate_engine.calculate_rate(courier, request.weight, request.service_type, is_cod),
        estimated_days=rate_engine.estimate_delivery(courier, request.service_type),
        estimated_date=rate_engine.estimated_delivery_date(courier, request.service_type, now),
        success_rate=Decimal(str(courier.delivery_success_rate)),
        rating=Decimal(str(courier.avg_rating)),
        domestic=courier.is_domestic,
        international=courier.is_international,
    )


def compare_rates(request: ShipmentRequest, couriers: Iterable) -> Dict[str, Any]:
    """
    Quote every courier and pick the recommendations.

    Returns:
        {'comparison': [RateQuote, ...] sorted by rate ascending,
         'recommendations': {'cheapest', 'fastest', 'recommended'}}

    Equal rates keep the courier order. `fastest` and `recommended` are
    taken over the unsorted quotes; on a tie the earlier courier wins.
    No couriers gives an empty comparison and no recommendations.
    """
    now = timezone.now()
    quotes = [quote(courier, request, now=now) for courier in couriers]
    if not quotes:
        return {'comparison': [], 'recommendations': {}}

    comparison = sorted(quotes, key=lambda q: q.rate)
    cheapest = comparison[0]
    fastest = min(quotes, key=lambda q: q.estimated_days)
    best_rated = max(quotes, key=lambda q: q.rating)

    logger.debug(
        f"[COMPARE] {len(quotes)} couriers, weight={request.weight} "
        f"service={request.service_type} cheapest={cheapest.courier_code}"
    )

    return {
        'comparison': comparison,
        'recommendations': {
            'cheapest': {
                'quote': cheapest,
                'reason': 'Lowest shipping cost',
            },
            'fastest': {
                'quote': fastest,
                'reason': 'Fastest delivery time',
            },
            'recommended': {
                'quote': best_rated,
                'reason': 'Best overall performance',
            },
        },
    }


def score_quote(rate_quote: RateQuote, priority: str) -> Decimal:
    """
    Ranking score of a quote under a priority (higher is better).

    cost:        (500 - rate) / 5 + success_rate * 0.3
    speed:       (10 - days) * 15 + success_rate * 0.5
    reliability: success_rate + rating * 5
    balanced:    (500 - rate) / 10 + (10 - days) * 8 + success_rate * 0.5
    """
    rate = Decimal(rate_quote.rate)
    days = Decimal(rate_quote.estimated_days)
    success = rate_quote.success_rate

    if priority == Priority.COST:
        score = (500 - rate) / 5 + success * Decimal('0.3')
    elif priority == Priority.SPEED:
        score = (10 - days) * 15 + success * Decimal('0.5')
    elif priority == Priority.RELIABILITY:
        score = success + rate_quote.rating * 5
    else:
        score = (500 - rate) / 10 + (10 - days) * 8 + success * Decimal('0.5')

    return score.quantize(Decimal('0.01'), rounding=ROUND_HALF_UP)


def recommend_couriers(request: ShipmentRequest, couriers: Iterable,
                       priority: str = Priority.BALANCED) -> Dict[str, Any]:
    """
    Score every courier for a priority and rank them, best first.

    Rates are scored as prepaid. Unknown priorities are scored as
    `balanced`. Equal scores keep the courier order.
    """
    if priority not in Priority.ALL:
        priority = Priority.BALANCED

    now = timezone.now()
    scored: List[RateQuote] = []
    for courier in couriers:
        rate_quote = quote(courier, request, now=now, is_cod=False)
        rate_quote.score = score_quote(rate_quote, priority)
        scored.append(rate_quote)

    scored.sort(key=lambda q: q.score, reverse=True)

    return {
        'priority': priority,
        'results': scored,
        'top_recommendation': scored[0] if scored else None,
    }


def serialize_comparison(result: Dict[str, Any]) -> Dict[str, Any]:
    """JSON form of a compare_rates result."""
    recommendations = {}
    for name, pick in result['recommendations'].items():
        q = pick['quote']
        entry = {'courier': q.courier, 'reason': pick['reason']}
        if name == 'cheapest':
            entry['rate'] = q.rate
        elif name == 'fastest':
            entry['estimated_days'] = q.estimated_days
        else:
            entry['rating'] = float(q.rating)
            entry['success_rate'] = float(q.success_rate)
        recommendations[name] = entry

    return {
        'comparison': [q.as_dict() for q in result['comparison']],
        'recommendations': recommendations,
    }


def serialize_recommendations(result: Dict[str, Any]) -> Dict[str, Any]:
    top = result['top_recommendation']
    return {
        'priority': result['priority'],
        'results': [q.as_dict() for q in result['results']],
        'top_recommendation': top.as_dict() if top else None,
    }
