"""
Rate Engine for CourierDesk

Computes a courier's shipping rate and delivery estimate for one parcel.
"""

import logging
from datetime import datetime, timedelta
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Optional

from django.utils import timezone

from core.exceptions import InvalidInput
from logistics.models import ServiceType

logger = logging.getLogger(__name__)


class RateEngine:
    """
    Rate calculation engine.

    Formula:
        rate = (base_rate + weight * weight_rate) * service_multiplier
        rate += rate * fuel_surcharge / 100
        rate += cod_charges            (cash on delivery only)
        rate = round_half_up(rate)

    All arithmetic is done in Decimal so identical inputs always
    yield the same integer.
    """

    ECONOMY_MULTIPLIER = Decimal('0.8')

    def clean_weight(self, weight) -> Decimal:
        """Parse a weight in kg; it must be a positive number."""
        if isinstance(weight, bool):
            raise InvalidInput('Weight must be a number')
        try:
            value = Decimal(str(weight))
        except (InvalidOperation, ValueError, TypeError):
            raise InvalidInput('Weight must be a number')
        if not value.is_finite() or value <= 0:
            raise InvalidInput('Weight must be greater than 0')
        return value

    def clean_service_type(self, service_type: str) -> str:
        if service_type not in ServiceType.values:
            raise InvalidInput(f"Unknown service type '{service_type}'")
        return service_type

    def service_multiplier(self, courier, service_type: str) -> Decimal:
        service_type = self.clean_service_type(service_type)
        if service_type == ServiceType.EXPRESS:
            return Decimal(str(courier.express_multiplier))
        if service_type == ServiceType.OVERNIGHT:
            return Decimal(str(courier.overnight_multiplier))
        if service_type == ServiceType.ECONOMY:
            return self.ECONOMY_MULTIPLIER
        return Decimal('1')

    def calculate_rate(self, courier, weight_kg, service_type: str = ServiceType.STANDARD,
                       is_cod: bool = False) -> int:
        """
        Shipping rate for one parcel, in whole currency units.

        Args:
            courier: Courier (or any object with the pricing attributes)
            weight_kg: Parcel weight, must be > 0
            service_type: economy / standard / express / overnight
            is_cod: Add the courier's cash-on-delivery charge

        Raises:
            InvalidInput: non-positive weight or unknown service type
        """
        weight = self.clean_weight(weight_kg)
        multiplier = self.service_multiplier(courier, service_type)

        rate = Decimal(str(courier.base_rate)) + weight * Decimal(str(courier.weight_rate))
        rate *= multiplier

        fuel_surcharge = Decimal(str(courier.fuel_surcharge or 0))
        if fuel_surcharge:
            rate += rate * fuel_surcharge / Decimal('100')

        if is_cod:
            rate += Decimal(str(courier.cod_charges or 0))

        return int(rate.quantize(Decimal('1'), rounding=ROUND_HALF_UP))

    def estimate_delivery(self, courier, service_type: str = ServiceType.STANDARD) -> int:
        """
        Estimated transit time in days (never below 1).

        Express saves a day, overnight is always one day and economy
        adds two days to the courier's average.
        """
        service_type = self.clean_service_type(service_type)
        days = int(courier.avg_delivery_days)

        if service_type == ServiceType.EXPRESS:
            days = max(1, days - 1)
        elif service_type == ServiceType.OVERNIGHT:
            days = 1
        elif service_type == ServiceType.ECONOMY:
            days += 2

        return max(1, days)

    def estimated_delivery_date(self, courier, service_type: str = ServiceType.STANDARD,
                                now: Optional[datetime] = None) -> datetime:
        now = now or timezone.now()
        return now + timedelta(days=self.estimate_delivery(courier, service_type))


# Singleton instance
rate_engine = RateEngine()
