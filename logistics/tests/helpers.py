"""
Shared builders for logistics tests.
"""

from decimal import Decimal

from core.models import User, UserRole
from logistics.models import Courier
from logistics.services.lifecycle import shipment_lifecycle


def make_user(email='shipper@example.com', role=UserRole.BUSINESS, **extra):
    return User.objects.create_user(
        email=email, password='S3cure-pass!', full_name='Test User', role=role, **extra
    )


def make_courier(name='Delhivery', code='DEL', **overrides):
    fields = {
        'base_rate': Decimal('40'),
        'weight_rate': Decimal('25'),
        'fuel_surcharge': Decimal('15'),
        'cod_charges': Decimal('35'),
        'express_multiplier': Decimal('1.5'),
        'overnight_multiplier': Decimal('2.0'),
        'avg_delivery_days': 3,
        'delivery_success_rate': Decimal('95'),
        'avg_rating': Decimal('4.2'),
    }
    fields.update(overrides)
    return Courier.objects.create(name=name, code=code, **fields)


def shipment_data(courier, **overrides):
    data = {
        'courier': courier,
        'sender_name': 'Acme Traders',
        'sender_phone': '9876543210',
        'sender_address': '12 MG Road',
        'sender_city': 'Bengaluru',
        'sender_state': 'Karnataka',
        'sender_pincode': '560001',
        'receiver_name': 'Ravi Kumar',
        'receiver_phone': '9123456780',
        'receiver_address': '44 Park Street',
        'receiver_city': 'Kolkata',
        'receiver_state': 'West Bengal',
        'receiver_pincode': '700016',
        'weight': Decimal('2'),
    }
    data.update(overrides)
    return data


def make_shipment(owner, courier, **overrides):
    return shipment_lifecycle.create_shipment(owner, shipment_data(courier, **overrides))
