"""
Django management command to seed the courier partners.

Usage:
    python manage.py seed_couriers
    python manage.py seed_couriers --with-users --password <password>
"""
from decimal import Decimal

from django.core.management.base import BaseCommand
from django.db import transaction

from core.models import User, UserRole
from logistics.models import Courier


COURIERS = [
    {
        'name': 'Delhivery',
        'code': 'DEL',
        'logo': '/couriers/delhivery.png',
        'description': "India's largest fully-integrated logistics provider",
        'base_rate': Decimal('40'),
        'weight_rate': Decimal('25'),
        'express_multiplier': Decimal('1.5'),
        'overnight_multiplier': Decimal('2.2'),
        'cod_charges': Decimal('35'),
        'fuel_surcharge': Decimal('15'),
        'avg_delivery_days': 3,
        'delivery_success_rate': Decimal('94'),
        'avg_rating': Decimal('4.2'),
        'support_email': 'support@delhivery.com',
        'support_phone': '1800-123-4567',
        'website': 'https://www.delhivery.com',
    },
    {
        'name': 'BlueDart',
        'code': 'BLU',
        'logo': '/couriers/bluedart.png',
        'description': "South Asia's premier courier and logistics company",
        'base_rate': Decimal('55'),
        'weight_rate': Decimal('30'),
        'express_multiplier': Decimal('1.4'),
        'overnight_multiplier': Decimal('2.0'),
        'cod_charges': Decimal('45'),
        'fuel_surcharge': Decimal('18'),
        'avg_delivery_days': 2,
        'delivery_success_rate': Decimal('97'),
        'avg_rating': Decimal('4.5'),
        'support_email': 'support@bluedart.com',
        'support_phone': '1860-233-1234',
        'website': 'https://www.bluedart.com',
    },
    {
        'name': 'DTDC',
        'code': 'DTD',
        'logo': '/couriers/dtdc.png',
        'description': 'Delivering happiness across India',
        'base_rate': Decimal('35'),
        'weight_rate': Decimal('20'),
        'express_multiplier': Decimal('1.6'),
        'overnight_multiplier': Decimal('2.5'),
        'cod_charges': Decimal('30'),
        'fuel_surcharge': Decimal('12'),
        'avg_delivery_days': 4,
        'delivery_success_rate': Decimal('91'),
        'avg_rating': Decimal('3.9'),
        'support_email': 'support@dtdc.com',
        'support_phone': '1860-208-3832',
        'website': 'https://www.dtdc.com',
    },
]

DEMO_USERS = [
    ('admin@courier.com', 'Admin User', UserRole.ADMIN),
    ('staff@courier.com', 'Staff Member', UserRole.STAFF),
    ('user@business.com', 'Business Owner', UserRole.BUSINESS),
]


class Command(BaseCommand):
    help = 'Seed courier partners (and optionally demo users)'

    def add_arguments(self, parser):
        parser.add_argument('--with-users', action='store_true', help='Also create demo users')
        parser.add_argument('--password', default='password123', help='Password for demo users')

    @transaction.atomic
    def handle(self, *args, **options):
        created_count = 0

        for data in COURIERS:
            defaults = {k: v for k, v in data.items() if k != 'code'}
            courier, created = Courier.objects.update_or_create(code=data['code'], defaults=defaults)
            if created:
                created_count += 1
                self.stdout.write(self.style.SUCCESS(f'✅ Created: {courier.name}'))
            else:
                self.stdout.write(f'⏭️  Updated: {courier.name}')

        if options['with_users']:
            for email, full_name, role in DEMO_USERS:
                if User.objects.filter(email=email).exists():
                    self.stdout.write(f'⏭️  Exists: {email}')
                    continue
                User.objects.create_user(
                    email=email,
                    password=options['password'],
                    full_name=full_name,
                    role=role,
                    is_staff=role == UserRole.ADMIN,
                )
                self.stdout.write(self.style.SUCCESS(f'✅ Created user: {email} ({role})'))

        self.stdout.write('')
        self.stdout.write(self.style.SUCCESS(f'🚚 Couriers created: {created_count}'))
        self.stdout.write(self.style.SUCCESS(f'🚚 Couriers in database: {Courier.objects.count()}'))
