import django.db.models.deletion
import django.utils.timezone
import uuid
from decimal import Decimal
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Courier',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('name', models.CharField(max_length=100, unique=True, verbose_name='Name')),
                ('code', models.CharField(max_length=10, unique=True, verbose_name='Code')),
                ('logo', models.CharField(blank=True, max_length=255, verbose_name='Logo')),
                ('description', models.TextField(blank=True)),
                ('is_active', models.BooleanField(default=True, verbose_name='Active')),
                ('base_rate', models.DecimalField(decimal_places=2, max_digits=10, verbose_name='Base rate')),
                ('weight_rate', models.DecimalField(decimal_places=2, max_digits=10, verbose_name='Rate per kg')),
                ('express_multiplier', models.DecimalField(decimal_places=2, default=Decimal('1.50'), max_digits=5)),
                ('overnight_multiplier', models.DecimalField(decimal_places=2, default=Decimal('2.00'), max_digits=5)),
                ('cod_charges', models.DecimalField(decimal_places=2, default=Decimal('50.00'), max_digits=10, verbose_name='COD charges')),
                ('fuel_surcharge', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=5, verbose_name='Fuel surcharge (%)')),
                ('is_domestic', models.BooleanField(default=True)),
                ('is_international', models.BooleanField(default=False)),
                ('service_pincodes', models.JSONField(blank=True, default=list)),
                ('restricted_pincodes', models.JSONField(blank=True, default=list)),
                ('avg_delivery_days', models.PositiveIntegerField(default=3)),
                ('delivery_success_rate', models.DecimalField(decimal_places=2, default=Decimal('95.00'), max_digits=5, verbose_name='Success rate (%)')),
                ('avg_rating', models.DecimalField(decimal_places=2, default=Decimal('4.00'), max_digits=3)),
                ('support_email', models.EmailField(blank=True, max_length=254)),
                ('support_phone', models.CharField(blank=True, max_length=20)),
                ('website', models.URLField(blank=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'verbose_name': 'Courier',
                'verbose_name_plural': 'Couriers',
                'ordering': ['name'],
            },
        ),
        migrations.CreateModel(
            name='Shipment',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('tracking_id', models.CharField(max_length=40, unique=True, verbose_name='Tracking ID')),
                ('courier_name', models.CharField(blank=True, max_length=100)),
                ('sender_name', models.CharField(max_length=150)),
                ('sender_phone', models.CharField(max_length=20)),
                ('sender_email', models.EmailField(blank=True, max_length=254)),
                ('sender_address', models.TextField()),
                ('sender_city', models.CharField(max_length=100)),
                ('sender_state', models.CharField(blank=True, max_length=100)),
                ('sender_pincode', models.CharField(max_length=10)),
                ('receiver_name', models.CharField(max_length=150)),
                ('receiver_phone', models.CharField(max_length=20)),
                ('receiver_email', models.EmailField(blank=True, max_length=254)),
                ('receiver_address', models.TextField()),
                ('receiver_city', models.CharField(max_length=100)),
                ('receiver_state', models.CharField(blank=True, max_length=100)),
                ('receiver_pincode', models.CharField(max_length=10)),
                ('weight', models.DecimalField(decimal_places=2, max_digits=8, verbose_name='Weight (kg)')),
                ('length', models.DecimalField(blank=True, decimal_places=2, max_digits=8, null=True)),
                ('width', models.DecimalField(blank=True, decimal_places=2, max_digits=8, null=True)),
                ('height', models.DecimalField(blank=True, decimal_places=2, max_digits=8, null=True)),
                ('package_description', models.CharField(blank=True, max_length=255)),
                ('declared_value', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12)),
                ('category', models.CharField(choices=[('documents', 'Documents'), ('electronics', 'Electronics'), ('clothing', 'Clothing'), ('food', 'Food'), ('fragile', 'Fragile'), ('other', 'Other')], default='other', max_length=20)),
                ('service_type', models.CharField(choices=[('economy', 'Economy'), ('standard', 'Standard'), ('express', 'Express'), ('overnight', 'Overnight')], default='standard', max_length=20)),
                ('payment_mode', models.CharField(choices=[('prepaid', 'Prepaid'), ('cod', 'Cash on delivery')], default='prepaid', max_length=20)),
                ('cod_amount', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12)),
                ('shipping_cost', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12)),
                ('insurance_cost', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12)),
                ('total_cost', models.DecimalField(decimal_places=2, default=Decimal('0.00'), editable=False, max_digits=12)),
                ('status', models.CharField(choices=[('pending', 'Pending'), ('confirmed', 'Confirmed'), ('picked_up', 'Picked up'), ('in_transit', 'In transit'), ('out_for_delivery', 'Out for delivery'), ('delivered', 'Delivered'), ('failed', 'Failed'), ('returned', 'Returned'), ('cancelled', 'Cancelled')], db_index=True, default='pending', max_length=20)),
                ('pickup_date', models.DateTimeField(blank=True, null=True)),
                ('expected_delivery_date', models.DateTimeField(blank=True, null=True)),
                ('actual_delivery_date', models.DateTimeField(blank=True, null=True)),
                ('special_instructions', models.TextField(blank=True)),
                ('label_generated', models.BooleanField(default=False)),
                ('label_url', models.CharField(blank=True, max_length=255)),
                ('failure_reason', models.TextField(blank=True)),
                ('attempt_count', models.PositiveIntegerField(default=0)),
                ('created_at', models.DateTimeField(auto_now_add=True, db_index=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('courier', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='shipments', to='logistics.courier')),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='shipments', to=settings.AUTH_USER_MODEL, verbose_name='Owner')),
            ],
            options={
                'verbose_name': 'Shipment',
                'verbose_name_plural': 'Shipments',
                'ordering': ['-created_at'],
                'indexes': [models.Index(fields=['user', 'status'], name='shipment_user_status_idx')],
            },
        ),
        migrations.CreateModel(
            name='TrackingLog',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('tracking_id', models.CharField(db_index=True, max_length=40)),
                ('sequence', models.PositiveIntegerField(default=1)),
                ('status', models.CharField(choices=[('order_created', 'Order created'), ('pending', 'Pending'), ('confirmed', 'Confirmed'), ('pickup_scheduled', 'Pickup scheduled'), ('picked_up', 'Picked up'), ('in_transit', 'In transit'), ('reached_hub', 'Reached hub'), ('out_for_delivery', 'Out for delivery'), ('delivered', 'Delivered'), ('failed_attempt', 'Failed attempt'), ('returned', 'Returned'), ('cancelled', 'Cancelled')], max_length=20)),
                ('description', models.CharField(max_length=255)),
                ('city', models.CharField(blank=True, max_length=100)),
                ('state', models.CharField(blank=True, max_length=100)),
                ('facility', models.CharField(blank=True, max_length=150)),
                ('latitude', models.FloatField(blank=True, null=True)),
                ('longitude', models.FloatField(blank=True, null=True)),
                ('remarks', models.TextField(blank=True)),
                ('updated_by', models.CharField(default='System', max_length=254)),
                ('timestamp', models.DateTimeField(default=django.utils.timezone.now)),
                ('shipment', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='tracking_logs', to='logistics.shipment')),
            ],
            options={
                'verbose_name': 'Tracking log',
                'verbose_name_plural': 'Tracking logs',
                'ordering': ['timestamp', 'sequence'],
                'indexes': [models.Index(fields=['tracking_id', 'timestamp'], name='trackinglog_tid_ts_idx')],
            },
        ),
    ]
