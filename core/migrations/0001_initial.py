import django.db.models.deletion
import uuid
from django.conf import settings
from django.db import migrations, models

import core.models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('auth', '0012_alter_user_first_name_max_length'),
    ]

    operations = [
        migrations.CreateModel(
            name='User',
            fields=[
                ('password', models.CharField(max_length=128, verbose_name='password')),
                ('last_login', models.DateTimeField(blank=True, null=True, verbose_name='last login')),
                ('is_superuser', models.BooleanField(default=False, help_text='Designates that this user has all permissions without explicitly assigning them.', verbose_name='superuser status')),
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('email', models.EmailField(max_length=254, unique=True, verbose_name='Email')),
                ('full_name', models.CharField(blank=True, max_length=150, verbose_name='Full name')),
                ('company', models.CharField(blank=True, max_length=150, verbose_name='Company')),
                ('phone', models.CharField(blank=True, max_length=20, verbose_name='Phone')),
                ('role', models.CharField(choices=[('business', 'Business'), ('staff', 'Staff'), ('admin', 'Administrator')], default='business', max_length=20, verbose_name='Role')),
                ('preferences', models.JSONField(blank=True, default=dict, verbose_name='Preferences')),
                ('is_active', models.BooleanField(default=True)),
                ('is_staff', models.BooleanField(default=False)),
                ('date_joined', models.DateTimeField(auto_now_add=True)),
                ('groups', models.ManyToManyField(blank=True, help_text='The groups this user belongs to. A user will get all permissions granted to each of their groups.', related_name='user_set', related_query_name='user', to='auth.group', verbose_name='groups')),
                ('user_permissions', models.ManyToManyField(blank=True, help_text='Specific permissions for this user.', related_name='user_set', related_query_name='user', to='auth.permission', verbose_name='user permissions')),
            ],
            options={
                'verbose_name': 'User',
                'verbose_name_plural': 'Users',
                'ordering': ['-date_joined'],
            },
            managers=[
                ('objects', core.models.UserManager()),
            ],
        ),
        migrations.CreateModel(
            name='SystemLog',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('action', models.CharField(choices=[('login', 'Login'), ('logout', 'Logout'), ('create', 'Create'), ('update', 'Update'), ('delete', 'Delete'), ('bulk_upload', 'Bulk upload'), ('export', 'Export'), ('api_call', 'API call'), ('error', 'Error'), ('system', 'System'), ('delete_request', 'Deletion request')], max_length=20)),
                ('module', models.CharField(choices=[('auth', 'Auth'), ('shipment', 'Shipment'), ('courier', 'Courier'), ('tracking', 'Tracking'), ('user', 'User'), ('analytics', 'Analytics'), ('admin', 'Admin'), ('system', 'System'), ('settings', 'Settings'), ('security', 'Security')], max_length=20)),
                ('user_email', models.CharField(blank=True, max_length=254)),
                ('description', models.TextField()),
                ('details', models.JSONField(blank=True, default=dict)),
                ('ip_address', models.GenericIPAddressField(blank=True, null=True)),
                ('user_agent', models.CharField(blank=True, max_length=255)),
                ('status', models.CharField(choices=[('success', 'Success'), ('failed', 'Failed'), ('partial', 'Partial'), ('pending', 'Pending')], default='success', max_length=20)),
                ('error_message', models.TextField(blank=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('user', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='system_logs', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'System log',
                'verbose_name_plural': 'System logs',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['user', 'action'], name='systemlog_user_action_idx'),
                    models.Index(fields=['module'], name='systemlog_module_idx'),
                ],
            },
        ),
    ]
