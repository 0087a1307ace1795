"""
Core App Serializers - Users, Preferences & System Logs
"""

from rest_framework import serializers
from django.contrib.auth import get_user_model
from django.contrib.auth.password_validation import validate_password

from .models import SystemLog, UserRole

User = get_user_model()


class UserSerializer(serializers.ModelSerializer):
    """Serializer for User model (read operations)."""

    class Meta:
        model = User
        fields = [
            'id', 'email', 'full_name', 'company', 'phone', 'role',
            'is_active', 'last_login', 'date_joined'
        ]
        read_only_fields = ['id', 'email', 'role', 'is_active', 'last_login', 'date_joined']


class UserCreateSerializer(serializers.ModelSerializer):
    """Serializer for user registration. New accounts are always business users."""

    password = serializers.CharField(
        write_only=True,
        required=True,
        validators=[validate_password]
    )

    class Meta:
        model = User
        fields = ['email', 'password', 'full_name', 'company', 'phone']

    def create(self, validated_data):
        return User.objects.create_user(
            email=validated_data['email'],
            password=validated_data['password'],
            full_name=validated_data.get('full_name', ''),
            company=validated_data.get('company', ''),
            phone=validated_data.get('phone', ''),
            role=UserRole.BUSINESS,
        )


class LoginSerializer(serializers.Serializer):
    email = serializers.EmailField()
    password = serializers.CharField(write_only=True)


class ProfileUpdateSerializer(serializers.ModelSerializer):
    class Meta:
        model = User
        fields = ['full_name', 'company', 'phone']


class PasswordChangeSerializer(serializers.Serializer):
    current_password = serializers.CharField(write_only=True)
    new_password = serializers.CharField(write_only=True, validators=[validate_password])

    def validate_current_password(self, value):
        user = self.context['request'].user
        if not user.check_password(value):
            raise serializers.ValidationError('Current password is incorrect')
        return value


class AdminUserSerializer(serializers.ModelSerializer):
    """Admin view of a user, role and active flag are writable."""

    shipment_count = serializers.IntegerField(read_only=True, required=False)

    class Meta:
        model = User
        fields = [
            'id', 'email', 'full_name', 'company', 'phone', 'role',
            'is_active', 'last_login', 'date_joined', 'shipment_count'
        ]
        read_only_fields = ['id', 'email', 'last_login', 'date_joined']


class SystemLogSerializer(serializers.ModelSerializer):
    class Meta:
        model = SystemLog
        fields = [
            'id', 'action', 'module', 'user', 'user_email', 'description',
            'details', 'ip_address', 'user_agent', 'status', 'error_message',
            'created_at'
        ]
        read_only_fields = fields
