"""Serializers for the core app.

Contains serializers for Role, Clinic and User plus the JWT login/refresh
payloads.
"""

from django.contrib.auth import authenticate
from rest_framework import serializers
from rest_framework_simplejwt.exceptions import TokenError
from rest_framework_simplejwt.tokens import RefreshToken

from physio_backend.core.models import Clinic, Role, User


# -----------------------------------------------------------------------------
# Role / Clinic Serializers
# -----------------------------------------------------------------------------


class RoleSerializer(serializers.ModelSerializer):
    """Read-only serializer for Role model."""

    class Meta:
        model = Role
        fields = ['id', 'name', 'label']
        read_only_fields = fields


class ClinicSerializer(serializers.ModelSerializer):
    class Meta:
        model = Clinic
        fields = ['id', 'code', 'name', 'email', 'phone']
        read_only_fields = fields


# -----------------------------------------------------------------------------
# User Serializers
# -----------------------------------------------------------------------------


class UserMeSerializer(serializers.ModelSerializer):
    """Serializer for the /auth/me/ endpoint.

    Returns current user info with role and clinic details.
    """

    role = RoleSerializer(read_only=True)
    clinic = ClinicSerializer(read_only=True)

    class Meta:
        model = User
        fields = [
            'id',
            'username',
            'email',
            'first_name',
            'last_name',
            'is_active',
            'calendar_color',
            'role',
            'clinic',
        ]
        read_only_fields = fields


# -----------------------------------------------------------------------------
# Authentication Serializers
# -----------------------------------------------------------------------------


class LoginSerializer(serializers.Serializer):
    """Validates credentials and returns the user. Accounts without a role are refused."""

    username = serializers.CharField()
    password = serializers.CharField(write_only=True)

    def validate(self, attrs):
        user = authenticate(username=attrs['username'], password=attrs['password'])
        if user is None or not user.is_active:
            raise serializers.ValidationError('Invalid credentials.')
        if user.role_id is None:
            raise serializers.ValidationError('No role assigned to this account. Contact an administrator.')

        attrs['user'] = user
        return attrs


class RefreshSerializer(serializers.Serializer):
    refresh = serializers.CharField()

    def validate_refresh(self, value):
        try:
            RefreshToken(value)
        except TokenError as e:
            raise serializers.ValidationError(f'Invalid or expired refresh token: {e}')
        return value
