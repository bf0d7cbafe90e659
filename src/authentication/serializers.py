"""Serializers for authentication flows (register, login, profile)."""

from django.contrib.auth import get_user_model
from rest_framework import serializers

from . import services

User = get_user_model()


class RegisterSerializer(serializers.Serializer):
    """Validate and create an author account."""

    email = serializers.EmailField()
    password = serializers.CharField(write_only=True, min_length=8)
    repeat_password = serializers.CharField(write_only=True, min_length=8)
    name = serializers.CharField(required=False, allow_blank=True, max_length=150)

    @staticmethod
    def validate_email(value):
        if User.objects.filter(email__iexact=value).exists():
            raise serializers.ValidationError("Email already in use")
        return value

    def validate(self, attrs):
        if attrs.get("password") != attrs.get("repeat_password"):
            raise serializers.ValidationError({"repeat_password": "Passwords do not match"})
        return attrs

    def create(self, validated_data):
        validated_data.pop("repeat_password")
        return User.objects.create_user(**validated_data)


class LoginSerializer(serializers.Serializer):
    email = serializers.EmailField()
    password = serializers.CharField(write_only=True)

    def validate(self, attrs):
        attrs["user"] = services.authenticate(attrs["email"], attrs["password"])
        return attrs


class RefreshSerializer(serializers.Serializer):
    refresh = serializers.CharField(required=False, allow_blank=True)


class LogoutSerializer(serializers.Serializer):
    """Optional refresh token revoked alongside the bearer access token."""

    refresh = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class UserDetailSerializer(serializers.ModelSerializer):
    """Profile payload; ``display_name`` is what article bylines show."""

    display_name = serializers.CharField(read_only=True)

    class Meta:
        model = User
        fields = ["id", "email", "name", "display_name", "date_joined"]
        read_only_fields = fields


class ProfileUpdateSerializer(serializers.ModelSerializer):
    """Patchable fields for /auth/me updates."""

    class Meta:
        model = User
        fields = ["name"]
        extra_kwargs = {"name": {"required": False, "allow_blank": True}}

    def validate(self, attrs):
        if "email" in getattr(self, "initial_data", {}):
            raise serializers.ValidationError({"email": "Email cannot be updated via this endpoint"})
        return super().validate(attrs)


__all__ = [
    "RegisterSerializer",
    "LoginSerializer",
    "RefreshSerializer",
    "LogoutSerializer",
    "UserDetailSerializer",
    "ProfileUpdateSerializer",
]
