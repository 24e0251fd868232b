# user/serializers.py
from django.db import transaction
from rest_framework import serializers

from cart.models import Cart
from wallet.models import Wallet
from .models import User


class RegisterSerializer(serializers.ModelSerializer):
    password = serializers.CharField(write_only=True, min_length=6, error_messages={
        "min_length": "Password must be at least 6 characters",
    })
    name = serializers.CharField(min_length=2, max_length=150, error_messages={
        "min_length": "Name must be at least 2 characters",
    })

    class Meta:
        model = User
        fields = ["email", "password", "name", "phone_number", "address"]
        extra_kwargs = {
            "phone_number": {"required": False},
            "address": {"required": False},
        }

    def validate_email(self, value):
        value = User.objects.normalize_email(value)
        if User.objects.filter(email__iexact=value).exists():
            raise serializers.ValidationError("Email already exists")
        return value

    @transaction.atomic
    def create(self, validated_data):
        # every account starts with an empty wallet and an empty cart
        password = validated_data.pop("password")
        user = User.objects.create_user(password=password, **validated_data)
        Wallet.objects.create(user=user)
        Cart.objects.create(user=user)
        return user


class LoginSerializer(serializers.Serializer):
    email = serializers.EmailField()
    password = serializers.CharField()


class UserSerializer(serializers.ModelSerializer):
    class Meta:
        model = User
        fields = ["id", "email", "name", "phone_number", "address", "role"]


class ProfileSerializer(serializers.ModelSerializer):
    balance = serializers.DecimalField(
        source="wallet.balance", max_digits=14, decimal_places=2, read_only=True
    )

    class Meta:
        model = User
        fields = ["id", "email", "name", "phone_number", "address", "role", "balance"]
        read_only_fields = ["id", "email", "role", "balance"]
