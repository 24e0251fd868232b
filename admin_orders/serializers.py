# admin_orders/serializers.py
from rest_framework import serializers
from django.contrib.auth import get_user_model

from order.models import Order
from order.serializers import OrderItemSerializer

User = get_user_model()


class UserSummarySerializer(serializers.ModelSerializer):
    class Meta:
        model = User
        fields = ["id", "name", "email"]


class AdminOrderSerializer(serializers.ModelSerializer):
    items = OrderItemSerializer(many=True, read_only=True)
    user = UserSummarySerializer(read_only=True)

    class Meta:
        model = Order
        fields = [
            "id",
            "order_number",
            "user",
            "total_amount",
            "payment_method",
            "status",
            "shipping_address",
            "phone",
            "notes",
            "created_at",
            "updated_at",
            "items",
        ]
        # status changes go through the status endpoint; amounts never change
        read_only_fields = [
            "id", "order_number", "user", "total_amount", "payment_method",
            "status", "created_at", "updated_at", "items",
        ]
