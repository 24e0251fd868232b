# order/serializers.py
from rest_framework import serializers

from product.serializers import ProductMiniSerializer
from .models import Order, OrderItem


class OrderItemSerializer(serializers.ModelSerializer):
    product = ProductMiniSerializer(read_only=True)
    line_total = serializers.DecimalField(max_digits=14, decimal_places=2, read_only=True)

    class Meta:
        model = OrderItem
        fields = ["id", "product", "quantity", "price", "line_total"]


class OrderSerializer(serializers.ModelSerializer):
    items = OrderItemSerializer(many=True, read_only=True)

    class Meta:
        model = Order
        fields = [
            "id",
            "order_number",
            "status",
            "payment_method",
            "total_amount",
            "shipping_address",
            "phone",
            "notes",
            "items",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields  # all are read-only for output only


class CheckoutSerializer(serializers.Serializer):
    payment_method = serializers.ChoiceField(
        choices=Order.PAYMENT_METHOD_CHOICES,
        error_messages={"invalid_choice": "Invalid payment method"},
    )
    shipping_address = serializers.CharField(min_length=10, error_messages={
        "min_length": "Shipping address must be at least 10 characters",
    })
    phone = serializers.CharField(min_length=10, max_length=20, error_messages={
        "min_length": "Invalid phone number",
    })
    notes = serializers.CharField(required=False, allow_blank=True, default="")


class OrderStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(
        choices=Order.ORDER_STATUS_CHOICES,
        error_messages={"invalid_choice": "Invalid status"},
    )
