from rest_framework import serializers

from product.serializers import ProductMiniSerializer
from .models import CartItem


class CartItemSerializer(serializers.ModelSerializer):
    product = ProductMiniSerializer(read_only=True)
    line_total = serializers.DecimalField(max_digits=14, decimal_places=2, read_only=True)

    class Meta:
        model = CartItem
        fields = ("id", "product", "quantity", "line_total", "added_at")
        read_only_fields = fields


class CartSummarySerializer(serializers.Serializer):
    id = serializers.SerializerMethodField()
    items = CartItemSerializer(many=True, read_only=True)
    subtotal = serializers.DecimalField(max_digits=14, decimal_places=2, read_only=True)
    item_count = serializers.IntegerField(read_only=True)

    def get_id(self, obj):
        cart = obj["cart"]
        return cart.id if cart else None


class AddToCartSerializer(serializers.Serializer):
    product_id = serializers.IntegerField(error_messages={"required": "product_id is required"})
    quantity = serializers.IntegerField(min_value=1, default=1, error_messages={
        "min_value": "Quantity must be at least 1",
    })


class UpdateCartItemSerializer(serializers.Serializer):
    quantity = serializers.IntegerField(min_value=0, error_messages={
        "min_value": "Quantity must be 0 or more",
    })
