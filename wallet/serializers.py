from rest_framework import serializers

from storefront.conf import storefront_setting
from .models import Wallet, Transaction


class TransactionSerializer(serializers.ModelSerializer):
    order_number = serializers.CharField(source="order.order_number", read_only=True, default=None)
    signed_amount = serializers.DecimalField(max_digits=14, decimal_places=2, read_only=True)

    class Meta:
        model = Transaction
        fields = (
            "id", "kind", "amount", "signed_amount", "status", "description",
            "order", "order_number", "card_type", "card_serial", "created_at",
        )
        read_only_fields = fields


class WalletSerializer(serializers.ModelSerializer):
    class Meta:
        model = Wallet
        fields = ("id", "balance", "updated_at")
        read_only_fields = fields


class DepositSerializer(serializers.Serializer):
    amount = serializers.DecimalField(max_digits=14, decimal_places=2)


class CardTopupSerializer(serializers.Serializer):
    card_type = serializers.CharField()
    card_serial = serializers.CharField(min_length=10, max_length=64, error_messages={
        "min_length": "Invalid card serial",
    })
    card_code = serializers.CharField(min_length=10, max_length=64, error_messages={
        "min_length": "Invalid card code",
    })

    def validate_card_type(self, value):
        value = value.strip().upper()
        if value not in storefront_setting("CARD_TYPES"):
            raise serializers.ValidationError("Invalid card type")
        return value
