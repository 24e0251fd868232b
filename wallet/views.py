from rest_framework.views import APIView
from rest_framework import permissions
from rest_framework.exceptions import NotFound

from storefront.responses import success
from . import services
from .serializers import (
    WalletSerializer,
    TransactionSerializer,
    DepositSerializer,
    CardTopupSerializer,
)


class WalletAPIView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    def get(self, request):
        """
        GET /api/v1/wallet/                          -> balance
        GET /api/v1/wallet/?include_transactions=true -> balance + latest transactions
        """
        wallet = services.get_wallet(request.user)
        if wallet is None:
            raise NotFound("Wallet not found.")

        data = WalletSerializer(wallet).data
        if request.query_params.get("include_transactions") == "true":
            data["transactions"] = TransactionSerializer(
                services.recent_transactions(request.user), many=True
            ).data
        return success(data)


class DepositAPIView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    def post(self, request):
        serializer = DepositSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = services.deposit(request.user, serializer.validated_data["amount"])
        return success(
            {
                "wallet": WalletSerializer(result["wallet"]).data,
                "transaction": TransactionSerializer(result["transaction"]).data,
            },
            message="Deposit successful",
        )


class CardTopupAPIView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    def post(self, request):
        serializer = CardTopupSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = services.redeem_card(request.user, **serializer.validated_data)
        fee_percent = result["fee_rate"] * 100
        return success(
            {
                "wallet": WalletSerializer(result["wallet"]).data,
                "transaction": TransactionSerializer(result["transaction"]).data,
                "face_value": f"{result['face_value']:.2f}",
                "credited_amount": f"{result['credited_amount']:.2f}",
            },
            message=(
                f"Card top-up successful. Face value: {result['face_value']:,.0f} VND. "
                f"Credited: {result['credited_amount']:,.0f} VND (fee {fee_percent:.0f}%)"
            ),
        )
