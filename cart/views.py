from rest_framework.views import APIView
from rest_framework import status, permissions

from storefront.responses import success
from . import services
from .serializers import (
    CartSummarySerializer,
    CartItemSerializer,
    AddToCartSerializer,
    UpdateCartItemSerializer,
)


def _cart_payload(user):
    return CartSummarySerializer(services.cart_summary(user)).data


class CartAPIView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    def get(self, request, format=None):
        return success(_cart_payload(request.user))

    def post(self, request, format=None):
        """
        Expected payload:
        {
            "product_id": <id>,
            "quantity": <int>
        }
        """
        serializer = AddToCartSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        services.add_item(
            request.user,
            serializer.validated_data["product_id"],
            serializer.validated_data["quantity"],
        )
        return success(
            _cart_payload(request.user),
            message="Added to cart",
            status_code=status.HTTP_201_CREATED,
        )

    def delete(self, request, format=None):
        services.clear_cart(request.user)
        return success(_cart_payload(request.user), message="Cart cleared")


class CartItemDetailAPIView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    def put(self, request, pk, format=None):
        serializer = UpdateCartItemSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        item = services.set_quantity(request.user, pk, serializer.validated_data["quantity"])
        if item is None:
            return success(_cart_payload(request.user), message="Item removed from cart")
        return success(CartItemSerializer(item).data, message="Cart updated")

    patch = put

    def delete(self, request, pk, format=None):
        services.remove_item(request.user, pk)
        return success(_cart_payload(request.user), message="Item removed from cart")
