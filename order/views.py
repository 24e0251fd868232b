# order/views.py
from rest_framework import status, permissions
from rest_framework.views import APIView

from storefront.responses import success, EnvelopePagination
from . import services
from .serializers import OrderSerializer, CheckoutSerializer, OrderStatusSerializer


class OrderListCreateAPIView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    def get(self, request):
        """
        GET /api/v1/order/?page=1&page_size=10 -> the user's orders, newest first
        """
        paginator = EnvelopePagination()
        page = paginator.paginate_queryset(services.user_orders(request.user), request, view=self)
        return paginator.get_paginated_response(OrderSerializer(page, many=True).data)

    def post(self, request):
        """
        POST /api/v1/order/
        Body: { "payment_method": "WALLET", "shipping_address": "...", "phone": "...", "notes": "" }
        """
        serializer = CheckoutSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        order = services.checkout(request.user, **serializer.validated_data)
        order = services.get_order(request.user, order.pk)
        return success(
            OrderSerializer(order).data,
            message="Order placed successfully",
            status_code=status.HTTP_201_CREATED,
        )


class OrderDetailAPIView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    def get(self, request, pk):
        return success(OrderSerializer(services.get_order(request.user, pk)).data)

    def put(self, request, pk):
        """
        Admin only. Body: { "status": "SHIPPED" }
        """
        serializer = OrderStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        services.update_order_status(request.user, pk, serializer.validated_data["status"])
        order = services.get_order(request.user, pk)
        return success(OrderSerializer(order).data, message="Order updated")

    patch = put
