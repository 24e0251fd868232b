from django.db.models import Q
from rest_framework.views import APIView
from rest_framework.permissions import IsAdminUser
from rest_framework.exceptions import NotFound

from order import services
from order.models import Order
from order.serializers import OrderStatusSerializer
from storefront.responses import success, EnvelopePagination
from .serializers import AdminOrderSerializer


class AdminOrderList(APIView):
    permission_classes = [IsAdminUser]

    ALLOWED_ORDERING = {
        "created_at", "-created_at",
        "status", "-status",
        "total_amount", "-total_amount",
    }

    def get(self, request):
        """
        GET /api/v1/admin/admin_orders/?page=1&page_size=10&search=foo&status=PENDING&ordering=-created_at
        """
        qs = Order.objects.select_related("user").prefetch_related("items__product").all()

        search = request.query_params.get("search")
        if search:
            # search by user email or name, order number; id only when numeric
            q = (
                Q(user__email__icontains=search)
                | Q(user__name__icontains=search)
                | Q(order_number__icontains=search)
            )
            if search.isdigit():
                q |= Q(id=int(search))
            qs = qs.filter(q)

        order_status = request.query_params.get("status")
        if order_status:
            qs = qs.filter(status=order_status)

        ordering = request.query_params.get("ordering")
        if ordering and ordering in self.ALLOWED_ORDERING:
            qs = qs.order_by(ordering)

        paginator = EnvelopePagination()
        page = paginator.paginate_queryset(qs, request, view=self)
        return paginator.get_paginated_response(AdminOrderSerializer(page, many=True).data)


class AdminOrderDetail(APIView):
    permission_classes = [IsAdminUser]

    def get_object(self, pk):
        order = Order.objects.select_related("user").prefetch_related("items__product").filter(pk=pk).first()
        if order is None:
            raise NotFound("Order not found.")
        return order

    def get(self, request, pk):
        return success(AdminOrderSerializer(self.get_object(pk)).data)

    def patch(self, request, pk):
        """
        Partial update of shipping fields.
        Example body: { "shipping_address": "...", "phone": "..." }
        """
        serializer = AdminOrderSerializer(self.get_object(pk), data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        serializer.save()
        return success(serializer.data, message="Order updated")


class AdminOrderStatus(APIView):
    permission_classes = [IsAdminUser]

    def patch(self, request, pk):
        """
        Patch only the order status.
        Body: { "status": "SHIPPED" }
        """
        serializer = OrderStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        order = services.update_order_status(request.user, pk, serializer.validated_data["status"])
        return success(AdminOrderSerializer(order).data, message="Order status updated")
