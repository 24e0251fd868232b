from django.db.models import ProtectedError
from rest_framework import viewsets, permissions, status
from rest_framework.filters import OrderingFilter, SearchFilter
from django_filters.rest_framework import DjangoFilterBackend

from storefront.exceptions import CategoryInUseError
from storefront.responses import success, EnvelopePagination
from .models import Product, Category
from .serializers import ProductSerializer, CategorySerializer


class ReadOnlyOrAdmin(permissions.BasePermission):
    def has_permission(self, request, view):
        if request.method in permissions.SAFE_METHODS:
            return True
        return bool(request.user and request.user.is_staff)


class EnvelopeModelViewSet(viewsets.ModelViewSet):
    """ModelViewSet whose responses use the {"success", "data", "message"} envelope."""
    created_message = "Created"
    updated_message = "Updated"
    deleted_message = "Deleted"

    def list(self, request, *args, **kwargs):
        queryset = self.filter_queryset(self.get_queryset())
        page = self.paginate_queryset(queryset)
        if page is not None:
            return self.get_paginated_response(self.get_serializer(page, many=True).data)
        return success(self.get_serializer(queryset, many=True).data)

    def retrieve(self, request, *args, **kwargs):
        return success(self.get_serializer(self.get_object()).data)

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        self.perform_create(serializer)
        return success(serializer.data, message=self.created_message, status_code=status.HTTP_201_CREATED)

    def update(self, request, *args, **kwargs):
        partial = kwargs.pop("partial", False)
        serializer = self.get_serializer(self.get_object(), data=request.data, partial=partial)
        serializer.is_valid(raise_exception=True)
        self.perform_update(serializer)
        return success(serializer.data, message=self.updated_message)

    def destroy(self, request, *args, **kwargs):
        self.perform_destroy(self.get_object())
        return success(message=self.deleted_message)


class CategoryViewSet(EnvelopeModelViewSet):
    queryset = Category.objects.all().order_by("name")
    serializer_class = CategorySerializer
    permission_classes = [ReadOnlyOrAdmin]
    pagination_class = None
    created_message = "Category created"

    def perform_destroy(self, instance):
        # products hold a protected reference to their category
        try:
            instance.delete()
        except ProtectedError:
            raise CategoryInUseError()


class ProductViewSet(EnvelopeModelViewSet):
    serializer_class = ProductSerializer
    permission_classes = [ReadOnlyOrAdmin]
    pagination_class = EnvelopePagination
    filter_backends = [DjangoFilterBackend, OrderingFilter, SearchFilter]

    filterset_fields = {
        "category": ["exact"],
        "category__slug": ["exact"],
        "featured": ["exact"],
        "price": ["gte", "lte"],
    }
    ordering_fields = ["created_at", "price", "name"]
    ordering = ["-created_at"]
    search_fields = ["name", "description"]

    created_message = "Product created"
    updated_message = "Product updated"
    deleted_message = "Product deleted"

    def get_queryset(self):
        qs = Product.objects.select_related("category")
        # shoppers only see what is on sale; admins manage the whole catalog
        if not (self.request.user and self.request.user.is_staff):
            qs = qs.active()
        return qs

    def perform_destroy(self, instance):
        # products referenced by orders are retired instead of deleted
        if instance.order_items.exists():
            instance.active = False
            instance.save(update_fields=["active", "updated_at"])
        else:
            instance.delete()
