"""
URL configuration for storefront project.

The `urlpatterns` list routes URLs to views. For more information please see:
    https://docs.djangoproject.com/en/5.2/topics/http/urls/
"""
from django.contrib import admin
from django.urls import path, include
from drf_spectacular.views import (
    SpectacularAPIView,
    SpectacularRedocView,
    SpectacularSwaggerView,
)

urlpatterns = [
    path("admin/", admin.site.urls),
    path("api/v1/user/", include("user.urls")),
    path("api/v1/", include("product.urls")),
    path("api/v1/cart/", include("cart.urls")),
    path("api/v1/order/", include("order.urls")),
    path("api/v1/wallet/", include("wallet.urls")),
    path("api/v1/admin/", include("admin_orders.urls")),
    path("api/v1/schema/", SpectacularAPIView.as_view(), name="schema"),#OpenAPI JSON/YAML
    path("api/v1/schema/swagger-ui/", SpectacularSwaggerView.as_view(url_name="schema"), name="swagger-ui"),
    path("api/v1/schema/redoc/", SpectacularRedocView.as_view(url_name="schema"), name="redoc"),
]
