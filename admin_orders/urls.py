from django.urls import path

from . import views

urlpatterns = [
    path("admin_orders/", views.AdminOrderList.as_view(), name="admin-order-list"),
    path("admin_orders/<int:pk>/", views.AdminOrderDetail.as_view(), name="admin-order-detail"),
    path("admin_orders/<int:pk>/status/", views.AdminOrderStatus.as_view(), name="admin-order-status"),
]
