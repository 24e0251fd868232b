from django.urls import path
from .views import CartAPIView, CartItemDetailAPIView

urlpatterns = [
    path("", CartAPIView.as_view(), name="cart"),
    path("<int:pk>/", CartItemDetailAPIView.as_view(), name="cart-item-detail"),
]
