from django.urls import path
from .views import WalletAPIView, DepositAPIView, CardTopupAPIView

urlpatterns = [
    path("", WalletAPIView.as_view(), name="wallet"),
    path("deposit/", DepositAPIView.as_view(), name="wallet-deposit"),
    path("topup-card/", CardTopupAPIView.as_view(), name="wallet-topup-card"),
]
