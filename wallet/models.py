from decimal import Decimal

from django.conf import settings
from django.db import models
from django.db.models import F, Q

User = settings.AUTH_USER_MODEL


class WalletQuerySet(models.QuerySet):
    def credit(self, wallet_id, amount):
        return self.filter(pk=wallet_id).update(balance=F("balance") + amount)

    def debit(self, wallet_id, amount):
        """Conditional debit: matches no row when the balance would go negative."""
        return self.filter(pk=wallet_id, balance__gte=amount).update(balance=F("balance") - amount)


class Wallet(models.Model):
    user = models.OneToOneField(User, on_delete=models.CASCADE, related_name="wallet")
    balance = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = WalletQuerySet.as_manager()

    class Meta:
        constraints = [
            models.CheckConstraint(condition=Q(balance__gte=0), name="wallet_balance_non_negative"),
        ]

    def __str__(self):
        return f"Wallet of {self.user_id} ({self.balance})"


class TransactionQuerySet(models.QuerySet):
    def card_used(self, card_serial, card_code):
        return self.filter(
            kind=Transaction.KIND_CARD_TOPUP, card_serial=card_serial, card_code=card_code
        ).exists()


class Transaction(models.Model):
    """Append-only audit record paired with every wallet balance change."""
    KIND_DEPOSIT = "DEPOSIT"
    KIND_CARD_TOPUP = "CARD_TOPUP"
    KIND_PURCHASE = "PURCHASE"
    KIND_CHOICES = [
        (KIND_DEPOSIT, "Deposit"),
        (KIND_CARD_TOPUP, "Card top-up"),
        (KIND_PURCHASE, "Purchase"),
    ]
    # kinds that take money out of the wallet
    DEBIT_KINDS = {KIND_PURCHASE}

    STATUS_PENDING = "PENDING"
    STATUS_COMPLETED = "COMPLETED"
    STATUS_FAILED = "FAILED"
    STATUS_CHOICES = [
        (STATUS_PENDING, "Pending"),
        (STATUS_COMPLETED, "Completed"),
        (STATUS_FAILED, "Failed"),
    ]

    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name="transactions")
    kind = models.CharField(max_length=20, choices=KIND_CHOICES)
    amount = models.DecimalField(max_digits=14, decimal_places=2)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_COMPLETED)
    description = models.CharField(max_length=255, blank=True, default="")
    order = models.ForeignKey(
        "order.Order", on_delete=models.PROTECT, null=True, blank=True, related_name="transactions"
    )
    card_type = models.CharField(max_length=20, blank=True, default="")
    card_serial = models.CharField(max_length=64, blank=True, default="")
    card_code = models.CharField(max_length=64, blank=True, default="")
    created_at = models.DateTimeField(auto_now_add=True)

    objects = TransactionQuerySet.as_manager()

    class Meta:
        ordering = ["-created_at", "-id"]
        constraints = [
            models.UniqueConstraint(
                fields=["card_serial", "card_code"],
                condition=Q(kind="CARD_TOPUP"),
                name="transaction_card_redeemed_once",
            ),
            models.CheckConstraint(condition=Q(amount__gt=0), name="transaction_amount_positive"),
        ]

    def __str__(self):
        return f"{self.kind} {self.amount} for {self.user_id}"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValueError("Transactions are append-only")
        super().save(*args, **kwargs)

    @property
    def signed_amount(self):
        return -self.amount if self.kind in self.DEBIT_KINDS else self.amount
