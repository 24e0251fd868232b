from django.db import models
from django.db.models import Q
from django.conf import settings

from product.models import Product

User = settings.AUTH_USER_MODEL


class Order(models.Model):
    PAYMENT_WALLET = "WALLET"
    PAYMENT_CARD = "CARD"
    PAYMENT_COD = "COD"
    PAYMENT_METHOD_CHOICES = [
        (PAYMENT_WALLET, "Wallet"),
        (PAYMENT_CARD, "Card"),
        (PAYMENT_COD, "Cash on delivery"),
    ]

    STATUS_PENDING = "PENDING"
    STATUS_PROCESSING = "PROCESSING"
    STATUS_SHIPPED = "SHIPPED"
    STATUS_DELIVERED = "DELIVERED"
    STATUS_CANCELLED = "CANCELLED"
    ORDER_STATUS_CHOICES = [
        (STATUS_PENDING, "Pending"),
        (STATUS_PROCESSING, "Processing"),
        (STATUS_SHIPPED, "Shipped"),
        (STATUS_DELIVERED, "Delivered"),
        (STATUS_CANCELLED, "Cancelled"),
    ]

    # forward-only; DELIVERED and CANCELLED are terminal
    ALLOWED_TRANSITIONS = {
        STATUS_PENDING: {STATUS_PROCESSING, STATUS_CANCELLED},
        STATUS_PROCESSING: {STATUS_SHIPPED, STATUS_DELIVERED, STATUS_CANCELLED},
        STATUS_SHIPPED: {STATUS_DELIVERED, STATUS_CANCELLED},
        STATUS_DELIVERED: set(),
        STATUS_CANCELLED: set(),
    }

    user = models.ForeignKey(User, on_delete=models.PROTECT, related_name="orders")
    order_number = models.CharField(max_length=32, unique=True)
    status = models.CharField(
        max_length=20, choices=ORDER_STATUS_CHOICES, default=STATUS_PENDING
    )
    payment_method = models.CharField(max_length=10, choices=PAYMENT_METHOD_CHOICES)
    total_amount = models.DecimalField(max_digits=14, decimal_places=2)

    shipping_address = models.TextField()
    phone = models.CharField(max_length=20)
    notes = models.TextField(blank=True, default="")

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at", "-id"]
        constraints = [
            models.CheckConstraint(condition=Q(total_amount__gte=0), name="order_total_non_negative"),
        ]

    def __str__(self):
        return f"Order {self.order_number}"

    def can_transition_to(self, new_status):
        return new_status in self.ALLOWED_TRANSITIONS.get(self.status, set())


class OrderItem(models.Model):
    """Snapshot of a purchased line; price is the effective price at checkout."""
    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name="items")
    product = models.ForeignKey(Product, on_delete=models.PROTECT, related_name="order_items")
    quantity = models.PositiveIntegerField()
    price = models.DecimalField(max_digits=14, decimal_places=2)  # price at time of purchase

    class Meta:
        ordering = ["id"]
        constraints = [
            models.CheckConstraint(condition=Q(quantity__gte=1), name="order_item_quantity_positive"),
        ]

    def __str__(self):
        return f"{self.product.name} x {self.quantity}"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValueError("Order items cannot be changed once created")
        super().save(*args, **kwargs)

    @property
    def line_total(self):
        return self.price * self.quantity
