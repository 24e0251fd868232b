# order/services.py
"""
Checkout and order status changes.

``checkout`` turns the user's cart into an order in a single database
transaction: the order and its item snapshots are written, stock is
decremented, a wallet payment is debited and recorded, and the cart is
emptied. Any failure rolls all of it back.
"""
import logging
import string
from decimal import Decimal

from django.db import transaction, IntegrityError
from django.utils import timezone
from django.utils.crypto import get_random_string
from rest_framework.exceptions import NotFound, ValidationError

from cart.models import Cart, CartItem
from cart.services import cart_items
from product.models import Product
from storefront.exceptions import (
    EmptyCartError,
    ProductUnavailableError,
    InsufficientStockError,
    InsufficientBalanceError,
    ConflictError,
    OwnershipError,
)
from storefront.identity import require_user, require_admin
from wallet.models import Wallet, Transaction
from .models import Order, OrderItem
from .notifications import notify_status_change

logger = logging.getLogger(__name__)

ORDER_NUMBER_ATTEMPTS = 5


def generate_order_number():
    """ORD + local timestamp + random suffix, e.g. ORD2410191530125831."""
    for _ in range(ORDER_NUMBER_ATTEMPTS):
        number = "ORD{}{}".format(
            timezone.localtime().strftime("%y%m%d%H%M%S"),
            get_random_string(4, allowed_chars=string.digits),
        )
        if not Order.objects.filter(order_number=number).exists():
            return number
    raise ConflictError("Could not allocate an order number. Please retry.")


def create_order(**fields):
    """
    Insert the order under a fresh order number. A number taken by a concurrent
    checkout between the lookup and the insert is replaced and the insert retried.
    """
    for _ in range(ORDER_NUMBER_ATTEMPTS):
        number = generate_order_number()
        try:
            with transaction.atomic():
                return Order.objects.create(order_number=number, **fields)
        except IntegrityError:
            logger.warning("Order number %s already taken, drawing another", number)
    raise ConflictError("Could not allocate an order number. Please retry.")


def price_lines(items, products):
    """
    Validate cart lines against the locked product rows and price them.
    Returns ([(product, quantity, unit_price)], total).
    """
    lines = []
    total = Decimal("0")
    for item in items:
        product = products.get(item.product_id)
        if product is None or not product.active:
            raise ProductUnavailableError(product or item.product)
        if product.stock < item.quantity:
            raise InsufficientStockError(product)

        unit_price = product.effective_price
        lines.append((product, item.quantity, unit_price))
        total += unit_price * item.quantity
    return lines, total


def _lock_products(product_ids):
    # fixed lock order so two checkouts never wait on each other in a cycle
    qs = Product.objects.select_for_update().filter(pk__in=product_ids).order_by("pk")
    return {p.pk: p for p in qs}


def checkout(user, payment_method, shipping_address, phone, notes=""):
    require_user(user)
    if payment_method not in dict(Order.PAYMENT_METHOD_CHOICES):
        raise ValidationError({"payment_method": ["Invalid payment method"]})

    with transaction.atomic():
        cart = Cart.objects.select_for_update().filter(user=user).first()
        items = cart_items(cart)
        if not items:
            raise EmptyCartError()

        products = _lock_products([item.product_id for item in items])
        lines, total = price_lines(items, products)

        wallet = None
        if payment_method == Order.PAYMENT_WALLET:
            wallet = Wallet.objects.select_for_update().filter(user=user).first()
            if wallet is None or wallet.balance < total:
                raise InsufficientBalanceError()

        order = create_order(
            user=user,
            status=Order.STATUS_PENDING,
            payment_method=payment_method,
            total_amount=total,
            shipping_address=shipping_address,
            phone=phone,
            notes=notes or "",
        )
        OrderItem.objects.bulk_create([
            OrderItem(order=order, product=product, quantity=quantity, price=unit_price)
            for product, quantity, unit_price in lines
        ])

        for product, quantity, _ in lines:
            if not Product.objects.decrement_stock(product.pk, quantity):
                logger.warning("Stock conflict on product %s during checkout", product.pk)
                raise ConflictError(f"Stock for {product.name} changed during checkout. Please retry.")

        if wallet is not None:
            if total > 0:
                if not Wallet.objects.debit(wallet.pk, total):
                    logger.warning("Balance conflict on wallet %s during checkout", wallet.pk)
                    raise ConflictError("Your wallet balance changed during checkout. Please retry.")
                Transaction.objects.create(
                    user=user,
                    kind=Transaction.KIND_PURCHASE,
                    amount=total,
                    status=Transaction.STATUS_COMPLETED,
                    description=f"Payment for order {order.order_number}",
                    order=order,
                )
            order.status = Order.STATUS_PROCESSING
            order.save(update_fields=["status", "updated_at"])

        CartItem.objects.filter(cart=cart).delete()

    logger.info(
        "Order %s placed by user %s: %s via %s",
        order.order_number, user.pk, total, payment_method,
    )
    return order


def get_order(user, order_id):
    """Order detail, visible to its owner and to admins."""
    require_user(user)
    order = (
        Order.objects.select_related("user")
        .prefetch_related("items__product")
        .filter(pk=order_id)
        .first()
    )
    if order is None:
        raise NotFound("Order not found.")
    if order.user_id != user.pk and not user.is_staff:
        raise OwnershipError("You are not allowed to view this order.")
    return order


def user_orders(user):
    require_user(user)
    return Order.objects.filter(user=user).prefetch_related("items__product")


def update_order_status(user, order_id, new_status):
    """Admin-only status change, restricted to forward transitions."""
    require_admin(user)
    if new_status not in dict(Order.ORDER_STATUS_CHOICES):
        raise ValidationError({"status": ["Invalid status"]})

    with transaction.atomic():
        order = Order.objects.select_for_update().filter(pk=order_id).first()
        if order is None:
            raise NotFound("Order not found.")
        if order.status == new_status:
            return order
        if not order.can_transition_to(new_status):
            raise ValidationError({
                "status": [f"Cannot change order status from {order.status} to {new_status}"],
            })

        old_status = order.status
        order.status = new_status
        order.save(update_fields=["status", "updated_at"])
        transaction.on_commit(lambda: notify_status_change(order))

    logger.info("Order %s status %s -> %s by %s", order.order_number, old_status, new_status, user.pk)
    return order
