# cart/services.py
"""
Cart mutations. Every function takes the acting user and only ever touches
items of that user's own cart.
"""
import logging
from decimal import Decimal

from django.db import transaction, IntegrityError
from rest_framework.exceptions import NotFound

from product.models import Product
from storefront.exceptions import (
    ProductUnavailableError,
    InsufficientStockError,
    OwnershipError,
    ConflictError,
)
from storefront.identity import require_user
from .models import Cart, CartItem

logger = logging.getLogger(__name__)


def get_cart(user):
    require_user(user)
    return Cart.objects.filter(user=user).first()


def get_or_create_cart(user):
    require_user(user)
    cart, _ = Cart.objects.get_or_create(user=user)
    return cart


def cart_items(cart):
    if cart is None:
        return []
    return list(cart.items.select_related("product").order_by("added_at", "id"))


def cart_summary(user):
    """Cart contents priced at the current effective price of each product."""
    cart = get_cart(user)
    items = cart_items(cart)
    subtotal = sum((item.line_total for item in items), Decimal("0"))
    return {
        "cart": cart,
        "items": items,
        "subtotal": subtotal,
        "item_count": sum(item.quantity for item in items),
    }


@transaction.atomic
def add_item(user, product_id, quantity=1):
    """Add ``quantity`` of a product, merging into the existing line if there is one."""
    cart = get_or_create_cart(user)

    product = Product.objects.filter(pk=product_id).first()
    if product is None:
        raise NotFound("Product not found.")
    if not product.active:
        raise ProductUnavailableError(product)

    item = CartItem.objects.select_for_update().filter(cart=cart, product=product).first()
    in_cart = item.quantity if item else 0
    if product.stock < in_cart + quantity:
        raise InsufficientStockError(product)

    if item:
        item.quantity = in_cart + quantity
        item.save(update_fields=["quantity"])
        return item

    try:
        with transaction.atomic():
            return CartItem.objects.create(cart=cart, product=product, quantity=quantity)
    except IntegrityError:
        # a concurrent add created the same line first
        logger.warning("Concurrent add to cart %s for product %s", cart.pk, product.pk)
        raise ConflictError()


def _owned_item(user, item_id, lock=False):
    require_user(user)
    qs = CartItem.objects.select_related("cart", "product")
    if lock:
        qs = qs.select_for_update(of=("self",))
    item = qs.filter(pk=item_id).first()
    if item is None:
        raise NotFound("Cart item not found.")
    if item.cart.user_id != user.pk:
        raise OwnershipError()
    return item


@transaction.atomic
def set_quantity(user, item_id, quantity):
    """Set a line's quantity. Zero removes the line and returns None."""
    item = _owned_item(user, item_id, lock=True)

    if quantity == 0:
        item.delete()
        return None

    if item.product.stock < quantity:
        raise InsufficientStockError(item.product)

    item.quantity = quantity
    item.save(update_fields=["quantity"])
    return item


@transaction.atomic
def remove_item(user, item_id):
    item = _owned_item(user, item_id, lock=True)
    item.delete()


def clear_cart(user):
    """Delete every line of the user's cart. Clearing an empty or missing cart is a no-op."""
    require_user(user)
    deleted, _ = CartItem.objects.filter(cart__user=user).delete()
    return deleted
