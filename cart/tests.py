import pytest
from rest_framework.exceptions import NotFound

from cart import services
from cart.models import CartItem
from product.models import Product
from storefront.exceptions import InsufficientStockError, OwnershipError, ProductUnavailableError

pytestmark = pytest.mark.django_db

CART_URL = "/api/v1/cart/"


def test_adding_same_product_merges_lines(user, make_product):
    product = make_product(stock=10)

    services.add_item(user, product.pk, 2)
    item = services.add_item(user, product.pk, 3)

    assert item.quantity == 5
    assert CartItem.objects.filter(cart__user=user).count() == 1


def test_add_checks_stock_including_quantity_already_in_cart(user, make_product):
    product = make_product(stock=4)
    services.add_item(user, product.pk, 3)

    with pytest.raises(InsufficientStockError):
        services.add_item(user, product.pk, 2)

    assert CartItem.objects.get(cart__user=user).quantity == 3


def test_add_rejects_inactive_and_missing_products(user, make_product):
    hidden = make_product(active=False)

    with pytest.raises(ProductUnavailableError):
        services.add_item(user, hidden.pk)
    with pytest.raises(NotFound):
        services.add_item(user, hidden.pk + 999)


def test_add_creates_cart_on_first_use(make_user, make_product):
    user = make_user()
    user.cart.delete()

    services.add_item(user, make_product().pk, 1)

    assert CartItem.objects.filter(cart__user=user).count() == 1


def test_set_quantity_zero_removes_line(user, make_product, add_to_cart):
    item = add_to_cart(user, make_product(), 2)

    assert services.set_quantity(user, item.pk, 0) is None
    assert not CartItem.objects.filter(pk=item.pk).exists()


def test_set_quantity_respects_stock(user, make_product, add_to_cart):
    item = add_to_cart(user, make_product(stock=3), 1)

    with pytest.raises(InsufficientStockError):
        services.set_quantity(user, item.pk, 4)
    assert services.set_quantity(user, item.pk, 3).quantity == 3


def test_foreign_cart_items_are_protected(make_user, make_product, add_to_cart):
    owner = make_user(email="owner@example.com")
    intruder = make_user(email="intruder@example.com")
    item = add_to_cart(owner, make_product(), 1)

    with pytest.raises(OwnershipError):
        services.set_quantity(intruder, item.pk, 5)
    with pytest.raises(OwnershipError):
        services.remove_item(intruder, item.pk)

    assert CartItem.objects.get(pk=item.pk).quantity == 1


def test_ownership_and_missing_items_map_to_403_and_404(make_user, make_product, add_to_cart, client_for):
    owner = make_user(email="owner@example.com")
    intruder = make_user(email="intruder@example.com")
    item = add_to_cart(owner, make_product(), 1)
    client = client_for(intruder)

    forbidden = client.put(f"{CART_URL}{item.pk}/", {"quantity": 2}, format="json")
    missing = client.delete(f"{CART_URL}{item.pk + 999}/")

    assert forbidden.status_code == 403
    assert forbidden.json()["code"] == "not_owner"
    assert missing.status_code == 404


def test_clear_cart_is_idempotent(user, make_product, add_to_cart, client_for):
    add_to_cart(user, make_product(name="One"), 1)
    add_to_cart(user, make_product(name="Two"), 2)

    assert services.clear_cart(user) == 2
    assert services.clear_cart(user) == 0

    response = client_for(user).delete(CART_URL)
    assert response.status_code == 200
    assert response.json()["data"]["items"] == []


def test_cart_summary_uses_effective_price(user, make_product, add_to_cart, client_for):
    from decimal import Decimal

    add_to_cart(user, make_product(name="Sale", price="100000", sale_price=Decimal("80000")), 2)
    add_to_cart(user, make_product(name="Full", price="50000"), 1)

    data = client_for(user).get(CART_URL).json()["data"]

    assert data["subtotal"] == "210000.00"
    assert data["item_count"] == 3
    assert len(data["items"]) == 2


def test_add_endpoint_validates_quantity(user, make_product, client_for):
    product = make_product()
    client = client_for(user)

    rejected = client.post(CART_URL, {"product_id": product.pk, "quantity": 0}, format="json")
    accepted = client.post(CART_URL, {"product_id": product.pk}, format="json")

    assert rejected.status_code == 400
    assert accepted.status_code == 201
    assert accepted.json()["data"]["items"][0]["quantity"] == 1


def test_cart_requires_authentication(api_client):
    response = api_client.get(CART_URL)

    assert response.status_code == 401
    assert response.json()["code"] == "not_authenticated"


def test_cart_line_disappears_with_deleted_product(user, make_product, add_to_cart):
    product = make_product()
    add_to_cart(user, product, 1)

    Product.objects.filter(pk=product.pk).delete()

    assert services.cart_summary(user)["items"] == []
