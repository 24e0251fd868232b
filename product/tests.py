from decimal import Decimal

import pytest
from django.core.management import call_command

from order.models import Order
from order.services import checkout
from product.models import Category, Product
from user.models import User
from wallet.models import Wallet

pytestmark = pytest.mark.django_db

PRODUCTS_URL = "/api/v1/products/"


def test_effective_price_prefers_lower_sale_price(make_product):
    on_sale = make_product(name="On sale", price="200000", sale_price=Decimal("150000"))
    odd_sale = make_product(name="Odd sale", price="200000", sale_price=Decimal("250000"))
    regular = make_product(name="Regular", price="200000")

    assert on_sale.effective_price == Decimal("150000")
    assert on_sale.discount_percent == Decimal("25.0")
    assert odd_sale.effective_price == Decimal("200000")
    assert not odd_sale.has_discount
    assert regular.effective_price == Decimal("200000")


def test_slugs_are_unique(make_product):
    first = make_product(name="Galaxy S24")
    second = make_product(name="Galaxy S24")

    assert first.slug == "galaxy-s24"
    assert second.slug == "galaxy-s24-1"


def test_decrement_stock_never_goes_negative(make_product):
    product = make_product(stock=2)

    assert Product.objects.decrement_stock(product.pk, 3) == 0
    assert Product.objects.decrement_stock(product.pk, 2) == 1
    product.refresh_from_db()
    assert product.stock == 0


def test_listing_hides_inactive_products_from_shoppers(make_product, api_client, admin_user, client_for):
    make_product(name="Visible")
    make_product(name="Hidden", active=False)

    public = api_client.get(PRODUCTS_URL).json()["data"]
    staff = client_for(admin_user).get(PRODUCTS_URL).json()["data"]

    assert [p["name"] for p in public["items"]] == ["Visible"]
    assert public["total"] == 1
    assert staff["total"] == 2


def test_listing_filters_by_category_slug(make_product, api_client):
    other = Category.objects.create(name="Laptops")
    make_product(name="Phone")
    Product.objects.create(category=other, name="Laptop", price=Decimal("1000"), stock=1)

    data = api_client.get(PRODUCTS_URL, {"category__slug": "laptops"}).json()["data"]

    assert [p["name"] for p in data["items"]] == ["Laptop"]


def test_shoppers_cannot_create_products(user, client_for, category):
    response = client_for(user).post(
        PRODUCTS_URL, {"name": "X", "price": "1", "stock": 1, "category_id": category.pk}, format="json"
    )
    assert response.status_code == 403


def test_admin_creates_product(admin_user, client_for, category):
    response = client_for(admin_user).post(
        PRODUCTS_URL,
        {"name": "Pixel 9", "price": "19990000", "stock": 7, "category_id": category.pk,
         "images": ["https://cdn.example.com/pixel.png"]},
        format="json",
    )

    assert response.status_code == 201
    assert response.json()["data"]["slug"] == "pixel-9"


def test_deleting_ordered_product_retires_it(user, admin_user, make_product, add_to_cart, client_for):
    product = make_product(stock=3)
    add_to_cart(user, product, 1)
    checkout(user, Order.PAYMENT_COD, "12 Nguyen Hue, District 1", "0901234567")

    response = client_for(admin_user).delete(f"{PRODUCTS_URL}{product.pk}/")

    assert response.status_code == 200
    product.refresh_from_db()
    assert product.active is False


def test_seed_store_is_idempotent():
    call_command("seed_store")
    call_command("seed_store")

    admin = User.objects.get(email="admin@shopvn.com")
    assert admin.is_staff
    assert Wallet.objects.get(user=admin).balance == Decimal("10000000")
    assert Wallet.objects.get(user__email="user@shopvn.com").balance == Decimal("1000000")
    assert Category.objects.count() == 5
    assert Product.objects.count() == 10


def test_category_with_products_cannot_be_deleted(admin_user, client_for, make_product, category):
    make_product()

    response = client_for(admin_user).delete(f"/api/v1/categories/{category.pk}/")

    assert response.status_code == 400
    assert response.json()["code"] == "category_in_use"
    assert Category.objects.filter(pk=category.pk).exists()


def test_empty_category_can_be_deleted(admin_user, client_for):
    empty = Category.objects.create(name="Clearance")

    response = client_for(admin_user).delete(f"/api/v1/categories/{empty.pk}/")

    assert response.status_code == 200
    assert not Category.objects.filter(pk=empty.pk).exists()
