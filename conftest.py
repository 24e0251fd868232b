import threading
from decimal import Decimal

import pytest
from django.db import connection
from rest_framework.exceptions import APIException
from rest_framework.test import APIClient

from cart.models import Cart, CartItem
from product.models import Category, Product
from storefront.exceptions import api_exception_handler
from user.models import User
from wallet.models import Wallet


@pytest.fixture
def make_user(db):
    def _make(email="shopper@example.com", balance="0", is_staff=False, **extra):
        user = User.objects.create_user(
            email=email, name=extra.pop("name", "Shopper"), password="secret123",
            is_staff=is_staff, **extra
        )
        Wallet.objects.create(user=user, balance=Decimal(balance))
        Cart.objects.create(user=user)
        return user
    return _make


@pytest.fixture
def user(make_user):
    return make_user()


@pytest.fixture
def admin_user(make_user):
    return make_user(email="admin@example.com", is_staff=True, name="Admin")


@pytest.fixture
def category(db):
    return Category.objects.create(name="Phones")


@pytest.fixture
def make_product(category):
    def _make(name="Phone", price="100000", stock=10, **extra):
        return Product.objects.create(
            category=category, name=name, price=Decimal(price), stock=stock, **extra
        )
    return _make


@pytest.fixture
def add_to_cart():
    def _add(user, product, quantity):
        return CartItem.objects.create(cart=user.cart, product=product, quantity=quantity)
    return _add


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def client_for():
    def _client(user):
        client = APIClient()
        client.force_authenticate(user=user)
        return client
    return _client


@pytest.fixture
def race():
    """
    Run ``worker(contender)`` for every contender on its own thread, all released
    together. Returns one (status, result) pair per contender: "ok" with the
    return value, or the HTTP status the API would answer with and the error.
    """
    def _race(worker, contenders):
        barrier = threading.Barrier(len(contenders), timeout=10)
        outcomes = [None] * len(contenders)

        def run(index, contender):
            try:
                barrier.wait()
                outcomes[index] = ("ok", worker(contender))
            except APIException as exc:
                outcomes[index] = (exc.status_code, exc)
            except Exception as exc:
                outcomes[index] = (api_exception_handler(exc, {}).status_code, exc)
            finally:
                connection.close()

        threads = [
            threading.Thread(target=run, args=(index, contender))
            for index, contender in enumerate(contenders)
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
        return outcomes
    return _race
