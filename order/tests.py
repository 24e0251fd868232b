from decimal import Decimal
from unittest import mock

import pytest
from django.db.models import Sum
from rest_framework.exceptions import NotFound, PermissionDenied, ValidationError

from cart.models import CartItem
from product.models import Product
from storefront.exceptions import (
    ConflictError,
    EmptyCartError,
    InsufficientBalanceError,
    InsufficientStockError,
    OwnershipError,
    ProductUnavailableError,
)
from wallet.models import Wallet, Transaction
from order import services
from order.models import Order, OrderItem

pytestmark = pytest.mark.django_db

CHECKOUT_URL = "/api/v1/order/"
SHIPPING = {
    "shipping_address": "12 Nguyen Hue, District 1, HCMC",
    "phone": "0901234567",
}


def _checkout(user, payment_method=Order.PAYMENT_WALLET):
    return services.checkout(user, payment_method, **SHIPPING)


@pytest.fixture
def shopper_with_cart(make_user, make_product, add_to_cart):
    # 2 x 100,000 + 1 x 40,000 (sale price of a 50,000 item) = 240,000
    user = make_user(balance="300000")
    a = make_product(name="Product A", price="100000", stock=5)
    b = make_product(name="Product B", price="50000", sale_price=Decimal("40000"), stock=1)
    add_to_cart(user, a, 2)
    add_to_cart(user, b, 1)
    return user, a, b


def test_wallet_checkout_commits_every_effect(shopper_with_cart, client_for):
    user, a, b = shopper_with_cart

    response = client_for(user).post(CHECKOUT_URL, {**SHIPPING, "payment_method": "WALLET"}, format="json")

    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    assert body["data"]["status"] == Order.STATUS_PROCESSING
    assert body["data"]["total_amount"] == "240000.00"
    assert len(body["data"]["items"]) == 2

    a.refresh_from_db()
    b.refresh_from_db()
    assert (a.stock, b.stock) == (3, 0)
    assert Wallet.objects.get(user=user).balance == Decimal("60000")
    assert CartItem.objects.filter(cart__user=user).count() == 0

    order = Order.objects.get(user=user)
    assert {item.product_id: item.price for item in order.items.all()} == {
        a.pk: Decimal("100000"),
        b.pk: Decimal("40000"),
    }
    purchase = Transaction.objects.get(user=user, kind=Transaction.KIND_PURCHASE)
    assert purchase.amount == Decimal("240000")
    assert purchase.order == order
    assert purchase.status == Transaction.STATUS_COMPLETED


def test_order_total_is_sum_of_snapshotted_lines(make_user, make_product, add_to_cart):
    user = make_user(balance="1000000")
    discounted = make_product(name="Discounted", price="200000", sale_price=Decimal("150000"), stock=3)
    regular = make_product(name="Regular", price="35000", stock=3)
    add_to_cart(user, discounted, 2)
    add_to_cart(user, regular, 3)

    order = _checkout(user)

    items = list(order.items.all())
    assert sum(item.price * item.quantity for item in items) == order.total_amount
    assert order.total_amount == Decimal("405000")
    assert {item.product_id: item.price for item in items} == {
        discounted.pk: Decimal("150000"),
        regular.pk: Decimal("35000"),
    }


def test_insufficient_balance_leaves_everything_untouched(make_user, make_product, add_to_cart):
    user = make_user(balance="100000")
    product = make_product(price="240000", stock=5)
    add_to_cart(user, product, 1)

    with pytest.raises(InsufficientBalanceError):
        _checkout(user)

    product.refresh_from_db()
    assert product.stock == 5
    assert Wallet.objects.get(user=user).balance == Decimal("100000")
    assert CartItem.objects.filter(cart__user=user).count() == 1
    assert Order.objects.count() == 0
    assert Transaction.objects.count() == 0


def test_insufficient_balance_maps_to_400(make_user, make_product, add_to_cart, client_for):
    user = make_user(balance="100")
    add_to_cart(user, make_product(stock=5), 1)

    response = client_for(user).post(CHECKOUT_URL, {**SHIPPING, "payment_method": "WALLET"}, format="json")

    assert response.status_code == 400
    assert response.json() == {
        "success": False,
        "error": "Your wallet balance is not enough for this order.",
        "code": "insufficient_balance",
    }


def test_empty_cart_is_rejected(user):
    with pytest.raises(EmptyCartError):
        _checkout(user)
    assert Order.objects.count() == 0


def test_user_without_cart_gets_empty_cart_error(user):
    user.cart.delete()
    with pytest.raises(EmptyCartError):
        _checkout(user, Order.PAYMENT_COD)


def test_inactive_product_blocks_checkout(make_user, make_product, add_to_cart):
    user = make_user(balance="1000000")
    product = make_product(stock=5)
    add_to_cart(user, product, 1)
    Product.objects.filter(pk=product.pk).update(active=False)

    with pytest.raises(ProductUnavailableError):
        _checkout(user)
    assert Order.objects.count() == 0


def test_stock_shortfall_blocks_checkout(make_user, make_product, add_to_cart):
    user = make_user(balance="1000000")
    product = make_product(stock=5)
    add_to_cart(user, product, 4)
    Product.objects.filter(pk=product.pk).update(stock=3)

    with pytest.raises(InsufficientStockError) as excinfo:
        _checkout(user)

    assert excinfo.value.available == 3
    assert Product.objects.get(pk=product.pk).stock == 3
    assert Wallet.objects.get(user=user).balance == Decimal("1000000")


@pytest.mark.parametrize("method", [Order.PAYMENT_COD, Order.PAYMENT_CARD])
def test_non_wallet_orders_stay_pending_and_leave_wallet_alone(method, make_user, make_product, add_to_cart):
    user = make_user(balance="50")
    product = make_product(price="100000", stock=2)
    add_to_cart(user, product, 2)

    order = _checkout(user, method)

    assert order.status == Order.STATUS_PENDING
    assert order.payment_method == method
    assert Wallet.objects.get(user=user).balance == Decimal("50")
    assert not Transaction.objects.filter(user=user).exists()
    assert Product.objects.get(pk=product.pk).stock == 0


def test_stock_race_is_reported_as_conflict_and_rolled_back(shopper_with_cart, client_for):
    user, a, b = shopper_with_cart
    # snapshot taken before a concurrent buyer drained product B
    stale = {p.pk: p for p in Product.objects.filter(pk__in=[a.pk, b.pk])}
    Product.objects.filter(pk=b.pk).update(stock=0)

    with mock.patch("order.services._lock_products", return_value=stale):
        response = client_for(user).post(
            CHECKOUT_URL, {**SHIPPING, "payment_method": "WALLET"}, format="json"
        )

    assert response.status_code == 409
    assert response.json()["retryable"] is True
    assert Order.objects.count() == 0
    assert OrderItem.objects.count() == 0
    assert Product.objects.get(pk=a.pk).stock == 5
    assert Wallet.objects.get(user=user).balance == Decimal("300000")
    assert CartItem.objects.filter(cart__user=user).count() == 2


def test_balance_race_is_reported_as_conflict(shopper_with_cart):
    user, a, _ = shopper_with_cart

    with mock.patch.object(Wallet.objects, "debit", return_value=0):
        with pytest.raises(ConflictError):
            _checkout(user)

    assert Order.objects.count() == 0
    assert Product.objects.get(pk=a.pk).stock == 5


def test_checkout_validation_errors(user, client_for):
    response = client_for(user).post(
        CHECKOUT_URL,
        {"payment_method": "BITCOIN", "shipping_address": "short", "phone": "123"},
        format="json",
    )

    assert response.status_code == 400
    body = response.json()
    assert body["code"] == "invalid"
    assert set(body["errors"]) == {"payment_method", "shipping_address", "phone"}


def test_checkout_requires_authentication(api_client):
    response = api_client.post(CHECKOUT_URL, {**SHIPPING, "payment_method": "COD"}, format="json")
    assert response.status_code == 401
    assert response.json()["success"] is False


def test_order_list_is_paginated_and_scoped_to_owner(make_user, make_product, add_to_cart, client_for):
    owner = make_user(email="owner@example.com", balance="1000000")
    other = make_user(email="other@example.com", balance="1000000")
    product = make_product(stock=10)
    for _ in range(3):
        add_to_cart(owner, product, 1)
        _checkout(owner, Order.PAYMENT_COD)
    add_to_cart(other, product, 1)
    _checkout(other, Order.PAYMENT_COD)

    response = client_for(owner).get(CHECKOUT_URL, {"page_size": 2})

    data = response.json()["data"]
    assert data["total"] == 3
    assert data["total_pages"] == 2
    assert data["page"] == 1
    assert len(data["items"]) == 2


def test_order_detail_visibility(make_user, admin_user, make_product, add_to_cart):
    owner = make_user(email="owner@example.com")
    stranger = make_user(email="stranger@example.com")
    add_to_cart(owner, make_product(stock=1), 1)
    order = _checkout(owner, Order.PAYMENT_COD)

    assert services.get_order(owner, order.pk) == order
    assert services.get_order(admin_user, order.pk) == order
    with pytest.raises(OwnershipError):
        services.get_order(stranger, order.pk)
    with pytest.raises(NotFound):
        services.get_order(owner, order.pk + 100)


@pytest.fixture
def pending_order(user, make_product, add_to_cart):
    add_to_cart(user, make_product(stock=3), 1)
    return _checkout(user, Order.PAYMENT_COD)


def test_admin_moves_order_forward(pending_order, admin_user):
    for new_status in (Order.STATUS_PROCESSING, Order.STATUS_SHIPPED, Order.STATUS_DELIVERED):
        order = services.update_order_status(admin_user, pending_order.pk, new_status)
        assert order.status == new_status


@pytest.mark.parametrize("start, target", [
    (Order.STATUS_DELIVERED, Order.STATUS_PENDING),
    (Order.STATUS_CANCELLED, Order.STATUS_PROCESSING),
    (Order.STATUS_SHIPPED, Order.STATUS_PENDING),
    (Order.STATUS_PENDING, Order.STATUS_SHIPPED),
])
def test_illegal_transitions_are_rejected(start, target, pending_order, admin_user):
    Order.objects.filter(pk=pending_order.pk).update(status=start)

    with pytest.raises(ValidationError):
        services.update_order_status(admin_user, pending_order.pk, target)

    assert Order.objects.get(pk=pending_order.pk).status == start


def test_setting_same_status_is_a_no_op(pending_order, admin_user, django_capture_on_commit_callbacks):
    with django_capture_on_commit_callbacks() as callbacks:
        order = services.update_order_status(admin_user, pending_order.pk, Order.STATUS_PENDING)
    assert order.status == Order.STATUS_PENDING
    assert callbacks == []


def test_status_change_requires_admin(pending_order, user, client_for):
    with pytest.raises(PermissionDenied):
        services.update_order_status(user, pending_order.pk, Order.STATUS_CANCELLED)

    response = client_for(user).patch(
        f"{CHECKOUT_URL}{pending_order.pk}/", {"status": "CANCELLED"}, format="json"
    )
    assert response.status_code == 403
    assert Order.objects.get(pk=pending_order.pk).status == Order.STATUS_PENDING


def test_status_change_notifies_owner_after_commit(pending_order, admin_user, django_capture_on_commit_callbacks):
    with mock.patch("order.services.notify_status_change") as notify:
        with django_capture_on_commit_callbacks(execute=True):
            services.update_order_status(admin_user, pending_order.pk, Order.STATUS_CANCELLED)

    notify.assert_called_once()
    assert notify.call_args.args[0].status == Order.STATUS_CANCELLED


def test_status_endpoint_rejects_illegal_transition(pending_order, admin_user, client_for):
    Order.objects.filter(pk=pending_order.pk).update(status=Order.STATUS_DELIVERED)

    response = client_for(admin_user).put(
        f"{CHECKOUT_URL}{pending_order.pk}/", {"status": "PENDING"}, format="json"
    )

    assert response.status_code == 400
    assert "Cannot change order status" in response.json()["error"]


def test_order_items_are_immutable(pending_order):
    item = pending_order.items.first()
    item.quantity = 5
    with pytest.raises(ValueError):
        item.save()


def test_order_number_format(pending_order):
    assert pending_order.order_number.startswith("ORD")
    assert len(pending_order.order_number) == 3 + 12 + 4


def test_notification_consumer_delivers_group_messages(user):
    from asgiref.sync import async_to_sync
    from channels.layers import get_channel_layer
    from channels.testing import WebsocketCommunicator

    from order.consumers import OrderNotificationConsumer
    from order.notifications import user_group

    async def exchange():
        communicator = WebsocketCommunicator(OrderNotificationConsumer.as_asgi(), "/ws/notifications/")
        communicator.scope["user"] = user
        connected, _ = await communicator.connect()
        await get_channel_layer().group_send(
            user_group(user.id),
            {"type": "send_notification", "data": {"status": Order.STATUS_SHIPPED}},
        )
        message = await communicator.receive_json_from()
        await communicator.disconnect()
        return connected, message

    connected, message = async_to_sync(exchange)()

    assert connected
    assert message == {"status": Order.STATUS_SHIPPED}


def test_notification_consumer_rejects_anonymous_socket():
    from asgiref.sync import async_to_sync
    from channels.testing import WebsocketCommunicator
    from django.contrib.auth.models import AnonymousUser

    from order.consumers import OrderNotificationConsumer

    async def attempt():
        communicator = WebsocketCommunicator(OrderNotificationConsumer.as_asgi(), "/ws/notifications/")
        communicator.scope["user"] = AnonymousUser()
        connected, _ = await communicator.connect()
        return connected

    assert async_to_sync(attempt)() is False


def test_access_token_is_read_from_cookie_header():
    from order.ws_middleware import token_from_headers

    headers = {b"cookie": b"theme=dark; access_token=abc.def.ghi; other=1"}
    assert token_from_headers(headers) == "abc.def.ghi"
    assert token_from_headers({}) is None


def test_taken_order_number_is_redrawn(pending_order, make_user, make_product, add_to_cart):
    shopper = make_user(email="second@example.com")
    add_to_cart(shopper, make_product(name="Other", stock=1), 1)
    numbers = [pending_order.order_number, "ORD2401010000000001"]

    with mock.patch("order.services.generate_order_number", side_effect=numbers):
        order = _checkout(shopper, Order.PAYMENT_COD)

    assert order.order_number == "ORD2401010000000001"
    assert Order.objects.count() == 2


def test_exhausted_order_numbers_are_a_conflict(pending_order, make_user, make_product, add_to_cart):
    shopper = make_user(email="second@example.com")
    product = make_product(name="Other", stock=1)
    add_to_cart(shopper, product, 1)

    with mock.patch("order.services.generate_order_number", return_value=pending_order.order_number):
        with pytest.raises(ConflictError):
            _checkout(shopper, Order.PAYMENT_COD)

    assert Order.objects.count() == 1
    assert Product.objects.get(pk=product.pk).stock == 1
    assert CartItem.objects.filter(cart__user=shopper).count() == 1


@pytest.mark.django_db(transaction=True)
def test_concurrent_checkouts_never_oversell(make_user, make_product, add_to_cart, race):
    product = make_product(name="Limited", price="100000", stock=2)
    shoppers = [make_user(email=f"buyer{i}@example.com", balance="1000000") for i in range(5)]
    for shopper in shoppers:
        add_to_cart(shopper, product, 1)

    outcomes = race(_checkout, shoppers)

    sold = OrderItem.objects.filter(product=product).aggregate(total=Sum("quantity"))["total"]
    winners = [result for status, result in outcomes if status == "ok"]
    losers = [status for status, _ in outcomes if status != "ok"]
    assert sold == len(winners) == 2
    assert losers and all(status in (400, 409) for status in losers)
    assert Product.objects.get(pk=product.pk).stock == 0
    assert Transaction.objects.filter(kind=Transaction.KIND_PURCHASE).count() == 2
    assert sum(Wallet.objects.values_list("balance", flat=True)) == Decimal("4800000")
