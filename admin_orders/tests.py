import pytest

from order.models import Order
from order.services import checkout

pytestmark = pytest.mark.django_db

ADMIN_ORDERS_URL = "/api/v1/admin/admin_orders/"


@pytest.fixture
def orders(make_user, make_product, add_to_cart):
    product = make_product(stock=10)
    placed = []
    for email in ("alice@example.com", "bob@example.com"):
        shopper = make_user(email=email, name=email.split("@")[0].title())
        add_to_cart(shopper, product, 1)
        placed.append(checkout(shopper, Order.PAYMENT_COD, "12 Nguyen Hue, District 1", "0901234567"))
    return placed


def test_admin_lists_all_orders(orders, admin_user, client_for):
    data = client_for(admin_user).get(ADMIN_ORDERS_URL).json()["data"]

    assert data["total"] == 2
    assert {o["user"]["email"] for o in data["items"]} == {"alice@example.com", "bob@example.com"}


def test_admin_search_and_status_filter(orders, admin_user, client_for):
    client = client_for(admin_user)
    Order.objects.filter(pk=orders[0].pk).update(status=Order.STATUS_CANCELLED)

    by_name = client.get(ADMIN_ORDERS_URL, {"search": "bob"}).json()["data"]
    by_status = client.get(ADMIN_ORDERS_URL, {"status": "CANCELLED"}).json()["data"]

    assert [o["id"] for o in by_name["items"]] == [orders[1].pk]
    assert [o["id"] for o in by_status["items"]] == [orders[0].pk]


def test_shoppers_are_forbidden(orders, user, client_for):
    response = client_for(user).get(ADMIN_ORDERS_URL)

    assert response.status_code == 403
    assert response.json()["success"] is False


def test_admin_edits_shipping_but_not_status(orders, admin_user, client_for):
    order = orders[0]

    response = client_for(admin_user).patch(
        f"{ADMIN_ORDERS_URL}{order.pk}/",
        {"shipping_address": "99 Le Loi, District 1, HCMC", "status": "DELIVERED"},
        format="json",
    )

    assert response.status_code == 200
    order.refresh_from_db()
    assert order.shipping_address == "99 Le Loi, District 1, HCMC"
    assert order.status == Order.STATUS_PENDING


def test_status_endpoint_follows_transition_rules(orders, admin_user, client_for):
    client = client_for(admin_user)
    url = f"{ADMIN_ORDERS_URL}{orders[0].pk}/status/"

    moved = client.patch(url, {"status": "PROCESSING"}, format="json")
    backwards = client.patch(url, {"status": "PENDING"}, format="json")

    assert moved.status_code == 200
    assert moved.json()["data"]["status"] == Order.STATUS_PROCESSING
    assert backwards.status_code == 400


def test_missing_order_is_404(admin_user, client_for):
    response = client_for(admin_user).get(f"{ADMIN_ORDERS_URL}999/")

    assert response.status_code == 404
