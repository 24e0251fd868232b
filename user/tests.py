from decimal import Decimal

import pytest

from cart.models import Cart
from user.models import User
from wallet.models import Wallet

pytestmark = pytest.mark.django_db

REGISTER_URL = "/api/v1/user/register/"
LOGIN_URL = "/api/v1/user/login/"
PROFILE_URL = "/api/v1/user/profile/"


def test_register_creates_wallet_and_cart(api_client):
    response = api_client.post(
        REGISTER_URL,
        {"email": "new@example.com", "password": "secret123", "name": "New Shopper"},
        format="json",
    )

    assert response.status_code == 201
    body = response.json()
    assert body["data"]["user"]["role"] == User.ROLE_USER
    assert body["data"]["token"]
    assert "access_token" in response.cookies

    user = User.objects.get(email="new@example.com")
    assert Wallet.objects.get(user=user).balance == Decimal("0")
    assert Cart.objects.filter(user=user).exists()


def test_register_rejects_duplicate_email(user, api_client):
    response = api_client.post(
        REGISTER_URL,
        {"email": "SHOPPER@example.com", "password": "secret123", "name": "Copycat"},
        format="json",
    )

    assert response.status_code == 400
    assert "email" in response.json()["errors"]


def test_register_validates_lengths(api_client):
    response = api_client.post(
        REGISTER_URL, {"email": "x@example.com", "password": "123", "name": "X"}, format="json"
    )

    assert response.status_code == 400
    assert set(response.json()["errors"]) == {"password", "name"}


def test_login_sets_token_cookie(user, api_client):
    response = api_client.post(
        LOGIN_URL, {"email": user.email, "password": "secret123"}, format="json"
    )

    assert response.status_code == 200
    assert response.json()["data"]["user"]["email"] == user.email
    assert response.cookies["access_token"].value == response.json()["data"]["token"]


def test_login_with_wrong_password_is_401(user, api_client):
    response = api_client.post(LOGIN_URL, {"email": user.email, "password": "nope"}, format="json")

    assert response.status_code == 401
    assert response.json() == {
        "success": False,
        "error": "Invalid email or password",
        "code": "authentication_failed",
    }


def test_cookie_token_authenticates_requests(user, api_client):
    api_client.post(LOGIN_URL, {"email": user.email, "password": "secret123"}, format="json")

    # the client replays the access_token cookie; the middleware turns it into a Bearer header
    response = api_client.get(PROFILE_URL)

    assert response.status_code == 200
    assert response.json()["data"]["email"] == user.email


def test_profile_shows_balance_and_role(make_user, client_for):
    admin = make_user(email="boss@example.com", balance="5000", is_staff=True)

    data = client_for(admin).get(PROFILE_URL).json()["data"]

    assert data["role"] == User.ROLE_ADMIN
    assert data["balance"] == "5000.00"


def test_profile_update_ignores_read_only_fields(user, client_for):
    response = client_for(user).patch(
        PROFILE_URL, {"name": "Renamed", "email": "hijack@example.com"}, format="json"
    )

    assert response.status_code == 200
    user.refresh_from_db()
    assert user.name == "Renamed"
    assert user.email == "shopper@example.com"
