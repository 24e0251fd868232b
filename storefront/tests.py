from decimal import Decimal
from unittest import mock

from django.db import OperationalError
from django.http import Http404, HttpResponse
from django.test import RequestFactory
from rest_framework.exceptions import ValidationError

from storefront.conf import storefront_setting
from storefront.exceptions import (
    ConflictError,
    InsufficientStockError,
    api_exception_handler,
    is_retryable,
)
from storefront.middleware.jwt_cookie_middleware import JWTAuthCookieMiddleware


class _Product:
    name = "Kettle"
    stock = 2


def test_unexpected_errors_become_generic_500():
    with mock.patch("storefront.exceptions.logger") as logger:
        response = api_exception_handler(RuntimeError("db exploded"), {"view": None})

    assert response.status_code == 500
    assert response.data == {
        "success": False,
        "error": "Something went wrong. Please try again later.",
        "code": "server_error",
    }
    assert "db exploded" not in str(response.data)
    logger.exception.assert_called_once()


def test_validation_errors_keep_field_details():
    exc = ValidationError({"phone": ["Invalid phone number"], "notes": ["Too long"]})

    response = api_exception_handler(exc, {})

    assert response.status_code == 400
    assert response.data["error"] == "Invalid phone number"
    assert response.data["errors"]["notes"] == ["Too long"]


def test_business_errors_carry_their_code():
    response = api_exception_handler(InsufficientStockError(_Product()), {})

    assert response.status_code == 400
    assert response.data["code"] == "insufficient_stock"
    assert response.data["error"] == "Not enough stock for Kettle (available: 2)."


def test_conflicts_are_marked_retryable():
    response = api_exception_handler(ConflictError(), {})

    assert response.status_code == 409
    assert response.data["retryable"] is True


def test_django_404_is_wrapped():
    response = api_exception_handler(Http404("missing"), {})

    assert response.status_code == 404
    assert response.data["code"] == "not_found"


def test_settings_override_defaults(settings):
    settings.STOREFRONT = {"MIN_DEPOSIT": Decimal("50000")}

    assert storefront_setting("MIN_DEPOSIT") == Decimal("50000")
    assert storefront_setting("WALLET_TRANSACTIONS_LIMIT") == 20


def _passthrough(request):
    return HttpResponse(request.META.get("HTTP_AUTHORIZATION", ""))


def test_cookie_token_becomes_bearer_header():
    request = RequestFactory().get("/")
    request.COOKIES["access_token"] = "abc"

    response = JWTAuthCookieMiddleware(_passthrough)(request)

    assert response.content == b"Bearer abc"


def test_explicit_authorization_header_wins():
    request = RequestFactory().get("/", HTTP_AUTHORIZATION="Bearer explicit")
    request.COOKIES["access_token"] = "abc"

    response = JWTAuthCookieMiddleware(_passthrough)(request)

    assert response.content == b"Bearer explicit"


def test_lock_timeouts_become_retryable_conflicts():
    response = api_exception_handler(OperationalError("database is locked"), {})

    assert response.status_code == 409
    assert response.data["code"] == "conflict"
    assert response.data["retryable"] is True


def test_other_database_errors_stay_generic():
    with mock.patch("storefront.exceptions.logger"):
        response = api_exception_handler(OperationalError("no such table: order_order"), {})

    assert response.status_code == 500
    assert not is_retryable(OperationalError("no such table: order_order"))
