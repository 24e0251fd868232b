# storefront/exceptions.py
"""
Domain errors raised by the cart, wallet and order services, and the DRF
exception handler that renders every failure as

    {"success": false, "error": "<message>", "code": "<code>"}

Business-rule failures are raised before any write happens; the services run
inside ``transaction.atomic`` so a raise during the commit step rolls back
everything already written.
"""
import logging

from django.db import OperationalError
from rest_framework import status
from rest_framework.exceptions import APIException, ValidationError, PermissionDenied
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)

GENERIC_ERROR_MESSAGE = "Something went wrong. Please try again later."


class BusinessRuleError(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Request violates a business rule."
    default_code = "business_rule"


class EmptyCartError(BusinessRuleError):
    default_detail = "Your cart is empty."
    default_code = "empty_cart"


class ProductUnavailableError(BusinessRuleError):
    default_code = "product_unavailable"

    def __init__(self, product):
        self.product = product
        super().__init__(f"Product {product.name} is no longer available.")


class InsufficientStockError(BusinessRuleError):
    default_code = "insufficient_stock"

    def __init__(self, product, available=None):
        self.product = product
        self.available = product.stock if available is None else available
        super().__init__(
            f"Not enough stock for {product.name} (available: {self.available})."
        )


class InsufficientBalanceError(BusinessRuleError):
    default_detail = "Your wallet balance is not enough for this order."
    default_code = "insufficient_balance"


class InvalidCardError(BusinessRuleError):
    default_detail = "The card is invalid or could not be verified."
    default_code = "invalid_card"


class CardAlreadyUsedError(BusinessRuleError):
    default_detail = "This card has already been used."
    default_code = "card_already_used"


class OwnershipError(PermissionDenied):
    default_detail = "You are not allowed to modify this resource."
    default_code = "not_owner"


class ConflictError(APIException):
    """Concurrent modification detected while committing; safe to retry."""
    status_code = status.HTTP_409_CONFLICT
    default_detail = "The data changed while your request was processed. Please retry."
    default_code = "conflict"


class CategoryInUseError(BusinessRuleError):
    default_detail = "This category still has products. Move or delete them first."
    default_code = "category_in_use"


# PostgreSQL serialization failure / deadlock
RETRYABLE_PGCODES = {"40001", "40P01"}
RETRYABLE_MESSAGES = (
    "deadlock detected",
    "could not serialize access",
    "database is locked",
    "database table is locked",
)


def is_retryable(exc):
    """True for lock and serialization failures that a client can safely retry."""
    if not isinstance(exc, OperationalError):
        return False
    cause = getattr(exc, "__cause__", None)
    code = getattr(cause, "sqlstate", None) or getattr(cause, "pgcode", None)
    if code in RETRYABLE_PGCODES:
        return True
    message = str(exc).lower()
    return any(fragment in message for fragment in RETRYABLE_MESSAGES)


def _first_message(detail):
    # ValidationError detail can be a list, a dict of lists, or nested further
    if isinstance(detail, dict):
        for value in detail.values():
            return _first_message(value)
        return ""
    if isinstance(detail, (list, tuple)):
        return _first_message(detail[0]) if detail else ""
    return str(detail)


def api_exception_handler(exc, context):
    if is_retryable(exc):
        logger.warning("Retryable database error: %s", exc)
        exc = ConflictError()
    response = exception_handler(exc, context)

    if response is None:
        view = context.get("view")
        logger.exception(
            "Unhandled error in %s", view.__class__.__name__ if view else "unknown view"
        )
        return Response(
            {"success": False, "error": GENERIC_ERROR_MESSAGE, "code": "server_error"},
            status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    if isinstance(exc, ValidationError):
        code = "invalid"
    elif isinstance(exc, APIException):
        code = exc.get_codes()
        if not isinstance(code, str):
            code = exc.default_code
    else:
        # Django's Http404 / PermissionDenied, already converted by DRF
        code = "not_found" if response.status_code == status.HTTP_404_NOT_FOUND else "permission_denied"

    body = {
        "success": False,
        "error": _first_message(getattr(exc, "detail", response.data)),
        "code": code,
    }
    if isinstance(exc, ValidationError):
        body["errors"] = response.data
    if isinstance(exc, ConflictError):
        body["retryable"] = True

    response.data = body
    return response
