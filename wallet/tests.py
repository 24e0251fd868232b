from decimal import Decimal
from unittest import mock

import pytest
from django.db import IntegrityError
from rest_framework.exceptions import ValidationError

from order.models import Order
from order.services import checkout
from storefront.exceptions import CardAlreadyUsedError, InvalidCardError
from wallet import services
from wallet.models import Wallet, Transaction
from wallet.verifiers import BaseCardVerifier, CodeLengthCardVerifier, get_card_verifier

pytestmark = pytest.mark.django_db

TOPUP_URL = "/api/v1/wallet/topup-card/"
SERIAL = "SER1234567890"
CODE_100K = "123456789012345"  # 15 digits


def _balance(user):
    return Wallet.objects.get(user=user).balance


class FixedVerifier(BaseCardVerifier):
    def __init__(self, value):
        self.value = value

    def face_value(self, card_type, card_serial, card_code):
        return self.value


@pytest.mark.parametrize("code, value", [
    ("1" * 13, Decimal("10000")),
    ("1" * 14, Decimal("50000")),
    ("1" * 15, Decimal("100000")),
    ("1" * 12, None),
    ("1" * 16, None),
])
def test_code_length_denominations(code, value):
    assert CodeLengthCardVerifier().face_value("VIETTEL", SERIAL, code) == value


def test_configured_verifier_is_loaded(settings):
    settings.STOREFRONT = {**settings.STOREFRONT, "CARD_VERIFIER": "wallet.verifiers.CodeLengthCardVerifier"}
    assert isinstance(get_card_verifier(), CodeLengthCardVerifier)


def test_card_topup_credits_face_value_minus_fee(user):
    result = services.redeem_card(user, "VIETTEL", SERIAL, CODE_100K)

    assert result["face_value"] == Decimal("100000")
    assert result["credited_amount"] == Decimal("80000.00")
    assert _balance(user) == Decimal("80000")

    txn = result["transaction"]
    assert txn.kind == Transaction.KIND_CARD_TOPUP
    assert txn.amount == Decimal("80000")
    assert (txn.card_serial, txn.card_code, txn.card_type) == (SERIAL, CODE_100K, "VIETTEL")


def test_fee_rate_comes_from_settings(user, settings):
    settings.STOREFRONT = {**settings.STOREFRONT, "CARD_TOPUP_FEE_RATE": Decimal("0.10")}

    result = services.redeem_card(user, "MOBIFONE", SERIAL, "1" * 14)

    assert result["credited_amount"] == Decimal("45000.00")


def test_card_cannot_be_redeemed_twice(make_user):
    first = make_user(email="first@example.com")
    second = make_user(email="second@example.com")
    services.redeem_card(first, "VIETTEL", SERIAL, CODE_100K)

    with pytest.raises(CardAlreadyUsedError):
        services.redeem_card(second, "VIETTEL", SERIAL, CODE_100K)
    with pytest.raises(CardAlreadyUsedError):
        services.redeem_card(first, "VIETTEL", SERIAL, CODE_100K)

    assert _balance(first) == Decimal("80000")
    assert _balance(second) == Decimal("0")
    assert Transaction.objects.filter(kind=Transaction.KIND_CARD_TOPUP).count() == 1


def test_concurrent_redemption_hits_unique_index(user):
    # the pre-check misses a card another request is committing at the same moment
    with mock.patch.object(Transaction.objects, "card_used", return_value=False):
        services.redeem_card(user, "VIETTEL", SERIAL, CODE_100K)
        with pytest.raises(CardAlreadyUsedError):
            services.redeem_card(user, "VIETTEL", SERIAL, CODE_100K)

    assert _balance(user) == Decimal("80000")


def test_same_serial_with_other_code_is_a_different_card(user):
    services.redeem_card(user, "VIETTEL", SERIAL, CODE_100K)
    services.redeem_card(user, "VIETTEL", SERIAL, "1" * 13)

    assert _balance(user) == Decimal("88000")


def test_unresolvable_card_is_rejected(user):
    with pytest.raises(InvalidCardError):
        services.redeem_card(user, "VIETTEL", SERIAL, "1" * 11)

    assert _balance(user) == Decimal("0")
    assert not Transaction.objects.exists()


def test_verifier_can_be_injected(user):
    result = services.redeem_card(user, "VINAPHONE", SERIAL, "anything-goes", verifier=FixedVerifier(200000))
    assert result["credited_amount"] == Decimal("160000.00")


def test_card_topup_endpoint(user, client_for):
    client = client_for(user)
    payload = {"card_type": "viettel", "card_serial": SERIAL, "card_code": CODE_100K}

    response = client.post(TOPUP_URL, payload, format="json")
    assert response.status_code == 200
    body = response.json()
    assert body["data"]["face_value"] == "100000.00"
    assert body["data"]["credited_amount"] == "80000.00"
    assert body["data"]["wallet"]["balance"] == "80000.00"
    assert "fee 20%" in body["message"]

    replay = client.post(TOPUP_URL, payload, format="json")
    assert replay.status_code == 400
    assert replay.json()["code"] == "card_already_used"


def test_card_topup_payload_validation(user, client_for):
    response = client_for(user).post(
        TOPUP_URL, {"card_type": "UNKNOWN", "card_serial": "123", "card_code": "456"}, format="json"
    )

    assert response.status_code == 400
    assert set(response.json()["errors"]) == {"card_type", "card_serial", "card_code"}


def test_deposit_credits_wallet(user, client_for):
    response = client_for(user).post("/api/v1/wallet/deposit/", {"amount": "50000"}, format="json")

    assert response.status_code == 200
    assert response.json()["data"]["wallet"]["balance"] == "50000.00"
    txn = Transaction.objects.get(user=user)
    assert (txn.kind, txn.amount) == (Transaction.KIND_DEPOSIT, Decimal("50000"))


def test_deposit_below_minimum_is_rejected(user):
    with pytest.raises(ValidationError):
        services.deposit(user, Decimal("9999"))
    assert _balance(user) == Decimal("0")


def test_deposit_creates_missing_wallet(make_user):
    user = make_user()
    Wallet.objects.filter(user=user).delete()

    services.deposit(user, Decimal("10000"))

    assert _balance(user) == Decimal("10000")


def test_balance_matches_signed_transaction_history(user, make_product, add_to_cart):
    start = _balance(user)
    services.deposit(user, Decimal("200000"))
    services.redeem_card(user, "VIETTEL", SERIAL, "1" * 14)
    add_to_cart(user, make_product(price="120000", stock=2), 1)
    checkout(user, Order.PAYMENT_WALLET, "12 Nguyen Hue, District 1", "0901234567")

    history = sum(txn.signed_amount for txn in Transaction.objects.filter(user=user))
    assert _balance(user) - start == history == Decimal("120000")


def test_transactions_are_append_only(user):
    txn = services.deposit(user, Decimal("10000"))["transaction"]
    txn.amount = Decimal("1")
    with pytest.raises(ValueError):
        txn.save()


def test_wallet_balance_cannot_go_negative(user):
    with pytest.raises(IntegrityError):
        Wallet.objects.filter(user=user).update(balance=Decimal("-1"))


def test_wallet_view_includes_recent_transactions(user, client_for):
    services.deposit(user, Decimal("10000"))
    services.deposit(user, Decimal("20000"))
    client = client_for(user)

    plain = client.get("/api/v1/wallet/").json()["data"]
    detailed = client.get("/api/v1/wallet/", {"include_transactions": "true"}).json()["data"]

    assert plain["balance"] == "30000.00"
    assert "transactions" not in plain
    assert [t["amount"] for t in detailed["transactions"]] == ["20000.00", "10000.00"]


def test_wallet_view_without_wallet_is_404(user, client_for):
    Wallet.objects.filter(user=user).delete()

    response = client_for(user).get("/api/v1/wallet/")

    assert response.status_code == 404
    assert response.json()["code"] == "not_found"


@pytest.mark.django_db(transaction=True)
def test_concurrent_redemptions_credit_once(make_user, race):
    holders = [make_user(email=f"holder{i}@example.com") for i in range(4)]

    outcomes = race(lambda holder: services.redeem_card(holder, "VIETTEL", SERIAL, CODE_100K), holders)

    winners = [status for status, _ in outcomes if status == "ok"]
    losers = [status for status, _ in outcomes if status != "ok"]
    assert len(winners) == 1
    assert all(status in (400, 409) for status in losers)
    assert Transaction.objects.filter(kind=Transaction.KIND_CARD_TOPUP).count() == 1
    assert sum(Wallet.objects.values_list("balance", flat=True)) == Decimal("80000")
