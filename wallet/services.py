# wallet/services.py
"""
Wallet credits. Each balance change is written together with its
Transaction row inside one database transaction, so the balance never moves
without an audit record.
"""
import logging
from decimal import Decimal

from django.db import transaction, IntegrityError
from rest_framework.exceptions import ValidationError

from storefront.conf import storefront_setting
from storefront.exceptions import InvalidCardError, CardAlreadyUsedError
from storefront.identity import require_user
from .models import Wallet, Transaction
from .verifiers import get_card_verifier

logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")


def get_wallet(user):
    require_user(user)
    return Wallet.objects.filter(user=user).first()


def recent_transactions(user, limit=None):
    require_user(user)
    limit = limit or storefront_setting("WALLET_TRANSACTIONS_LIMIT")
    return list(Transaction.objects.filter(user=user).select_related("order")[:limit])


def _lock_wallet(user):
    wallet, _ = Wallet.objects.get_or_create(user=user)
    return Wallet.objects.select_for_update().get(pk=wallet.pk)


def _credit(user, amount, kind, description, **extra):
    wallet = _lock_wallet(user)
    Wallet.objects.credit(wallet.pk, amount)
    txn = Transaction.objects.create(
        user=user,
        kind=kind,
        amount=amount,
        status=Transaction.STATUS_COMPLETED,
        description=description,
        **extra,
    )
    wallet.refresh_from_db()
    return wallet, txn


def deposit(user, amount):
    """Direct top-up. Stands in for a payment-gateway callback."""
    require_user(user)
    amount = Decimal(str(amount)).quantize(CENTS)
    minimum = Decimal(str(storefront_setting("MIN_DEPOSIT")))
    if amount < minimum:
        raise ValidationError({"amount": [f"Minimum deposit is {minimum:,.0f} VND"]})

    with transaction.atomic():
        wallet, txn = _credit(user, amount, Transaction.KIND_DEPOSIT, "Wallet deposit")

    logger.info("Deposit of %s to wallet %s (user %s)", amount, wallet.pk, user.pk)
    return {"wallet": wallet, "transaction": txn}


def redeem_card(user, card_type, card_serial, card_code, verifier=None):
    """
    Credit the wallet from a prepaid phone card. The (serial, code) pair can be
    redeemed once; the replay check and the credit commit together.
    """
    require_user(user)
    verifier = verifier or get_card_verifier()

    face_value = verifier.face_value(card_type, card_serial, card_code)
    if face_value is None:
        raise InvalidCardError()
    face_value = Decimal(str(face_value))

    fee_rate = Decimal(str(storefront_setting("CARD_TOPUP_FEE_RATE")))
    credited = (face_value * (Decimal("1") - fee_rate)).quantize(CENTS)

    with transaction.atomic():
        if Transaction.objects.card_used(card_serial, card_code):
            raise CardAlreadyUsedError()
        try:
            # the partial unique index catches a concurrent redemption of the same card
            with transaction.atomic():
                wallet, txn = _credit(
                    user,
                    credited,
                    Transaction.KIND_CARD_TOPUP,
                    f"{card_type} card top-up {face_value:,.0f} VND",
                    card_type=card_type,
                    card_serial=card_serial,
                    card_code=card_code,
                )
        except IntegrityError:
            logger.warning("Concurrent redemption of card serial %s rejected", card_serial)
            raise CardAlreadyUsedError()

    logger.info(
        "Card top-up for user %s: face value %s, credited %s", user.pk, face_value, credited
    )
    return {
        "wallet": wallet,
        "transaction": txn,
        "face_value": face_value,
        "credited_amount": credited,
        "fee_rate": fee_rate,
    }
