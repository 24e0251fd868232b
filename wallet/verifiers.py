# wallet/verifiers.py
"""
Phone-card verification. A verifier turns card credentials into a face value,
or None when the card cannot be resolved. The class used is configured by
STOREFRONT["CARD_VERIFIER"] so a real provider can replace the stand-in.
"""
from decimal import Decimal

from django.utils.module_loading import import_string

from storefront.conf import storefront_setting


class BaseCardVerifier:
    def face_value(self, card_type, card_serial, card_code):
        raise NotImplementedError


class CodeLengthCardVerifier(BaseCardVerifier):
    """Offline stand-in: the denomination is keyed off the length of the card code."""
    DENOMINATIONS = {
        13: Decimal("10000"),
        14: Decimal("50000"),
        15: Decimal("100000"),
    }

    def face_value(self, card_type, card_serial, card_code):
        return self.DENOMINATIONS.get(len(card_code))


def get_card_verifier():
    return import_string(storefront_setting("CARD_VERIFIER"))()
