from django.conf import settings

DEFAULTS = {
    "CARD_TOPUP_FEE_RATE": "0.20",
    "MIN_DEPOSIT": "10000",
    "CARD_TYPES": ("VIETTEL", "VINAPHONE", "MOBIFONE"),
    "CARD_VERIFIER": "wallet.verifiers.CodeLengthCardVerifier",
    "WALLET_TRANSACTIONS_LIMIT": 20,
    "ACCESS_COOKIE": "access_token",
    "REFRESH_COOKIE": "refresh_token",
}


def storefront_setting(name):
    """Look up a key of the STOREFRONT settings dict, falling back to DEFAULTS."""
    overrides = getattr(settings, "STOREFRONT", {}) or {}
    if name in overrides:
        return overrides[name]
    return DEFAULTS[name]
