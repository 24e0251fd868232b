"""
Django settings for storefront project.

Values that differ between deployments are read from the environment.
For the full list of settings and their values, see
https://docs.djangoproject.com/en/5.2/ref/settings/
"""
import os
from datetime import timedelta
from decimal import Decimal
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent


def _env_bool(name, default=False):
    return os.environ.get(name, str(default)).strip().lower() in ("1", "true", "yes", "on")


SECRET_KEY = os.environ.get("DJANGO_SECRET_KEY", "django-insecure-storefront-dev-key-change-me")

DEBUG = _env_bool("DJANGO_DEBUG", True)

ALLOWED_HOSTS = [h.strip() for h in os.environ.get("DJANGO_ALLOWED_HOSTS", "*").split(",") if h.strip()]


INSTALLED_APPS = [
    "daphne",
    "django.contrib.admin",
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",
    "rest_framework",
    "rest_framework_simplejwt",
    "django_filters",
    "drf_spectacular",
    "channels",
    "user",
    "product",
    "cart",
    "wallet",
    "order",
    "admin_orders",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "storefront.middleware.jwt_cookie_middleware.JWTAuthCookieMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
    "django.contrib.messages.middleware.MessageMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
]

ROOT_URLCONF = "storefront.urls"

TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "DIRS": [],
        "APP_DIRS": True,
        "OPTIONS": {
            "context_processors": [
                "django.template.context_processors.request",
                "django.contrib.auth.context_processors.auth",
                "django.contrib.messages.context_processors.messages",
            ],
        },
    },
]

WSGI_APPLICATION = "storefront.wsgi.application"
ASGI_APPLICATION = "storefront.asgi.application"


# Database
# PostgreSQL when STOREFRONT_DB_NAME is set, SQLite otherwise.
if os.environ.get("STOREFRONT_DB_NAME"):
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.postgresql",
            "NAME": os.environ["STOREFRONT_DB_NAME"],
            "USER": os.environ.get("STOREFRONT_DB_USER", "postgres"),
            "PASSWORD": os.environ.get("STOREFRONT_DB_PASSWORD", ""),
            "HOST": os.environ.get("STOREFRONT_DB_HOST", "localhost"),
            "PORT": os.environ.get("STOREFRONT_DB_PORT", "5432"),
            "ATOMIC_REQUESTS": False,
        }
    }
else:
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.sqlite3",
            "NAME": os.environ.get("STOREFRONT_SQLITE_PATH", str(BASE_DIR / "db.sqlite3")),
            # writers queue on BEGIN instead of failing with "database is locked" mid-transaction
            "OPTIONS": {
                "transaction_mode": "IMMEDIATE",
                "timeout": int(os.environ.get("STOREFRONT_SQLITE_TIMEOUT", "20")),
            },
            # file-backed so concurrent test threads share one database
            "TEST": {
                "NAME": os.environ.get("STOREFRONT_SQLITE_TEST_PATH", str(BASE_DIR / "test_db.sqlite3")),
            },
        }
    }

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

AUTH_USER_MODEL = "user.User"

AUTH_PASSWORD_VALIDATORS = [
    {"NAME": "django.contrib.auth.password_validation.MinimumLengthValidator", "OPTIONS": {"min_length": 6}},
]


# Internationalization
LANGUAGE_CODE = "en-us"
TIME_ZONE = "Asia/Ho_Chi_Minh"
USE_I18N = True
USE_TZ = True


STATIC_URL = "static/"
STATIC_ROOT = BASE_DIR / "staticfiles"


REST_FRAMEWORK = {
    "DEFAULT_AUTHENTICATION_CLASSES": (
        "rest_framework_simplejwt.authentication.JWTAuthentication",
    ),
    "DEFAULT_PERMISSION_CLASSES": (
        "rest_framework.permissions.IsAuthenticated",
    ),
    "DEFAULT_FILTER_BACKENDS": (
        "django_filters.rest_framework.DjangoFilterBackend",
    ),
    "DEFAULT_SCHEMA_CLASS": "drf_spectacular.openapi.AutoSchema",
    "EXCEPTION_HANDLER": "storefront.exceptions.api_exception_handler",
}

SIMPLE_JWT = {
    "ACCESS_TOKEN_LIFETIME": timedelta(hours=1),
    "REFRESH_TOKEN_LIFETIME": timedelta(days=7),
    "AUTH_HEADER_TYPES": ("Bearer",),
}

SPECTACULAR_SETTINGS = {
    "TITLE": "Storefront API",
    "DESCRIPTION": "Catalog, cart, checkout and wallet API",
    "VERSION": "1.0.0",
}

CHANNEL_LAYERS = {
    "default": {
        "BACKEND": "channels.layers.InMemoryChannelLayer",
    },
}


# Business constants for checkout and wallet top-up.
STOREFRONT = {
    "CARD_TOPUP_FEE_RATE": Decimal("0.20"),
    "MIN_DEPOSIT": Decimal("10000"),
    "CARD_TYPES": ("VIETTEL", "VINAPHONE", "MOBIFONE"),
    "CARD_VERIFIER": "wallet.verifiers.CodeLengthCardVerifier",
    "WALLET_TRANSACTIONS_LIMIT": 20,
    "ACCESS_COOKIE": "access_token",
    "REFRESH_COOKIE": "refresh_token",
}


LOG_LEVEL = os.environ.get("STOREFRONT_LOG_LEVEL", "INFO").upper()

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "standard": {
            "format": "%(asctime)s %(levelname)s [%(name)s] %(message)s",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "standard",
        },
    },
    "root": {
        "handlers": ["console"],
        "level": "WARNING",
    },
    "loggers": {
        "storefront": {"handlers": ["console"], "level": LOG_LEVEL, "propagate": False},
        "user": {"handlers": ["console"], "level": LOG_LEVEL, "propagate": False},
        "cart": {"handlers": ["console"], "level": LOG_LEVEL, "propagate": False},
        "wallet": {"handlers": ["console"], "level": LOG_LEVEL, "propagate": False},
        "order": {"handlers": ["console"], "level": LOG_LEVEL, "propagate": False},
        "admin_orders": {"handlers": ["console"], "level": LOG_LEVEL, "propagate": False},
    },
}
