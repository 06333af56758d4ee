# backend/settings/test.py
"""
PATH: backend/settings/test.py

TEST SETTINGS

Used by pytest (pytest-django) and by `manage.py test` when selected explicitly.
- In-memory sqlite
- Card gateway disabled (tests inject fake gateways through the services)
- Fast password hashing
"""

from __future__ import annotations

from .base import *  # noqa: F403
from .base import PAYMENTS

DEBUG = False

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": ":memory:",
    }
}

PASSWORD_HASHERS = ["django.contrib.auth.hashers.MD5PasswordHasher"]

PAYMENTS["CARD_GATEWAY"].update(
    {
        "SECRET_KEY": "",
        "MOCK_MODE": False,
    }
)

INVENTORY_TRACKING_ENABLED = True
PRICING_AUTO_APPLY_LATEST_DISCOUNT = True

REST_FRAMEWORK = {
    **REST_FRAMEWORK,  # noqa: F405
    "DEFAULT_THROTTLE_CLASSES": (),
}
