# backend/settings/dev.py
"""
PATH: backend/settings/dev.py

LOCAL DEVELOPMENT SETTINGS
Safe + convenient defaults.

- Card payments run against the mock gateway unless a real key is configured,
  so the POS screens can be exercised end-to-end without gateway credentials.
"""

from __future__ import annotations

from .base import *  # noqa: F403
from .base import PAYMENTS, env

DEBUG = True

ALLOWED_HOSTS = env.list("ALLOWED_HOSTS", default=["localhost", "127.0.0.1"])

CORS_ALLOWED_ORIGINS = env.list(
    "CORS_ALLOWED_ORIGINS", default=["http://localhost:5173"]
)

CSRF_TRUSTED_ORIGINS = env.list(
    "CSRF_TRUSTED_ORIGINS", default=["http://localhost:5173"]
)

CORS_ALLOW_CREDENTIALS = True

if not PAYMENTS["CARD_GATEWAY"]["SECRET_KEY"]:
    PAYMENTS["CARD_GATEWAY"]["MOCK_MODE"] = env.bool(
        "CARD_GATEWAY_MOCK_MODE", default=True
    )
