# backend/asgi.py
"""
PATH: backend/asgi.py

ASGI config for the service POS backend.
Payment paths are blocking I/O sequences; ASGI is offered for deployment parity only.
"""

import os

from django.core.asgi import get_asgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "backend.settings.dev")

application = get_asgi_application()
