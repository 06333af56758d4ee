"""
PATH: manage.py

Django management entrypoint.

An unset DJANGO_SETTINGS_MODULE, or one pointing at the bare "backend.settings"
package (which defines nothing), is replaced with a concrete module:
- `manage.py test ...` -> backend.settings.test
- anything else        -> backend.settings.dev

Production must set DJANGO_SETTINGS_MODULE=backend.settings.prod explicitly.
"""

from __future__ import annotations

import os
import sys


def _ensure_settings_module(argv: list[str]) -> None:
    current = (os.environ.get("DJANGO_SETTINGS_MODULE") or "").strip()

    if not current or current == "backend.settings":
        is_test = len(argv) > 1 and argv[1] == "test"
        os.environ["DJANGO_SETTINGS_MODULE"] = (
            "backend.settings.test" if is_test else "backend.settings.dev"
        )


def main() -> None:
    _ensure_settings_module(sys.argv)

    try:
        from django.core.management import execute_from_command_line
    except ImportError as exc:
        raise ImportError(
            "Couldn't import Django. Are you sure it's installed and "
            "available on your PYTHONPATH environment variable? Did you "
            "forget to activate a virtual environment?"
        ) from exc

    execute_from_command_line(sys.argv)


if __name__ == "__main__":
    main()
