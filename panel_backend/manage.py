"""
PATH: manage.py

Django management entrypoint.

- If DJANGO_SETTINGS_MODULE is unset OR points at the settings *package*
  ("backend.settings"), force the concrete dev module.
- Production sets DJANGO_SETTINGS_MODULE=backend.settings.prod explicitly.

Bootstrap hook:
- RUN_CREATE_SUPERUSER=True with AUTO_ADMIN_EMAIL + AUTO_ADMIN_PASSWORD creates
  the first panel admin (idempotent).
"""

from __future__ import annotations

import os
import sys


def _ensure_settings_module() -> None:
    current = (os.environ.get("DJANGO_SETTINGS_MODULE") or "").strip()

    if not current or current == "backend.settings":
        os.environ["DJANGO_SETTINGS_MODULE"] = "backend.settings.dev"


def _create_superuser_if_requested() -> None:
    if os.environ.get("RUN_CREATE_SUPERUSER") != "True":
        return

    email = (os.environ.get("AUTO_ADMIN_EMAIL") or "").strip()
    password = os.environ.get("AUTO_ADMIN_PASSWORD") or ""
    if not email or not password:
        print("RUN_CREATE_SUPERUSER needs AUTO_ADMIN_EMAIL and AUTO_ADMIN_PASSWORD.")
        return

    import django
    django.setup()

    from django.contrib.auth import get_user_model

    User = get_user_model()

    if User.objects.filter(email__iexact=email).exists():
        print("Superuser already exists.")
        return

    User.objects.create_superuser(email=email, password=password)
    print("Superuser created.")


def main() -> None:
    _ensure_settings_module()

    try:
        from django.core.management import execute_from_command_line
    except ImportError as exc:
        raise ImportError(
            "Couldn't import Django. Are you sure it's installed and "
            "available on your PYTHONPATH environment variable? Did you "
            "forget to activate a virtual environment?"
        ) from exc

    _create_superuser_if_requested()

    execute_from_command_line(sys.argv)


if __name__ == "__main__":
    main()
