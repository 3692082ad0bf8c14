# orders/apps.py

"""
ORDERS APP CONFIG (COMPOSITION ROOT)

Owns the single OrderSyncEngine for this process:

    apps.get_app_config("orders").sync_engine

The scheduler only starts when settings.ORDER_SYNC_AUTOSTART is true
(never under the test runner).
"""

import logging
import os
import sys

from django.apps import AppConfig
from django.conf import settings

logger = logging.getLogger(__name__)


def _is_autoreload_parent() -> bool:
    # runserver's file watcher process also imports apps; only the child serves.
    return "runserver" in sys.argv and os.environ.get("RUN_MAIN") != "true"


class OrdersConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "orders"
    verbose_name = "Orders"

    sync_engine = None

    def ready(self):
        from orders.services.reconciliation import OrderSyncEngine

        self.sync_engine = OrderSyncEngine(
            interval_seconds=getattr(settings, "ORDER_SYNC_INTERVAL_SECONDS", 120),
        )

        if not getattr(settings, "ORDER_SYNC_AUTOSTART", False):
            return
        if _is_autoreload_parent():
            logger.info("Order sync engine not started in autoreload parent")
            return

        self.sync_engine.start()
