# orders/services/reconciliation.py

"""
ORDER RECONCILIATION ENGINE

One OrderSyncEngine per process (owned by OrdersConfig). Each tick:

  Duty A  retry_pending_orders   pending + unsent  -> provider `add`
  Duty B  sync_order_statuses    sent + (pending | processing) -> provider `status`

Scheduling:
- BackgroundScheduler with ONE worker thread: ticks and placement jobs never
  overlap (max_instances=1, coalesce=True).
- No persisted cursor. Every tick re-derives its work from DB state, and
  every write is conditional, so a tick can always be redone.
- Manual triggers go through request_tick() when the scheduler runs here.
  Ticks in other processes (admin request, `run_order_sync --once`) are
  kept from double-sending by the per-order placement claim.

Failure isolation:
- One order failing never aborts the rest of its duty.
- One duty failing never prevents the other.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import asdict, dataclass
from datetime import datetime, timezone

from apscheduler.executors.pool import ThreadPoolExecutor
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.date import DateTrigger
from apscheduler.triggers.interval import IntervalTrigger
from django.conf import settings
from django.db import close_old_connections

from orders.models import Order
from orders.services.order_store import (
    OrderNotSyncableError,
    apply_placement,
    apply_provider_status,
    claim_placement,
    ensure_syncable,
    orders_needing_status_check,
    pending_unsent_orders,
    release_placement,
)
from providers.services.provider_client import ProviderClient

logger = logging.getLogger(__name__)

TICK_JOB_ID = "orders.sync_tick"

SUCCEEDED = "succeeded"
SKIPPED = "skipped"
FAILED = "failed"


@dataclass
class TickReport:
    duty: str
    examined: int = 0
    succeeded: int = 0
    skipped: int = 0
    failed: int = 0
    error: str | None = None

    def record(self, outcome: str):
        setattr(self, outcome, getattr(self, outcome) + 1)

    def as_dict(self) -> dict:
        return asdict(self)


class OrderSyncEngine:
    """
    Reconciles local orders with upstream providers.

    `client` defaults to a ProviderClient built on first use; tests pass a fake.
    """

    def __init__(self, client=None, interval_seconds: int | None = None):
        self._client = client
        self.interval_seconds = int(
            interval_seconds or getattr(settings, "ORDER_SYNC_INTERVAL_SECONDS", 120)
        )
        self._scheduler: BackgroundScheduler | None = None
        self._lock = threading.Lock()

    @property
    def client(self):
        if self._client is None:
            self._client = ProviderClient()
        return self._client

    # ======================================================
    # LIFECYCLE
    # ======================================================

    @property
    def is_running(self) -> bool:
        return self._scheduler is not None and self._scheduler.running

    def start(self):
        with self._lock:
            if self.is_running:
                return

            scheduler = BackgroundScheduler(
                executors={"default": ThreadPoolExecutor(max_workers=1)},
                job_defaults={"coalesce": True, "max_instances": 1},
            )
            scheduler.add_job(
                self._run_scheduled_tick,
                trigger=IntervalTrigger(seconds=self.interval_seconds),
                id=TICK_JOB_ID,
                name="Order reconciliation tick",
                next_run_time=datetime.now(timezone.utc),
                replace_existing=True,
                max_instances=1,
                coalesce=True,
                misfire_grace_time=self.interval_seconds,
            )
            scheduler.start()
            self._scheduler = scheduler

        logger.info("Order sync engine started (interval=%ss)", self.interval_seconds)

    def stop(self):
        with self._lock:
            if self._scheduler is None:
                return
            if self._scheduler.running:
                # An in-flight tick finishes on its own; nothing waits for it.
                self._scheduler.shutdown(wait=False)
            self._scheduler = None

        logger.info("Order sync engine stopped")

    def request_tick(self) -> bool:
        """
        Pull the next scheduled tick forward to now.

        The tick then runs on the scheduler's own worker, never beside another
        tick. Returns False when the engine is not running.
        """
        if not self.is_running:
            return False
        self._scheduler.modify_job(TICK_JOB_ID, next_run_time=datetime.now(timezone.utc))
        logger.info("Order sync tick requested")
        return True

    def dispatch_placement(self, order_id: int) -> bool:
        """
        Queue an immediate provider placement for `order_id`.

        Returns False when the engine is not running; the order then waits
        for the next Duty A pass.
        """
        if not self.is_running:
            logger.info(
                "Sync engine not running; order left for retry",
                extra={"order_id": order_id},
            )
            return False

        self._scheduler.add_job(
            self._run_scheduled_placement,
            trigger=DateTrigger(run_date=datetime.now(timezone.utc)),
            args=[order_id],
            id=f"orders.place.{order_id}",
            replace_existing=True,
            misfire_grace_time=None,
        )
        return True

    # ======================================================
    # SCHEDULER ENTRY POINTS (worker thread)
    # ======================================================

    def _run_scheduled_tick(self):
        try:
            self.run_tick()
        except Exception:
            logger.exception("Order sync tick crashed")
        finally:
            close_old_connections()

    def _run_scheduled_placement(self, order_id: int):
        try:
            order = (
                pending_unsent_orders()
                .filter(pk=order_id)
                .first()
            )
            if order is None:
                return
            self.place_order_with_provider(order)
        except Exception:
            logger.exception("Order placement job crashed", extra={"order_id": order_id})
        finally:
            close_old_connections()

    # ======================================================
    # TICK
    # ======================================================

    def run_tick(self) -> dict[str, TickReport]:
        reports = {}
        duties = (
            ("retry_pending", self.retry_pending_orders),
            ("sync_statuses", self.sync_order_statuses),
        )
        for name, duty in duties:
            try:
                reports[name] = duty()
            except Exception as exc:
                logger.exception("Order sync duty %s failed", name)
                reports[name] = TickReport(duty=name, error=str(exc))
        return reports

    # ------------------------------------------------------
    # DUTY A
    # ------------------------------------------------------

    def retry_pending_orders(self) -> TickReport:
        report = TickReport(duty="retry_pending")

        for order in pending_unsent_orders():
            report.examined += 1
            try:
                outcome = self._place(order)
            except Exception:
                logger.exception("Order placement failed", extra={"order_id": order.pk})
                outcome = FAILED
            report.record(outcome)

        if report.examined:
            logger.info(
                "Pending retry: %s examined, %s placed, %s skipped, %s failed",
                report.examined,
                report.succeeded,
                report.skipped,
                report.failed,
            )
        return report

    def place_order_with_provider(self, order: Order) -> bool:
        return self._place(order) == SUCCEEDED

    def _place(self, order: Order) -> str:
        service = order.service
        if not service.has_provider_binding:
            logger.warning("Service has no provider binding", extra={"order_id": order.pk})
            return SKIPPED

        provider = service.provider
        if provider is None:
            logger.warning("Provider not found", extra={"order_id": order.pk})
            return SKIPPED
        if not provider.is_active:
            logger.warning(
                "Provider inactive", extra={"order_id": order.pk, "provider_id": provider.pk}
            )
            return SKIPPED

        claim = claim_placement(order.pk)
        if claim is None:
            logger.info("Order placement already in flight", extra={"order_id": order.pk})
            return SKIPPED

        try:
            result = self.client.place_order(
                provider,
                service.provider_service_id,
                order.target_url,
                order.quantity,
            )
        except Exception:
            release_placement(order.pk, claim)
            raise

        if not result.ok:
            release_placement(order.pk, claim)
            logger.warning(
                "Provider rejected order: %s",
                result.error,
                extra={"order_id": order.pk, "provider_id": provider.pk},
            )
            return FAILED

        # From here on the provider holds the order; the claim is only
        # cleared by apply_placement so a failed write never re-sends it.
        if not apply_placement(order.pk, result.provider_order_id):
            # Provider accepted but the order left pending+unsent meanwhile (e.g. self-cancel).
            logger.error(
                "Provider order %s has no pending local order",
                result.provider_order_id,
                extra={"order_id": order.pk, "provider_id": provider.pk},
            )
            return FAILED

        logger.info(
            "Order sent to provider",
            extra={"order_id": order.pk, "provider_order_id": result.provider_order_id},
        )
        return SUCCEEDED

    # ------------------------------------------------------
    # DUTY B
    # ------------------------------------------------------

    def sync_order_statuses(self) -> TickReport:
        report = TickReport(duty="sync_statuses")

        for order in orders_needing_status_check():
            report.examined += 1
            try:
                outcome = self._sync(order, allow_cancel=True)
            except Exception:
                logger.exception("Order status sync failed", extra={"order_id": order.pk})
                outcome = FAILED
            report.record(outcome)

        if report.examined:
            logger.info(
                "Status sync: %s examined, %s updated, %s skipped, %s failed",
                report.examined,
                report.succeeded,
                report.skipped,
                report.failed,
            )
        return report

    def sync_single_order(self, order_id: int) -> bool:
        """
        On-demand sync for one order.

        A provider-reported cancellation is NOT applied here; only the
        batch path cancels and refunds.
        """
        order = (
            Order.objects
            .select_related("service", "service__provider")
            .filter(pk=order_id)
            .first()
        )
        if order is None:
            return False

        try:
            ensure_syncable(order)
        except OrderNotSyncableError as exc:
            logger.info("Order not syncable: %s", exc, extra={"order_id": order_id})
            return False

        return self._sync(order, allow_cancel=False) == SUCCEEDED

    def _sync(self, order: Order, *, allow_cancel: bool) -> str:
        provider = order.service.provider
        if provider is None:
            logger.warning("Provider not found", extra={"order_id": order.pk})
            return SKIPPED

        result = self.client.check_status(provider, order.provider_order_id)
        if not result.ok:
            logger.warning(
                "Status check failed: %s",
                result.error,
                extra={"order_id": order.pk, "provider_id": provider.pk},
            )
            return FAILED

        updated = apply_provider_status(order.pk, result, allow_cancel=allow_cancel)
        return SUCCEEDED if updated is not None else SKIPPED
