# orders/tests/test_engine.py

from datetime import timedelta
from decimal import Decimal
from unittest import mock

from django.test import TestCase
from django.utils import timezone

from orders.models import Order
from orders.services.reconciliation import TICK_JOB_ID, OrderSyncEngine
from orders.tests.fakes import (
    FakeProviderClient,
    make_order,
    make_provider,
    make_service,
    make_user,
)
from providers.services.provider_client import PlaceOrderResult
from wallet.models import Transaction


class RetryPendingOrdersTests(TestCase):
    """
    Duty A: pending + unsent orders are (re)sent to their provider.
    """

    def setUp(self):
        self.user = make_user()
        self.provider = make_provider()
        self.service = make_service(provider=self.provider)

    def test_selects_only_pending_unsent_orders(self):
        unsent = make_order(self.user, self.service)
        make_order(
            self.user,
            self.service,
            is_sent_to_provider=True,
            provider_order_id="EXISTING",
        )
        make_order(self.user, self.service, status=Order.STATUS_CANCELLED)

        client = FakeProviderClient(place_results=[PlaceOrderResult(provider_order_id="P1")])
        report = OrderSyncEngine(client=client).retry_pending_orders()

        self.assertEqual(report.examined, 1)
        self.assertEqual(report.succeeded, 1)
        self.assertEqual(len(client.place_calls), 1)

        unsent.refresh_from_db()
        self.assertEqual(unsent.provider_order_id, "P1")
        self.assertTrue(unsent.is_sent_to_provider)
        self.assertEqual(unsent.status, Order.STATUS_PROCESSING)

    def test_sends_binding_fields_to_provider(self):
        order = make_order(self.user, self.service, quantity=1500, total="75.00")
        client = FakeProviderClient(place_results=[PlaceOrderResult(provider_order_id="P9")])

        OrderSyncEngine(client=client).retry_pending_orders()

        self.assertEqual(
            client.place_calls,
            [(self.provider.pk, "101", order.target_url, 1500)],
        )

    def test_failed_placement_leaves_order_untouched(self):
        order = make_order(self.user, self.service)
        client = FakeProviderClient(place_results=[PlaceOrderResult(error="Not enough funds")])

        report = OrderSyncEngine(client=client).retry_pending_orders()

        self.assertEqual(report.failed, 1)
        order.refresh_from_db()
        self.assertEqual(order.status, Order.STATUS_PENDING)
        self.assertFalse(order.is_sent_to_provider)
        self.assertIsNone(order.provider_order_id)

    def test_failed_order_is_retried_on_next_tick(self):
        order = make_order(self.user, self.service)
        client = FakeProviderClient(
            place_results=[
                PlaceOrderResult(error="timeout"),
                PlaceOrderResult(provider_order_id="P2"),
            ]
        )
        engine = OrderSyncEngine(client=client)

        engine.retry_pending_orders()
        engine.retry_pending_orders()

        order.refresh_from_db()
        self.assertEqual(order.provider_order_id, "P2")
        self.assertEqual(len(client.place_calls), 2)

    def test_service_without_binding_is_skipped(self):
        unbound = make_service(provider=None, name="Manual service")
        order = make_order(self.user, unbound)
        client = FakeProviderClient()

        report = OrderSyncEngine(client=client).retry_pending_orders()

        self.assertEqual(report.skipped, 1)
        self.assertEqual(client.place_calls, [])
        order.refresh_from_db()
        self.assertEqual(order.status, Order.STATUS_PENDING)

    def test_inactive_provider_is_skipped(self):
        self.provider.is_active = False
        self.provider.save()
        make_order(self.user, self.service)
        client = FakeProviderClient()

        report = OrderSyncEngine(client=client).retry_pending_orders()

        self.assertEqual(report.skipped, 1)
        self.assertEqual(client.place_calls, [])

    def test_one_crashing_order_does_not_abort_the_rest(self):
        first = make_order(self.user, self.service)
        second = make_order(self.user, self.service)
        client = FakeProviderClient(
            place_results=[
                RuntimeError("boom"),
                PlaceOrderResult(provider_order_id="P3"),
            ]
        )

        report = OrderSyncEngine(client=client).retry_pending_orders()

        self.assertEqual(report.examined, 2)
        self.assertEqual(report.failed, 1)
        self.assertEqual(report.succeeded, 1)
        first.refresh_from_db()
        second.refresh_from_db()
        self.assertFalse(first.is_sent_to_provider)
        self.assertEqual(second.provider_order_id, "P3")

    def test_order_cancelled_during_placement_is_not_overwritten(self):
        order = make_order(self.user, self.service)
        client = FakeProviderClient(place_results=[PlaceOrderResult(provider_order_id="LATE")])
        engine = OrderSyncEngine(client=client)

        # Stale in-memory copy: the row was cancelled after it was loaded.
        Order.objects.filter(pk=order.pk).update(status=Order.STATUS_CANCELLED)

        self.assertFalse(engine.place_order_with_provider(order))
        order.refresh_from_db()
        self.assertEqual(order.status, Order.STATUS_CANCELLED)
        self.assertIsNone(order.provider_order_id)


class ReentrantProviderClient(FakeProviderClient):
    """Runs a second engine tick from inside the first `add` call."""

    def __init__(self, engine_factory, **kwargs):
        super().__init__(**kwargs)
        self.engine_factory = engine_factory
        self.nested_reports = []

    def place_order(self, provider, provider_service_id, target_url, quantity):
        if not self.place_calls:
            self.nested_reports.append(self.engine_factory().run_tick())
        return super().place_order(provider, provider_service_id, target_url, quantity)


class PlacementClaimTests(TestCase):
    """
    A pending order is sent to the provider by at most one worker at a time,
    whichever process or thread runs the tick.
    """

    def setUp(self):
        self.user = make_user()
        self.service = make_service(provider=make_provider())

    def test_overlapping_retry_passes_send_the_order_once(self):
        order = make_order(self.user, self.service)
        client = ReentrantProviderClient(
            engine_factory=lambda: OrderSyncEngine(client=client),
            place_results=[
                PlaceOrderResult(provider_order_id="P1"),
                PlaceOrderResult(provider_order_id="P2"),
            ],
        )

        report = OrderSyncEngine(client=client).retry_pending_orders()

        self.assertEqual(len(client.place_calls), 1)
        self.assertEqual(report.succeeded, 1)
        nested = client.nested_reports[0]["retry_pending"]
        self.assertEqual((nested.examined, nested.skipped), (1, 1))

        order.refresh_from_db()
        self.assertEqual(order.provider_order_id, "P1")
        self.assertEqual(order.status, Order.STATUS_PROCESSING)
        self.assertIsNone(order.placement_claimed_at)

    def test_live_claim_skips_the_order(self):
        make_order(self.user, self.service, placement_claimed_at=timezone.now())
        client = FakeProviderClient(place_results=[PlaceOrderResult(provider_order_id="P1")])

        report = OrderSyncEngine(client=client).retry_pending_orders()

        self.assertEqual(report.skipped, 1)
        self.assertEqual(client.place_calls, [])

    def test_abandoned_claim_is_taken_over(self):
        order = make_order(
            self.user, self.service, placement_claimed_at=timezone.now() - timedelta(hours=1)
        )
        client = FakeProviderClient(place_results=[PlaceOrderResult(provider_order_id="P1")])

        report = OrderSyncEngine(client=client).retry_pending_orders()

        self.assertEqual(report.succeeded, 1)
        order.refresh_from_db()
        self.assertEqual(order.provider_order_id, "P1")

    def test_rejected_or_crashed_placement_releases_the_claim(self):
        rejected = make_order(self.user, self.service)
        crashed = make_order(self.user, self.service)
        client = FakeProviderClient(
            place_results=[PlaceOrderResult(error="Not enough funds"), RuntimeError("boom")]
        )

        report = OrderSyncEngine(client=client).retry_pending_orders()

        self.assertEqual(report.failed, 2)
        for order in (rejected, crashed):
            order.refresh_from_db()
            self.assertIsNone(order.placement_claimed_at)
            self.assertEqual(order.status, Order.STATUS_PENDING)


class RequestTickTests(TestCase):
    def test_not_running_engine_does_not_queue(self):
        self.assertFalse(OrderSyncEngine(client=FakeProviderClient()).request_tick())

    def test_running_engine_pulls_the_tick_forward(self):
        engine = OrderSyncEngine(client=FakeProviderClient())
        engine._scheduler = mock.Mock(running=True)

        with mock.patch.object(engine, "run_tick") as run_tick:
            self.assertTrue(engine.request_tick())

        run_tick.assert_not_called()
        engine._scheduler.modify_job.assert_called_once_with(TICK_JOB_ID, next_run_time=mock.ANY)


class SyncOrderStatusesTests(TestCase):
    """
    Duty B: provider status is mirrored onto sent, non-terminal orders.
    """

    def setUp(self):
        self.user = make_user(balance="0.00")
        self.provider = make_provider()
        self.service = make_service(provider=self.provider)

    def _sent_order(self, provider_order_id="P1", status=Order.STATUS_PROCESSING):
        return make_order(
            self.user,
            self.service,
            is_sent_to_provider=True,
            provider_order_id=provider_order_id,
            status=status,
        )

    def test_completed_sets_completed_at_and_progress(self):
        order = self._sent_order()
        client = FakeProviderClient(
            statuses={
                "P1": {"status": "Completed", "start_count": "100", "current": "1100", "remains": "0"}
            }
        )

        report = OrderSyncEngine(client=client).sync_order_statuses()

        self.assertEqual(report.succeeded, 1)
        order.refresh_from_db()
        self.assertEqual(order.status, Order.STATUS_COMPLETED)
        self.assertIsNotNone(order.completed_at)
        self.assertEqual(order.start_count, 100)
        self.assertEqual(order.delivered_count, 1000)
        self.assertEqual(order.completion_percentage, Decimal("100.00"))

    def test_progress_fields_follow_provider(self):
        order = self._sent_order()
        client = FakeProviderClient(
            statuses={"P1": {"status": "In progress", "start_count": 100, "current": 150, "charge": 100}}
        )

        OrderSyncEngine(client=client).sync_order_statuses()

        order.refresh_from_db()
        self.assertEqual(order.status, Order.STATUS_PROCESSING)
        self.assertEqual(order.delivered_count, 50)
        self.assertEqual(order.completion_percentage, Decimal("50.00"))

    def test_partial_is_recorded_but_not_polled_again(self):
        order = self._sent_order()
        client = FakeProviderClient(statuses={"P1": {"status": "Partial", "remains": "200"}})
        engine = OrderSyncEngine(client=client)

        engine.sync_order_statuses()
        order.refresh_from_db()
        self.assertEqual(order.status, Order.STATUS_PARTIAL)

        report = engine.sync_order_statuses()
        self.assertEqual(report.examined, 0)

    def test_provider_cancel_refunds_exactly_once(self):
        order = self._sent_order()
        client = FakeProviderClient(statuses={"P1": {"status": "Canceled"}})
        engine = OrderSyncEngine(client=client)

        engine.sync_order_statuses()
        engine.sync_order_statuses()

        order.refresh_from_db()
        self.user.refresh_from_db()
        self.assertEqual(order.status, Order.STATUS_CANCELLED)
        self.assertIsNotNone(order.refunded_at)
        self.assertEqual(self.user.wallet_balance, Decimal("50.00"))
        self.assertEqual(
            Transaction.objects.filter(order=order, type=Transaction.TYPE_REFUND).count(), 1
        )

    def test_status_error_skips_order(self):
        order = self._sent_order()
        client = FakeProviderClient(statuses={})

        report = OrderSyncEngine(client=client).sync_order_statuses()

        self.assertEqual(report.failed, 1)
        order.refresh_from_db()
        self.assertEqual(order.status, Order.STATUS_PROCESSING)
        self.assertEqual(order.completion_percentage, Decimal("0.00"))

    def test_terminal_orders_are_never_polled_or_changed(self):
        done = self._sent_order("DONE")
        client = FakeProviderClient(statuses={"DONE": {"status": "Completed"}})
        engine = OrderSyncEngine(client=client)
        engine.sync_order_statuses()

        client.statuses["DONE"] = {"status": "Processing", "start_count": 5}
        for _ in range(3):
            engine.sync_order_statuses()

        done.refresh_from_db()
        self.assertEqual(done.status, Order.STATUS_COMPLETED)
        self.assertEqual(done.start_count, 0)
        self.assertEqual(client.status_calls, ["DONE"])


class SingleOrderSyncTests(TestCase):
    def setUp(self):
        self.user = make_user(balance="0.00")
        self.provider = make_provider()
        self.service = make_service(provider=self.provider)

    def test_returns_false_when_not_eligible(self):
        engine = OrderSyncEngine(client=FakeProviderClient())
        unsent = make_order(self.user, self.service)
        cancelled = make_order(
            self.user,
            self.service,
            status=Order.STATUS_CANCELLED,
            is_sent_to_provider=True,
            provider_order_id="X",
        )

        self.assertFalse(engine.sync_single_order(999999))
        self.assertFalse(engine.sync_single_order(unsent.pk))
        self.assertFalse(engine.sync_single_order(cancelled.pk))

    def test_returns_false_on_provider_error(self):
        order = make_order(
            self.user, self.service, is_sent_to_provider=True, provider_order_id="P1"
        )
        engine = OrderSyncEngine(client=FakeProviderClient(statuses={}))

        self.assertFalse(engine.sync_single_order(order.pk))

    def test_provider_cancel_is_not_applied_on_demand(self):
        order = make_order(
            self.user,
            self.service,
            is_sent_to_provider=True,
            provider_order_id="P1",
            status=Order.STATUS_PROCESSING,
        )
        client = FakeProviderClient(
            statuses={"P1": {"status": "Cancelled", "start_count": 10, "current": 20, "charge": 40}}
        )

        self.assertTrue(OrderSyncEngine(client=client).sync_single_order(order.pk))

        order.refresh_from_db()
        self.assertEqual(order.status, Order.STATUS_PROCESSING)
        self.assertEqual(order.delivered_count, 10)
        self.assertEqual(order.completion_percentage, Decimal("25.00"))
        self.assertIsNone(order.refunded_at)
        self.assertFalse(Transaction.objects.filter(order=order).exists())

    def test_applies_completed(self):
        order = make_order(
            self.user, self.service, is_sent_to_provider=True, provider_order_id="P1"
        )
        client = FakeProviderClient(statuses={"P1": {"status": "complete"}})

        self.assertTrue(OrderSyncEngine(client=client).sync_single_order(order.pk))

        order.refresh_from_db()
        self.assertEqual(order.status, Order.STATUS_COMPLETED)


class TickAndLifecycleTests(TestCase):
    def test_end_to_end_place_process_cancel_refund(self):
        from orders.services.placement import place_order

        user = make_user(balance="100.00")
        service = make_service(provider=make_provider())

        order = place_order(
            user=user,
            service=service,
            target_url="https://instagram.com/someone",
            quantity=1000,
        )
        user.refresh_from_db()
        self.assertEqual(order.total_price, Decimal("50.00"))
        self.assertEqual(user.wallet_balance, Decimal("50.00"))

        client = FakeProviderClient(place_results=[PlaceOrderResult(provider_order_id="P1")])
        engine = OrderSyncEngine(client=client)

        engine.run_tick()
        order.refresh_from_db()
        self.assertEqual(order.status, Order.STATUS_PROCESSING)
        self.assertEqual(order.provider_order_id, "P1")

        client.statuses["P1"] = {"status": "Cancelled"}
        engine.run_tick()
        order.refresh_from_db()
        user.refresh_from_db()
        self.assertEqual(order.status, Order.STATUS_CANCELLED)
        self.assertEqual(user.wallet_balance, Decimal("100.00"))

        engine.run_tick()
        order.refresh_from_db()
        user.refresh_from_db()
        self.assertEqual(order.status, Order.STATUS_CANCELLED)
        self.assertEqual(user.wallet_balance, Decimal("100.00"))
        self.assertEqual(
            Transaction.objects.filter(order=order, type=Transaction.TYPE_REFUND).count(), 1
        )
        # Polled on ticks 1 and 2 only; the cancelled order drops out of Duty B.
        self.assertEqual(client.status_calls, ["P1", "P1"])

    def test_failing_duty_does_not_block_the_other(self):
        engine = OrderSyncEngine(client=FakeProviderClient())

        with mock.patch.object(engine, "retry_pending_orders", side_effect=RuntimeError("db down")):
            reports = engine.run_tick()

        self.assertEqual(reports["retry_pending"].error, "db down")
        self.assertIsNone(reports["sync_statuses"].error)

    def test_dispatch_without_running_scheduler_defers_to_retry(self):
        engine = OrderSyncEngine(client=FakeProviderClient())
        self.assertFalse(engine.is_running)
        self.assertFalse(engine.dispatch_placement(123))

    def test_start_and_stop_are_idempotent(self):
        engine = OrderSyncEngine(client=FakeProviderClient(), interval_seconds=3600)

        with mock.patch.object(engine, "run_tick"):
            engine.start()
            scheduler = engine._scheduler
            engine.start()
            self.assertTrue(engine.is_running)
            self.assertIs(engine._scheduler, scheduler)

            engine.stop()
            engine.stop()

        self.assertFalse(engine.is_running)
