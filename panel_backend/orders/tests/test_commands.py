# orders/tests/test_commands.py

from io import StringIO
from unittest import mock

from django.apps import apps
from django.core.management import call_command
from django.test import TestCase

from orders.models import Order
from orders.services.reconciliation import OrderSyncEngine
from orders.tests.fakes import FakeProviderClient, make_order, make_provider, make_service, make_user
from providers.services.provider_client import PlaceOrderResult


class RunOrderSyncCommandTests(TestCase):
    def test_once_runs_a_single_tick(self):
        order = make_order(make_user(), make_service(provider=make_provider()))
        engine = OrderSyncEngine(
            client=FakeProviderClient(place_results=[PlaceOrderResult(provider_order_id="P1")])
        )
        out = StringIO()

        with mock.patch.object(apps.get_app_config("orders"), "sync_engine", engine):
            call_command("run_order_sync", once=True, stdout=out)

        order.refresh_from_db()
        self.assertEqual(order.status, Order.STATUS_PROCESSING)
        self.assertIn("retry_pending: examined=1 succeeded=1", out.getvalue())
        self.assertFalse(engine.is_running)
