# orders/tests/test_api.py

from decimal import Decimal
from unittest import mock

from django.apps import apps
from django.test import TestCase
from rest_framework import status
from rest_framework.test import APIClient

from orders.models import Order
from orders.services.reconciliation import OrderSyncEngine
from orders.tests.fakes import (
    FakeProviderClient,
    make_admin,
    make_order,
    make_provider,
    make_service,
    make_user,
)
from providers.services.provider_client import PlaceOrderResult


class OrderApiTests(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.user = make_user(balance="100.00")
        self.other = make_user(email="other@example.com")
        self.admin = make_admin()
        self.service = make_service(provider=make_provider())
        self.client.force_authenticate(user=self.user)

    def _engine_with(self, client):
        return mock.patch.object(
            apps.get_app_config("orders"), "sync_engine", OrderSyncEngine(client=client)
        )

    # --------------------------------------------------
    # PLACE
    # --------------------------------------------------

    def test_place_order(self):
        res = self.client.post(
            "/api/orders/",
            {
                "service": self.service.pk,
                "target_url": "https://instagram.com/someone",
                "quantity": 1000,
            },
            format="json",
        )

        self.assertEqual(res.status_code, status.HTTP_201_CREATED)
        self.assertEqual(res.data["status"], Order.STATUS_PENDING)
        self.assertEqual(res.data["total_price"], "50.00")
        self.user.refresh_from_db()
        self.assertEqual(self.user.wallet_balance, Decimal("50.00"))

    def test_place_order_insufficient_balance(self):
        res = self.client.post(
            "/api/orders/",
            {
                "service": self.service.pk,
                "target_url": "https://instagram.com/someone",
                "quantity": 5000,
            },
            format="json",
        )

        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(res.data["error"]["code"], "INSUFFICIENT_BALANCE")

    def test_place_order_requires_authentication(self):
        res = APIClient().post("/api/orders/", {}, format="json")
        self.assertEqual(res.status_code, status.HTTP_401_UNAUTHORIZED)

    # --------------------------------------------------
    # READ
    # --------------------------------------------------

    def test_list_shows_only_own_orders(self):
        mine = make_order(self.user, self.service)
        make_order(self.other, self.service)

        res = self.client.get("/api/orders/")

        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertEqual([row["id"] for row in res.data["results"]], [mine.pk])

    def test_other_users_order_is_hidden(self):
        theirs = make_order(self.other, self.service)

        res = self.client.get(f"/api/orders/{theirs.pk}/")
        self.assertEqual(res.status_code, status.HTTP_404_NOT_FOUND)

    def test_admin_can_read_any_order(self):
        theirs = make_order(self.other, self.service)
        self.client.force_authenticate(user=self.admin)

        res = self.client.get(f"/api/orders/{theirs.pk}/")
        self.assertEqual(res.status_code, status.HTTP_200_OK)

    # --------------------------------------------------
    # CANCEL
    # --------------------------------------------------

    def test_self_cancel(self):
        order = make_order(self.user, self.service)

        res = self.client.post(f"/api/orders/{order.pk}/cancel/")

        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertEqual(res.data["status"], Order.STATUS_CANCELLED)

    def test_self_cancel_of_sent_order_conflicts(self):
        order = make_order(
            self.user, self.service, is_sent_to_provider=True, provider_order_id="P1"
        )

        res = self.client.post(f"/api/orders/{order.pk}/cancel/")

        self.assertEqual(res.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(res.data["error"]["code"], "ORDER_NOT_CANCELLABLE")

    # --------------------------------------------------
    # ON-DEMAND SYNC
    # --------------------------------------------------

    def test_sync_unsent_order_is_rejected(self):
        order = make_order(self.user, self.service)

        res = self.client.post(f"/api/orders/{order.pk}/sync/")

        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(res.data["error"]["code"], "ORDER_NOT_SYNCABLE")

    def test_sync_updates_progress(self):
        order = make_order(
            self.user,
            self.service,
            status=Order.STATUS_PROCESSING,
            is_sent_to_provider=True,
            provider_order_id="P1",
        )
        fake = FakeProviderClient(
            statuses={"P1": {"status": "Processing", "start_count": 100, "current": 150, "charge": 100}}
        )

        with self._engine_with(fake):
            res = self.client.post(f"/api/orders/{order.pk}/sync/")

        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertEqual(res.data["delivered_count"], 50)
        self.assertEqual(res.data["completion_percentage"], "50.00")

    def test_sync_provider_failure_is_bad_gateway(self):
        order = make_order(
            self.user, self.service, is_sent_to_provider=True, provider_order_id="P1"
        )

        with self._engine_with(FakeProviderClient(statuses={})):
            res = self.client.post(f"/api/orders/{order.pk}/sync/")

        self.assertEqual(res.status_code, status.HTTP_502_BAD_GATEWAY)


class AdminOrderApiTests(TestCase):
    def setUp(self):
        self.client = APIClient()
        self.user = make_user(balance="0.00")
        self.admin = make_admin()
        self.service = make_service(provider=make_provider())
        self.client.force_authenticate(user=self.admin)

    def test_customer_is_forbidden(self):
        self.client.force_authenticate(user=self.user)

        self.assertEqual(self.client.get("/api/admin/orders/").status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(
            self.client.post("/api/admin/orders/sync/").status_code, status.HTTP_403_FORBIDDEN
        )

    def test_list_filters_by_status(self):
        pending = make_order(self.user, self.service)
        make_order(self.user, self.service, status=Order.STATUS_CANCELLED)

        res = self.client.get("/api/admin/orders/", {"status": "pending"})

        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertEqual([row["id"] for row in res.data["results"]], [pending.pk])

    def test_cancel_requires_reason(self):
        order = make_order(self.user, self.service)

        res = self.client.post(f"/api/admin/orders/{order.pk}/cancel/", {}, format="json")

        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(res.data["error"]["code"], "CANCEL_REASON_REQUIRED")

    def test_cancel_with_reason_refunds(self):
        order = make_order(self.user, self.service)

        res = self.client.post(
            f"/api/admin/orders/{order.pk}/cancel/", {"reason": "Bad link"}, format="json"
        )

        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertEqual(res.data["cancel_reason"], "Bad link")
        self.user.refresh_from_db()
        self.assertEqual(self.user.wallet_balance, Decimal("50.00"))

    def test_cancel_completed_conflicts(self):
        order = make_order(
            self.user,
            self.service,
            status=Order.STATUS_COMPLETED,
            is_sent_to_provider=True,
            provider_order_id="P1",
        )

        res = self.client.post(
            f"/api/admin/orders/{order.pk}/cancel/", {"reason": "late"}, format="json"
        )

        self.assertEqual(res.status_code, status.HTTP_409_CONFLICT)
        self.assertEqual(res.data["error"]["message"], "Cannot cancel completed orders")

    def test_force_tick_reports_counts(self):
        make_order(self.user, self.service)
        fake = FakeProviderClient(place_results=[PlaceOrderResult(provider_order_id="P1")])

        with mock.patch.object(
            apps.get_app_config("orders"), "sync_engine", OrderSyncEngine(client=fake)
        ):
            res = self.client.post("/api/admin/orders/sync/")

        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertEqual(res.data["retry_pending"]["succeeded"], 1)
        self.assertEqual(res.data["sync_statuses"]["examined"], 1)

    def test_force_tick_is_queued_on_a_running_engine(self):
        engine = OrderSyncEngine(client=FakeProviderClient())

        with mock.patch.object(apps.get_app_config("orders"), "sync_engine", engine), \
                mock.patch.object(engine, "request_tick", return_value=True), \
                mock.patch.object(engine, "run_tick") as run_tick:
            res = self.client.post("/api/admin/orders/sync/")

        self.assertEqual(res.status_code, status.HTTP_202_ACCEPTED)
        self.assertEqual(res.data, {"queued": True})
        run_tick.assert_not_called()
