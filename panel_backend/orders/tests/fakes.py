# orders/tests/fakes.py

"""
Shared fixtures for order tests: a scripted provider client and model builders.
No test ever talks to a real provider.
"""

from decimal import Decimal

from django.contrib.auth import get_user_model

from catalog.models import Service, ServiceCategory
from orders.models import Order
from providers.models import Provider
from providers.services.provider_client import (
    PlaceOrderResult,
    StatusResult,
    derive_progress,
    map_provider_status,
)

User = get_user_model()


class FakeProviderClient:
    """
    Scripted stand-in for ProviderClient.

    - place_results: consumed in order; when exhausted, placement fails.
    - statuses: provider_order_id -> raw payload dict (or StatusResult).
    """

    def __init__(self, place_results=None, statuses=None):
        self.place_results = list(place_results or [])
        self.statuses = dict(statuses or {})
        self.place_calls = []
        self.status_calls = []

    def place_order(self, provider, provider_service_id, target_url, quantity):
        self.place_calls.append((provider.pk, provider_service_id, target_url, quantity))
        if not self.place_results:
            return PlaceOrderResult(error="API Error: Provider unreachable")
        result = self.place_results.pop(0)
        if isinstance(result, Exception):
            raise result
        return result

    def check_status(self, provider, provider_order_id):
        self.status_calls.append(provider_order_id)
        payload = self.statuses.get(provider_order_id)
        if payload is None:
            return StatusResult(error="No data received")
        if isinstance(payload, StatusResult):
            return payload
        return StatusResult(
            status=map_provider_status(payload.get("status")),
            raw_status=str(payload.get("status") or ""),
            **derive_progress(payload),
        )


def make_user(email="buyer@example.com", balance="100.00", **extra):
    user = User.objects.create_user(email=email, password="pass", **extra)
    if balance is not None:
        User.objects.filter(pk=user.pk).update(wallet_balance=Decimal(balance))
        user.refresh_from_db()
    return user


def make_admin(email="admin@example.com"):
    return User.objects.create_user(email=email, password="pass", role=User.ROLE_ADMIN)


def make_provider(name="Upstream", **extra):
    return Provider.objects.create(
        name=name,
        api_url="https://provider.example/api/v2",
        api_key="secret-key",
        **extra,
    )


def make_service(provider=None, provider_service_id="101", **extra):
    category, _ = ServiceCategory.objects.get_or_create(
        slug="instagram", defaults={"name": "Instagram"}
    )
    defaults = {
        "name": "Instagram Followers",
        "price_per_thousand": Decimal("50.0000"),
        "min_quantity": 100,
        "max_quantity": 10000,
    }
    defaults.update(extra)
    return Service.objects.create(
        category=category,
        provider=provider,
        provider_service_id=provider_service_id if provider else None,
        **defaults,
    )


def make_order(user, service, *, quantity=1000, total="50.00", **extra):
    return Order.objects.create(
        user=user,
        service=service,
        target_url="https://instagram.com/someone",
        quantity=quantity,
        total_price=Decimal(total),
        **extra,
    )
