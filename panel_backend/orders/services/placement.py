# orders/services/placement.py

"""
ORDER PLACEMENT (CUSTOMER CHECKOUT)

One DB transaction:
1) validate service + quantity
2) price: price_per_thousand * quantity / 1000, half-up to 2dp
3) lock the user row, check balance
4) create the PENDING order, debit the wallet (`order` Transaction, -total)

After COMMIT the order is handed to the sync engine for provider placement.
If the engine is not running (or the hand-off is lost), the next
reconciliation tick picks the order up: pending + unsent is the retry queue.
"""

import logging
from decimal import ROUND_HALF_UP, Decimal

from django.apps import apps
from django.contrib.auth import get_user_model
from django.db import transaction

from catalog.models import Service
from orders.models import Order
from wallet.models import Transaction
from wallet.services.wallet_service import InsufficientBalanceError, debit_wallet

logger = logging.getLogger(__name__)

TWOPLACES = Decimal("0.01")

__all__ = [
    "PlacementError",
    "ServiceUnavailableError",
    "InvalidOrderQuantityError",
    "InsufficientBalanceError",
    "calculate_total",
    "place_order",
]


# ============================================================
# DOMAIN ERRORS
# ============================================================

class PlacementError(Exception):
    pass


class ServiceUnavailableError(PlacementError):
    pass


class InvalidOrderQuantityError(PlacementError):
    pass


# ============================================================
# PRICING
# ============================================================

def calculate_total(service: Service, quantity: int) -> Decimal:
    return service.price_for(quantity).quantize(TWOPLACES, rounding=ROUND_HALF_UP)


# ============================================================
# PLACEMENT
# ============================================================

def _dispatch_after_commit(order_id: int, has_binding: bool):
    if not has_binding:
        logger.warning(
            "Service has no provider binding; order stays pending",
            extra={"order_id": order_id},
        )
        return

    engine = apps.get_app_config("orders").sync_engine
    if engine is None:
        logger.warning("Order sync engine unavailable", extra={"order_id": order_id})
        return
    engine.dispatch_placement(order_id)


@transaction.atomic
def place_order(*, user, service: Service, target_url: str, quantity: int) -> Order:
    if not service.is_active:
        raise ServiceUnavailableError("Service is not available")

    quantity = int(quantity)
    if quantity < service.min_quantity or quantity > service.max_quantity:
        raise InvalidOrderQuantityError(
            f"Quantity must be between {service.min_quantity} and {service.max_quantity}"
        )

    total = calculate_total(service, quantity)
    if total <= 0:
        raise InvalidOrderQuantityError("Order total must be greater than zero")

    locked_user = get_user_model().objects.select_for_update().get(pk=user.pk)
    if locked_user.wallet_balance < total:
        raise InsufficientBalanceError(
            f"Insufficient balance. Required: {total}, Available: {locked_user.wallet_balance}"
        )

    order = Order.objects.create(
        user=user,
        service=service,
        target_url=target_url,
        quantity=quantity,
        total_price=total,
        status=Order.STATUS_PENDING,
    )

    debit_wallet(
        user=user,
        amount=total,
        tx_type=Transaction.TYPE_ORDER,
        description=f"Order #{order.pk} - {service.name}",
        order=order,
    )

    logger.info(
        "Order placed",
        extra={"order_id": order.pk, "user_id": user.pk, "total": str(total)},
    )

    has_binding = service.has_provider_binding
    transaction.on_commit(lambda: _dispatch_after_commit(order.pk, has_binding))
    return order
