# orders/services/order_store.py

"""
ORDER STORE (ENGINE-FACING QUERIES + CONDITIONAL WRITES)

Every write here is safe to repeat from current DB state:
- claim_placement: conditional UPDATE that gives one worker, in any process,
  the right to call the provider for a pending, unsent order.
- apply_placement: conditional UPDATE, only for still-pending, unsent orders.
- apply_provider_status: row lock, terminal orders untouched, cancellation
  refunds through the idempotent refund protocol.
"""

from __future__ import annotations

import logging
from datetime import timedelta

from django.conf import settings
from django.db import transaction
from django.db.models import Q
from django.utils import timezone

from orders.models import Order
from orders.services.order_lifecycle import POLLED_STATES, is_terminal
from orders.services.refund_service import refund_order
from providers.services.provider_client import CanonicalStatus, StatusResult

logger = logging.getLogger(__name__)


# ============================================================
# DOMAIN ERRORS
# ============================================================

class OrderNotSyncableError(Exception):
    pass


# ============================================================
# SELECTION
# ============================================================

def pending_unsent_orders():
    return (
        Order.objects
        .filter(status=Order.STATUS_PENDING, is_sent_to_provider=False)
        .select_related("service", "service__provider")
        .order_by("created_at", "id")
    )


def orders_needing_status_check():
    return (
        Order.objects
        .filter(provider_order_id__isnull=False, status__in=POLLED_STATES)
        .select_related("service", "service__provider")
        .order_by("created_at", "id")
    )


def ensure_syncable(order: Order) -> None:
    """Raise OrderNotSyncableError with a client-facing reason."""
    if not order.provider_order_id:
        raise OrderNotSyncableError("Order has not been sent to the provider yet")
    if is_terminal(order.status):
        raise OrderNotSyncableError(f"Order is already {order.status}")

    service = order.service
    if not service.has_provider_binding:
        raise OrderNotSyncableError("Service has no provider configured")
    if service.provider is None:
        raise OrderNotSyncableError("Provider not found")


# ============================================================
# WRITES
# ============================================================

def _claim_cutoff():
    seconds = getattr(settings, "ORDER_PLACEMENT_CLAIM_SECONDS", 300)
    return timezone.now() - timedelta(seconds=seconds)


def placement_in_flight(order: Order) -> bool:
    return bool(order.placement_claimed_at) and order.placement_claimed_at >= _claim_cutoff()


def claim_placement(order_id: int):
    """
    Claim a pending, unsent order for one provider `add` call.

    Returns the claim token (the claim timestamp), or None when the order is
    no longer pending and unsent or another worker holds a live claim.
    Call it outside any transaction so other processes see the claim at once.
    """
    now = timezone.now()
    claimed = (
        Order.objects
        .filter(pk=order_id, status=Order.STATUS_PENDING, is_sent_to_provider=False)
        .filter(Q(placement_claimed_at__isnull=True) | Q(placement_claimed_at__lt=_claim_cutoff()))
        .update(placement_claimed_at=now)
    )
    return now if claimed == 1 else None


def release_placement(order_id: int, claim) -> None:
    """Drop our claim after the provider did not accept the order."""
    Order.objects.filter(pk=order_id, placement_claimed_at=claim).update(
        placement_claimed_at=None
    )


def apply_placement(order_id: int, provider_order_id: str) -> bool:
    """
    Record a successful provider placement.

    provider_order_id, is_sent_to_provider and status move together in ONE
    UPDATE. Returns False when the order is no longer pending and unsent.
    """
    updated = Order.objects.filter(
        pk=order_id,
        status=Order.STATUS_PENDING,
        is_sent_to_provider=False,
    ).update(
        provider_order_id=str(provider_order_id),
        is_sent_to_provider=True,
        status=Order.STATUS_PROCESSING,
        placement_claimed_at=None,
    )
    return updated == 1


@transaction.atomic
def apply_provider_status(
    order_id: int,
    result: StatusResult,
    *,
    allow_cancel: bool = True,
) -> Order | None:
    """
    Apply a successful status poll to the locked order row.

    Returns the updated order, or None when the order vanished or is terminal.
    With allow_cancel=False a provider-reported cancellation only updates
    progress; the status is left as is.
    """
    order = Order.objects.select_for_update().filter(pk=order_id).first()
    if order is None or is_terminal(order.status):
        return None

    previous_status = order.status

    order.start_count = result.start_count
    order.remains = result.remains
    order.delivered_count = result.delivered_count
    order.completion_percentage = result.completion_percentage
    update_fields = ["start_count", "remains", "delivered_count", "completion_percentage"]

    new_status = CanonicalStatus(result.status).value
    if new_status == Order.STATUS_CANCELLED and not allow_cancel:
        new_status = previous_status

    if new_status != previous_status:
        order.status = new_status
        update_fields.append("status")
        if new_status == Order.STATUS_COMPLETED:
            order.completed_at = timezone.now()
            update_fields.append("completed_at")

    order.save(update_fields=update_fields)

    if new_status == Order.STATUS_CANCELLED and previous_status != Order.STATUS_CANCELLED:
        logger.info(
            "Provider cancelled order",
            extra={"order_id": order.pk, "provider_order_id": order.provider_order_id},
        )
        refund_order(
            order,
            description=f"Refund for order #{order.pk} - cancelled by provider",
        )

    if new_status != previous_status:
        logger.info(
            "Order status %s -> %s",
            previous_status,
            new_status,
            extra={"order_id": order.pk},
        )

    return order
