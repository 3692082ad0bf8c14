# orders/services/cancellation.py

"""
ORDER CANCELLATION (USER + ADMIN PATHS)

Both paths lock the order row, transition it to CANCELLED and refund through
the idempotent refund protocol. Neither contacts the provider.

- User self-cancel: owner only, while the order is pending and unsent with
  no provider placement call in flight.
- Admin cancel: any non-terminal order, with a mandatory reason.
"""

import logging

from django.db import transaction

from orders.models import Order
from orders.services.order_lifecycle import InvalidOrderTransitionError, validate_transition
from orders.services.order_store import placement_in_flight
from orders.services.refund_service import refund_order
from permissions.roles import CAP_ORDERS_MANAGE, user_has_capability

logger = logging.getLogger(__name__)


# ============================================================
# DOMAIN ERRORS
# ============================================================

class CancellationError(Exception):
    pass


class OrderNotCancellableError(CancellationError):
    pass


class InvalidCancelReasonError(CancellationError):
    pass


class OrderAccessError(CancellationError):
    pass


# ============================================================
# USER SELF-CANCEL
# ============================================================

@transaction.atomic
def cancel_order_by_user(order: Order, user) -> Order:
    locked = Order.objects.select_for_update().get(pk=order.pk)

    if locked.user_id != user.pk and not user_has_capability(user, CAP_ORDERS_MANAGE):
        raise OrderAccessError("You can only cancel your own orders")

    if locked.status != Order.STATUS_PENDING or locked.is_sent_to_provider:
        raise OrderNotCancellableError(
            "Only pending orders that have not been sent to the provider can be cancelled"
        )
    if placement_in_flight(locked):
        raise OrderNotCancellableError("Order is being sent to the provider, try again shortly")

    locked.status = Order.STATUS_CANCELLED
    locked.save(update_fields=["status"])

    refund_order(
        locked,
        description=f"Refund for cancelled order #{locked.pk}",
        actor=user,
    )

    logger.info("Order cancelled by user", extra={"order_id": locked.pk, "user_id": user.pk})
    return locked


# ============================================================
# ADMIN CANCEL
# ============================================================

@transaction.atomic
def cancel_order_by_admin(order: Order, admin, reason: str) -> Order:
    reason = (reason or "").strip()
    if not reason:
        raise InvalidCancelReasonError("Cancellation reason is required")

    locked = Order.objects.select_for_update().get(pk=order.pk)

    if locked.status == Order.STATUS_COMPLETED:
        raise OrderNotCancellableError("Cannot cancel completed orders")
    if locked.status == Order.STATUS_CANCELLED:
        raise OrderNotCancellableError("Order already cancelled")

    try:
        validate_transition(order=locked, target_status=Order.STATUS_CANCELLED)
    except InvalidOrderTransitionError as exc:
        raise OrderNotCancellableError(str(exc)) from exc

    locked.status = Order.STATUS_CANCELLED
    locked.cancel_reason = reason
    locked.save(update_fields=["status", "cancel_reason"])

    refund_order(
        locked,
        description=f"Refund for order #{locked.pk} - cancelled by admin: {reason}",
        actor=admin,
    )

    logger.info(
        "Order cancelled by admin",
        extra={"order_id": locked.pk, "admin_id": admin.pk},
    )
    return locked
