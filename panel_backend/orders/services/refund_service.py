# orders/services/refund_service.py

"""
ORDER REFUND PROTOCOL (IDEMPOTENT)

Every cancellation path (user self-cancel, admin cancel, provider-detected
cancel) refunds through refund_order(). Repeated or concurrent calls for the
same order credit the wallet at most once:

1) A refund already in the ledger (current or legacy shape) wins: stamp
   refunded_at if it is missing and stop.
2) Claim the order with a conditional UPDATE on refunded_at IS NULL.
   Zero rows means another caller already claimed it.
3) Credit total_price and append the `refund` Transaction.

Steps 1-3 share one database transaction; the partial unique constraint
on Transaction(order) WHERE type='refund' backs up step 2.
"""

import logging

from django.db import transaction
from django.utils import timezone

from orders.models import Order
from wallet.models import Transaction
from wallet.services.wallet_service import credit_wallet, has_refund_for_order

logger = logging.getLogger(__name__)


@transaction.atomic
def refund_order(order: Order, *, description: str, actor=None) -> Transaction | None:
    """
    Refund `order.total_price` to its owner exactly once.

    Returns the new refund Transaction, or None when the order was already refunded.
    """
    now = timezone.now()
    unclaimed = Order.objects.filter(pk=order.pk, refunded_at__isnull=True)

    if has_refund_for_order(order):
        unclaimed.update(refunded_at=now)
        order.refresh_from_db(fields=["refunded_at"])
        logger.info("Refund already recorded", extra={"order_id": order.pk})
        return None

    if unclaimed.update(refunded_at=now) == 0:
        order.refresh_from_db(fields=["refunded_at"])
        logger.info("Refund already claimed", extra={"order_id": order.pk})
        return None

    order.refunded_at = now

    if order.total_price <= 0:
        return None

    tx = credit_wallet(
        user=order.user,
        amount=order.total_price,
        tx_type=Transaction.TYPE_REFUND,
        description=description,
        order=order,
    )

    logger.info(
        "Order refunded",
        extra={
            "order_id": order.pk,
            "user_id": order.user_id,
            "amount": str(order.total_price),
            "actor_id": getattr(actor, "pk", None),
        },
    )
    return tx
