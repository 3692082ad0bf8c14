# wallet/services/wallet_service.py

"""
WALLET SERVICE (SOLE MUTATOR OF user.wallet_balance)

GUARANTEES:
- Every balance change locks the user row (select_for_update) and appends
  exactly one immutable Transaction in the SAME database transaction.
- A debit never drives the balance below zero.
- Callers running inside an outer transaction.atomic() share its fate:
  if the outer block rolls back, the balance change and ledger row vanish together.
"""

from __future__ import annotations

import logging
from decimal import ROUND_HALF_UP, Decimal

from django.contrib.auth import get_user_model
from django.db import transaction
from django.db.models import Q

from wallet.models import Transaction

logger = logging.getLogger(__name__)

TWOPLACES = Decimal("0.01")


# ============================================================
# DOMAIN ERRORS
# ============================================================

class WalletError(Exception):
    pass


class InvalidAmountError(WalletError):
    pass


class InsufficientBalanceError(WalletError):
    pass


# ============================================================
# HELPERS
# ============================================================

def _money(amount) -> Decimal:
    try:
        value = Decimal(str(amount)).quantize(TWOPLACES, rounding=ROUND_HALF_UP)
    except ArithmeticError as exc:
        raise InvalidAmountError(f"Invalid amount: {amount!r}") from exc
    if value <= 0:
        raise InvalidAmountError("Amount must be greater than zero")
    return value


def _lock_user(user):
    return get_user_model().objects.select_for_update().get(pk=user.pk)


def has_refund_for_order(order) -> bool:
    """
    True when the ledger already holds a refund for `order`.

    Older rows recorded refunds as `deposit` entries whose description
    mentions "refund"; those count too.
    """
    return Transaction.objects.filter(order=order).filter(
        Q(type=Transaction.TYPE_REFUND)
        | Q(type=Transaction.TYPE_DEPOSIT, description__icontains="refund")
    ).exists()


# ============================================================
# BALANCE MUTATIONS
# ============================================================

@transaction.atomic
def credit_wallet(
    *,
    user,
    amount,
    tx_type: str,
    description: str,
    order=None,
) -> Transaction:
    value = _money(amount)

    locked = _lock_user(user)
    locked.wallet_balance = locked.wallet_balance + value
    locked.save(update_fields=["wallet_balance", "updated_at"])

    tx = Transaction.objects.create(
        user=locked,
        type=tx_type,
        amount=value,
        description=(description or "")[:255],
        order=order,
        status=Transaction.STATUS_COMPLETED,
    )

    user.wallet_balance = locked.wallet_balance

    logger.info(
        "Wallet credited",
        extra={"user_id": locked.pk, "amount": str(value), "tx_type": tx_type},
    )
    return tx


@transaction.atomic
def debit_wallet(
    *,
    user,
    amount,
    tx_type: str,
    description: str,
    order=None,
) -> Transaction:
    value = _money(amount)

    locked = _lock_user(user)
    if locked.wallet_balance < value:
        raise InsufficientBalanceError(
            f"Insufficient balance. Required: {value}, Available: {locked.wallet_balance}"
        )

    locked.wallet_balance = locked.wallet_balance - value
    locked.save(update_fields=["wallet_balance", "updated_at"])

    tx = Transaction.objects.create(
        user=locked,
        type=tx_type,
        amount=-value,
        description=(description or "")[:255],
        order=order,
        status=Transaction.STATUS_COMPLETED,
    )

    user.wallet_balance = locked.wallet_balance

    logger.info(
        "Wallet debited",
        extra={"user_id": locked.pk, "amount": str(value), "tx_type": tx_type},
    )
    return tx


ADJUST_ADD = "add"
ADJUST_SUBTRACT = "subtract"


def admin_adjust_wallet(*, user, action: str, amount, description: str, actor) -> Transaction:
    """
    Manual balance adjustment by an administrator.

    `add` is recorded as a deposit, `subtract` as a withdrawal.
    """
    note = (description or "").strip() or "Manual adjustment"
    note = f"{note} (by {actor.username})"

    if action == ADJUST_ADD:
        tx = credit_wallet(
            user=user, amount=amount, tx_type=Transaction.TYPE_DEPOSIT, description=note
        )
    elif action == ADJUST_SUBTRACT:
        tx = debit_wallet(
            user=user, amount=amount, tx_type=Transaction.TYPE_WITHDRAWAL, description=note
        )
    else:
        raise WalletError(f"Unknown adjustment action: {action!r}")

    logger.info(
        "Admin wallet adjustment",
        extra={"user_id": user.pk, "actor_id": actor.pk, "action": action},
    )
    return tx
