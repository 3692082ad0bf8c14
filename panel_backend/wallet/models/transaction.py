# wallet/models/transaction.py

"""
WALLET TRANSACTION (IMMUTABLE LEDGER ENTRY)

- One row per wallet balance change. Created once. Never updated. Never deleted.
- Amount sign convention: order debits are negative, credits positive.
- A refund row references its order; at most one `refund` row may exist per
  order (partial unique constraint). This is the ledger-side half of refund
  idempotency; Order.refunded_at is the other half.
"""

import uuid

from django.conf import settings
from django.db import models
from django.utils import timezone

User = settings.AUTH_USER_MODEL


class Transaction(models.Model):
    TYPE_DEPOSIT = "deposit"
    TYPE_ORDER = "order"
    TYPE_REFUND = "refund"
    TYPE_REFERRAL = "referral"
    TYPE_WITHDRAWAL = "withdrawal"

    TYPE_CHOICES = [
        (TYPE_DEPOSIT, "Deposit"),
        (TYPE_ORDER, "Order"),
        (TYPE_REFUND, "Refund"),
        (TYPE_REFERRAL, "Referral"),
        (TYPE_WITHDRAWAL, "Withdrawal"),
    ]

    STATUS_PENDING = "pending"
    STATUS_COMPLETED = "completed"
    STATUS_FAILED = "failed"

    STATUS_CHOICES = [
        (STATUS_PENDING, "Pending"),
        (STATUS_COMPLETED, "Completed"),
        (STATUS_FAILED, "Failed"),
    ]

    user = models.ForeignKey(
        User,
        on_delete=models.PROTECT,
        related_name="transactions",
    )
    type = models.CharField(max_length=16, choices=TYPE_CHOICES)
    amount = models.DecimalField(max_digits=12, decimal_places=2)
    description = models.CharField(max_length=255)

    order = models.ForeignKey(
        "orders.Order",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="transactions",
    )

    status = models.CharField(
        max_length=16, choices=STATUS_CHOICES, default=STATUS_COMPLETED
    )
    reference_number = models.CharField(
        max_length=40,
        unique=True,
        blank=True,
        help_text="System-generated internal tracking number",
    )

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at", "-id"]
        indexes = [
            models.Index(fields=["user", "created_at"], name="txn_user_created_idx"),
            models.Index(fields=["order", "type"], name="txn_order_type_idx"),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["order"],
                condition=models.Q(type="refund"),
                name="uniq_refund_per_order",
            ),
        ]

    # ======================================================
    # IMMUTABILITY
    # ======================================================

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise RuntimeError("Transaction records are immutable")

        if not self.reference_number:
            prefix = timezone.now().strftime("TXN%Y%m%d")
            self.reference_number = f"{prefix}-{uuid.uuid4().hex[:10].upper()}"

        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise RuntimeError("Transaction records cannot be deleted")

    def __str__(self):
        return f"{self.reference_number} | {self.type} | {self.amount}"
