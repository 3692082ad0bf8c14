# orders/models/order.py

"""
ORDER MODEL (FULFILLMENT RECORD)

Lifecycle:
    pending -> processing -> completed | partial | cancelled
    partial | processing -> completed | cancelled

Rules:
- user, service, quantity, total_price, target_url are fixed at creation.
- provider_order_id is set once, together with is_sent_to_provider.
- placement_claimed_at marks an in-flight provider placement; only one
  worker (in any process) may hold it at a time.
- Once COMPLETED the row is frozen.
- refunded_at is written only by the refund protocol (conditional update).
- Orders are never deleted.
"""

from decimal import Decimal

from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models
from django.utils import timezone

User = settings.AUTH_USER_MODEL


class Order(models.Model):
    STATUS_PENDING = "pending"
    STATUS_PROCESSING = "processing"
    STATUS_PARTIAL = "partial"
    STATUS_COMPLETED = "completed"
    STATUS_CANCELLED = "cancelled"

    STATUS_CHOICES = [
        (STATUS_PENDING, "Pending"),
        (STATUS_PROCESSING, "Processing"),
        (STATUS_PARTIAL, "Partial"),
        (STATUS_COMPLETED, "Completed"),
        (STATUS_CANCELLED, "Cancelled"),
    ]

    user = models.ForeignKey(User, on_delete=models.PROTECT, related_name="orders")
    service = models.ForeignKey(
        "catalog.Service", on_delete=models.PROTECT, related_name="orders"
    )

    # ---------------- ECONOMIC ----------------
    target_url = models.URLField(max_length=500)
    quantity = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    total_price = models.DecimalField(max_digits=12, decimal_places=2)

    # ---------------- FULFILLMENT ----------------
    status = models.CharField(
        max_length=16, choices=STATUS_CHOICES, default=STATUS_PENDING, db_index=True
    )
    is_sent_to_provider = models.BooleanField(default=False)
    provider_order_id = models.CharField(max_length=64, null=True, blank=True)
    # Set by a conditional UPDATE while a provider `add` call is in flight.
    placement_claimed_at = models.DateTimeField(null=True, blank=True)

    start_count = models.PositiveIntegerField(default=0)
    remains = models.PositiveIntegerField(default=0)
    delivered_count = models.PositiveIntegerField(default=0)
    completion_percentage = models.DecimalField(
        max_digits=5, decimal_places=2, default=Decimal("0.00")
    )

    cancel_reason = models.TextField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    refunded_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at", "-id"]
        indexes = [
            models.Index(fields=["status", "is_sent_to_provider"], name="order_status_sent_idx"),
            models.Index(fields=["user", "created_at"], name="order_user_created_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=(
                    models.Q(is_sent_to_provider=True, provider_order_id__isnull=False)
                    | models.Q(is_sent_to_provider=False, provider_order_id__isnull=True)
                ),
                name="order_provider_id_iff_sent",
            ),
            models.CheckConstraint(
                condition=models.Q(quantity__gt=0),
                name="order_quantity_gt_zero",
            ),
        ]

    _CREATION_FIELDS = (
        "user_id",
        "service_id",
        "quantity",
        "total_price",
        "target_url",
    )

    _FULFILLMENT_FIELDS = (
        "status",
        "is_sent_to_provider",
        "provider_order_id",
        "start_count",
        "remains",
        "delivered_count",
        "completion_percentage",
        "cancel_reason",
        "completed_at",
        "refunded_at",
    )

    # ======================================================
    # INVARIANTS
    # ======================================================

    @property
    def is_terminal(self) -> bool:
        return self.status in (self.STATUS_COMPLETED, self.STATUS_CANCELLED)

    def _validate_provider_binding(self):
        if bool(self.provider_order_id) != bool(self.is_sent_to_provider):
            raise ValueError(
                "provider_order_id must be set exactly when the order is sent to the provider"
            )

    def _validate_immutable(self, previous: "Order"):
        for field in self._CREATION_FIELDS:
            if getattr(self, field) != getattr(previous, field):
                raise ValueError(f"Order field '{field}' cannot be changed after creation.")

        if previous.provider_order_id and self.provider_order_id != previous.provider_order_id:
            raise ValueError("provider_order_id cannot be changed once set.")

        if previous.status == self.STATUS_COMPLETED:
            for field in self._FULFILLMENT_FIELDS:
                if getattr(self, field) != getattr(previous, field):
                    raise ValueError(
                        f"Order is immutable once completed. Field '{field}' cannot be changed."
                    )

    def save(self, *args, **kwargs):
        self._validate_provider_binding()

        if self.pk and not self._state.adding:
            previous = Order.objects.filter(pk=self.pk).first()
            if previous is not None:
                self._validate_immutable(previous)

        if self.status == self.STATUS_COMPLETED and not self.completed_at:
            self.completed_at = timezone.now()

        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise RuntimeError("Orders cannot be deleted")

    def __str__(self):
        return f"Order #{self.pk} | {self.status} | {self.total_price}"
