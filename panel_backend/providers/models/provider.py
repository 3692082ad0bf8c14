# providers/models/provider.py

from decimal import Decimal

from django.db import models


class Provider(models.Model):
    """
    An upstream reseller account.

    Every provider exposes ONE endpoint that accepts form-encoded POSTs with
    `key` + `action` (add / status / balance / services).

    `balance` is a cache of the last successful balance call; it is display
    data only and never used for order decisions.
    """

    name = models.CharField(max_length=120)
    api_url = models.URLField(max_length=500)
    api_key = models.CharField(
        max_length=255,
        help_text="Provider API secret. Never serialized back to clients.",
    )
    is_active = models.BooleanField(default=True)

    balance = models.DecimalField(
        max_digits=12, decimal_places=2, default=Decimal("0.00")
    )
    currency = models.CharField(max_length=8, default="USD")
    balance_updated_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["name"]

    def __str__(self):
        return self.name
