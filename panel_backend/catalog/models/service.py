# catalog/models/service.py

from decimal import Decimal

from django.db import models

from providers.models import Provider

from .category import ServiceCategory


class Service(models.Model):
    """
    A sellable catalog item, priced locally per 1000 units.

    Fulfillment binding:
    - provider + provider_service_id together identify the upstream item.
    - A service without BOTH cannot be auto-fulfilled; orders for it stay
      pending until an admin fixes the catalog.
    """

    category = models.ForeignKey(
        ServiceCategory,
        on_delete=models.PROTECT,
        related_name="services",
    )
    name = models.CharField(max_length=255)
    description = models.TextField(blank=True)

    price_per_thousand = models.DecimalField(
        max_digits=12,
        decimal_places=4,
        help_text="Selling price for 1000 units.",
    )
    min_quantity = models.PositiveIntegerField(default=100)
    max_quantity = models.PositiveIntegerField(default=100000)
    is_active = models.BooleanField(default=True)

    provider = models.ForeignKey(
        Provider,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="services",
    )
    provider_service_id = models.CharField(max_length=64, null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["category__name", "name"]
        constraints = [
            models.UniqueConstraint(
                fields=["provider", "provider_service_id"],
                condition=models.Q(provider__isnull=False, provider_service_id__isnull=False),
                name="uniq_service_per_provider_item",
            ),
        ]

    @property
    def has_provider_binding(self) -> bool:
        return bool(self.provider_id and self.provider_service_id)

    def price_for(self, quantity: int) -> Decimal:
        """Unrounded price for `quantity` units; callers quantize."""
        return Decimal(self.price_per_thousand) * Decimal(int(quantity)) / Decimal("1000")

    def __str__(self):
        return f"{self.name} | {self.price_per_thousand}/1k"
