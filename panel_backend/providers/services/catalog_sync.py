# providers/services/catalog_sync.py

"""
PROVIDER CATALOG SYNC (ADMIN OPERATIONS)

- sync_provider_catalog: pull the provider's service list into the local
  catalog (categories created on demand, services upserted by
  provider + provider_service_id), then refresh the cached balance.
- refresh_provider_balance / check_provider_connection: balance call helpers.

Local prices are seeded from the provider rate on first import and refreshed on
every sync; admins reprice afterwards.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from django.db import transaction
from django.utils import timezone
from django.utils.text import slugify

from catalog.models import Service, ServiceCategory
from providers.models import Provider
from providers.services.provider_client import BalanceResult, ProviderClient

logger = logging.getLogger(__name__)


class CatalogSyncError(Exception):
    pass


@dataclass
class CatalogSyncReport:
    synced: int = 0
    created: int = 0
    updated: int = 0
    errors: list[str] = field(default_factory=list)


# slug -> (display name, icon, color)
PLATFORM_STYLES = {
    "instagram": ("Instagram", "Instagram", "#E4405F"),
    "youtube": ("YouTube", "Youtube", "#FF0000"),
    "facebook": ("Facebook", "Facebook", "#1877F2"),
    "twitter": ("Twitter", "Twitter", "#1DA1F2"),
    "tiktok": ("TikTok", "Music", "#000000"),
    "telegram": ("Telegram", "Send", "#0088CC"),
    "linkedin": ("LinkedIn", "Linkedin", "#0077B5"),
    "spotify": ("Spotify", "Music", "#1DB954"),
    "twitch": ("Twitch", "Tv", "#9146FF"),
    "discord": ("Discord", "MessageCircle", "#5865F2"),
}

DEFAULT_ICON = "Globe"
DEFAULT_COLOR = "#6366F1"


def _category_for(raw_name: str, cache: dict[str, ServiceCategory]) -> ServiceCategory:
    slug = slugify(raw_name.lower()) or "other"
    if slug in cache:
        return cache[slug]

    display, icon, color = PLATFORM_STYLES.get(
        slug, (raw_name.strip().title() or "Other", DEFAULT_ICON, DEFAULT_COLOR)
    )
    category, _ = ServiceCategory.objects.get_or_create(
        slug=slug,
        defaults={"name": display, "icon": icon, "color": color, "is_active": True},
    )
    cache[slug] = category
    return category


def refresh_provider_balance(provider: Provider, *, client: ProviderClient | None = None) -> BalanceResult:
    client = client or ProviderClient()
    result = client.fetch_balance(provider)

    if not result.ok:
        logger.warning(
            "Balance refresh failed: %s", result.error, extra={"provider_id": provider.pk}
        )
        return result

    Provider.objects.filter(pk=provider.pk).update(
        balance=result.balance,
        currency=result.currency,
        balance_updated_at=timezone.now(),
    )
    provider.refresh_from_db(fields=["balance", "currency", "balance_updated_at"])
    return result


def check_provider_connection(provider: Provider, *, client: ProviderClient | None = None) -> dict:
    client = client or ProviderClient()
    result = client.fetch_balance(provider)
    if not result.ok:
        return {"success": False, "error": result.error}
    return {"success": True, "balance": result.balance, "currency": result.currency}


def sync_provider_catalog(provider: Provider, *, client: ProviderClient | None = None) -> CatalogSyncReport:
    """
    Import/refresh a provider's catalog.

    Raises CatalogSyncError when the catalog itself cannot be fetched.
    Per-item failures are collected in the report instead of aborting the run.
    """
    client = client or ProviderClient()
    result = client.fetch_catalog(provider)
    if not result.ok:
        raise CatalogSyncError(f"Failed to fetch services from {provider.name}: {result.error}")

    report = CatalogSyncReport()
    categories = {c.slug: c for c in ServiceCategory.objects.all()}

    for item in result.services:
        try:
            category = _category_for(item.category, categories)
            with transaction.atomic():
                _, created = Service.objects.update_or_create(
                    provider=provider,
                    provider_service_id=item.service,
                    defaults={
                        "category": category,
                        "name": item.name or f"Service {item.service}",
                        "description": item.description or f"{item.name} from {provider.name}",
                        "price_per_thousand": item.rate,
                        "min_quantity": max(1, item.min),
                        "max_quantity": max(item.min, item.max, 1),
                        "is_active": True,
                    },
                )
        except Exception as exc:
            logger.exception(
                "Catalog item sync failed",
                extra={"provider_id": provider.pk, "provider_service_id": item.service},
            )
            report.errors.append(f"Failed to sync service {item.service}: {exc}")
            continue

        report.synced += 1
        if created:
            report.created += 1
        else:
            report.updated += 1

    refresh_provider_balance(provider, client=client)

    logger.info(
        "Catalog sync finished: %s synced, %s errors",
        report.synced,
        len(report.errors),
        extra={"provider_id": provider.pk},
    )
    return report
