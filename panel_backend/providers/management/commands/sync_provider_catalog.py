# providers/management/commands/sync_provider_catalog.py

from __future__ import annotations

from django.core.management.base import BaseCommand, CommandError

from providers.models import Provider
from providers.services.catalog_sync import CatalogSyncError, sync_provider_catalog


class Command(BaseCommand):
    help = "Import/refresh the service catalog of active providers."

    def add_arguments(self, parser):
        parser.add_argument(
            "--provider",
            type=int,
            help="Only sync this provider id (default: every active provider).",
        )

    def handle(self, *args, **options):
        provider_id = options.get("provider")

        if provider_id:
            providers = Provider.objects.filter(pk=provider_id)
            if not providers.exists():
                raise CommandError(f"Provider {provider_id} not found")
        else:
            providers = Provider.objects.filter(is_active=True)

        failures = 0
        for provider in providers:
            try:
                report = sync_provider_catalog(provider)
            except CatalogSyncError as exc:
                failures += 1
                self.stdout.write(self.style.ERROR(f"{provider.name}: {exc}"))
                continue

            self.stdout.write(
                self.style.SUCCESS(
                    f"{provider.name}: {report.synced} synced "
                    f"({report.created} new, {report.updated} updated), "
                    f"{len(report.errors)} errors"
                )
            )
            for error in report.errors:
                self.stdout.write(f"  - {error}")

        if failures:
            raise CommandError(f"{failures} provider(s) failed to sync")
