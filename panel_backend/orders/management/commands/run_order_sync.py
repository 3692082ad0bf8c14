# orders/management/commands/run_order_sync.py

from __future__ import annotations

import threading

from django.apps import apps
from django.core.management.base import BaseCommand


class Command(BaseCommand):
    help = "Run the order reconciliation engine (placement retries + provider status sync)."

    def add_arguments(self, parser):
        parser.add_argument(
            "--once",
            action="store_true",
            help="Run a single tick in the foreground and exit.",
        )

    def handle(self, *args, **options):
        engine = apps.get_app_config("orders").sync_engine

        if options.get("once"):
            reports = engine.run_tick()
            for name, report in reports.items():
                line = (
                    f"{name}: examined={report.examined} succeeded={report.succeeded} "
                    f"skipped={report.skipped} failed={report.failed}"
                )
                if report.error:
                    self.stdout.write(self.style.ERROR(f"{line} error={report.error}"))
                else:
                    self.stdout.write(self.style.SUCCESS(line))
            return

        engine.start()
        self.stdout.write(
            f"Order sync engine running every {engine.interval_seconds}s. Ctrl+C to stop."
        )

        stop = threading.Event()
        try:
            while not stop.wait(timeout=1.0):
                pass
        except KeyboardInterrupt:
            self.stdout.write("Stopping...")
        finally:
            engine.stop()
