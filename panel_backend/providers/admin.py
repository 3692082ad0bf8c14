# providers/admin.py

from django.contrib import admin

from providers.models import Provider


@admin.register(Provider)
class ProviderAdmin(admin.ModelAdmin):
    list_display = ("name", "api_url", "is_active", "balance", "currency", "balance_updated_at")
    list_filter = ("is_active",)
    search_fields = ("name", "api_url")
    readonly_fields = ("balance", "currency", "balance_updated_at", "created_at")
