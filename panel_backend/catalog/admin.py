# catalog/admin.py

from django.contrib import admin

from catalog.models import Service, ServiceCategory


@admin.register(ServiceCategory)
class ServiceCategoryAdmin(admin.ModelAdmin):
    list_display = ("name", "slug", "icon", "color", "is_active")
    list_filter = ("is_active",)
    prepopulated_fields = {"slug": ("name",)}
    search_fields = ("name", "slug")


@admin.register(Service)
class ServiceAdmin(admin.ModelAdmin):
    list_display = (
        "name",
        "category",
        "price_per_thousand",
        "min_quantity",
        "max_quantity",
        "provider",
        "provider_service_id",
        "is_active",
    )
    list_filter = ("is_active", "category", "provider")
    search_fields = ("name", "provider_service_id")
    list_select_related = ("category", "provider")
