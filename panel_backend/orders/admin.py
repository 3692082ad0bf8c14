# orders/admin.py

from django.contrib import admin

from orders.models import Order


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = (
        "id",
        "user",
        "service",
        "quantity",
        "total_price",
        "status",
        "is_sent_to_provider",
        "provider_order_id",
        "completion_percentage",
        "created_at",
    )
    list_filter = ("status", "is_sent_to_provider", "created_at")
    search_fields = ("id", "provider_order_id", "user__email", "user__username", "target_url")
    readonly_fields = (
        "user",
        "service",
        "target_url",
        "quantity",
        "total_price",
        "is_sent_to_provider",
        "provider_order_id",
        "placement_claimed_at",
        "start_count",
        "remains",
        "delivered_count",
        "completion_percentage",
        "completed_at",
        "refunded_at",
        "created_at",
    )

    def has_delete_permission(self, request, obj=None):
        return False
