# orders/serializers/order.py

from rest_framework import serializers

from orders.models import Order


class OrderSerializer(serializers.ModelSerializer):
    """Read model for order history and detail views."""

    service_name = serializers.CharField(source="service.name", read_only=True)
    category_name = serializers.CharField(source="service.category.name", read_only=True)
    username = serializers.CharField(source="user.username", read_only=True)

    class Meta:
        model = Order
        fields = [
            "id",
            "username",
            "service",
            "service_name",
            "category_name",
            "target_url",
            "quantity",
            "total_price",
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
            "created_at",
        ]
        read_only_fields = fields
