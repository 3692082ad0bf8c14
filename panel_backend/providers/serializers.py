# providers/serializers.py

from rest_framework import serializers

from providers.models import Provider


class ProviderSerializer(serializers.ModelSerializer):
    """api_key is accepted on write and never returned."""

    api_key = serializers.CharField(write_only=True, max_length=255)
    services_count = serializers.IntegerField(read_only=True, default=0)

    class Meta:
        model = Provider
        fields = [
            "id",
            "name",
            "api_url",
            "api_key",
            "is_active",
            "balance",
            "currency",
            "balance_updated_at",
            "services_count",
            "created_at",
        ]
        read_only_fields = ["balance", "currency", "balance_updated_at", "created_at"]
