# catalog/serializers.py

from rest_framework import serializers

from catalog.models import Service, ServiceCategory


class ServiceCategorySerializer(serializers.ModelSerializer):
    class Meta:
        model = ServiceCategory
        fields = ["id", "name", "slug", "icon", "color"]
        read_only_fields = fields


class ServiceSerializer(serializers.ModelSerializer):
    """Public catalog entry. Provider binding details stay server-side."""

    category_name = serializers.CharField(source="category.name", read_only=True)

    class Meta:
        model = Service
        fields = [
            "id",
            "category",
            "category_name",
            "name",
            "description",
            "price_per_thousand",
            "min_quantity",
            "max_quantity",
        ]
        read_only_fields = fields
