# orders/serializers/commands.py

"""
Command serializers: validate request input only, never touch the database.
"""

from rest_framework import serializers

from catalog.models import Service


class PlaceOrderCommandSerializer(serializers.Serializer):
    service = serializers.PrimaryKeyRelatedField(queryset=Service.objects.select_related("provider"))
    target_url = serializers.URLField(max_length=500)
    quantity = serializers.IntegerField(min_value=1)


class AdminCancelCommandSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, default="", max_length=1000)
