# wallet/serializers.py

from decimal import Decimal

from rest_framework import serializers

from wallet.models import Transaction
from wallet.services.wallet_service import ADJUST_ADD, ADJUST_SUBTRACT


class TransactionSerializer(serializers.ModelSerializer):
    order_id = serializers.IntegerField(read_only=True, allow_null=True)

    class Meta:
        model = Transaction
        fields = [
            "id",
            "reference_number",
            "type",
            "amount",
            "description",
            "order_id",
            "status",
            "created_at",
        ]
        read_only_fields = fields


class WalletAdjustCommandSerializer(serializers.Serializer):
    """
    Command serializer for admin balance adjustments. Does not touch the database.
    """

    action = serializers.ChoiceField(choices=[ADJUST_ADD, ADJUST_SUBTRACT])
    amount = serializers.DecimalField(
        max_digits=12, decimal_places=2, min_value=Decimal("0.01")
    )
    description = serializers.CharField(required=False, allow_blank=True, max_length=200)
