# wallet/views.py

from django.contrib.auth import get_user_model
from django.shortcuts import get_object_or_404
from drf_spectacular.utils import extend_schema
from rest_framework import generics, status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from permissions.roles import CAP_WALLET_ADJUST, HasCapability
from users.serializers import UserSerializer
from wallet.models import Transaction
from wallet.serializers import TransactionSerializer, WalletAdjustCommandSerializer
from wallet.services.wallet_service import (
    InsufficientBalanceError,
    WalletError,
    admin_adjust_wallet,
)


def error_response(*, code: str, message: str, http_status: int):
    return Response(
        {"error": {"code": code, "message": message}},
        status=http_status,
    )


class TransactionListView(generics.ListAPIView):
    """Own wallet ledger, newest first."""

    serializer_class = TransactionSerializer
    permission_classes = [IsAuthenticated]
    filterset_fields = ["type", "status"]

    def get_queryset(self):
        return Transaction.objects.filter(user=self.request.user).order_by("-created_at", "-id")


class AdminWalletAdjustView(APIView):
    permission_classes = [IsAuthenticated, HasCapability]
    required_capability = CAP_WALLET_ADJUST

    @extend_schema(request=WalletAdjustCommandSerializer, responses=TransactionSerializer)
    def post(self, request, user_id):
        target = get_object_or_404(get_user_model(), pk=user_id)

        command = WalletAdjustCommandSerializer(data=request.data)
        command.is_valid(raise_exception=True)
        data = command.validated_data

        try:
            tx = admin_adjust_wallet(
                user=target,
                action=data["action"],
                amount=data["amount"],
                description=data.get("description", ""),
                actor=request.user,
            )
        except InsufficientBalanceError as exc:
            return error_response(
                code="INSUFFICIENT_BALANCE",
                message=str(exc),
                http_status=status.HTTP_400_BAD_REQUEST,
            )
        except WalletError as exc:
            return error_response(
                code="WALLET_ADJUST_FAILED",
                message=str(exc),
                http_status=status.HTTP_400_BAD_REQUEST,
            )

        target.refresh_from_db(fields=["wallet_balance"])
        return Response(
            {
                "transaction": TransactionSerializer(tx).data,
                "user": UserSerializer(target).data,
            },
            status=status.HTTP_200_OK,
        )
