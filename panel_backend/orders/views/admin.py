# orders/views/admin.py

"""
ADMIN ORDER OPERATIONS

- list every order (filter by status / user)
- reasoned cancel with idempotent refund
- run one full reconciliation tick now
"""

from django.shortcuts import get_object_or_404
from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import extend_schema
from rest_framework import generics, status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.throttling import ScopedRateThrottle
from rest_framework.views import APIView

from orders.models import Order
from orders.serializers.commands import AdminCancelCommandSerializer
from orders.serializers.order import OrderSerializer
from orders.services.cancellation import (
    CancellationError,
    InvalidCancelReasonError,
    OrderNotCancellableError,
    cancel_order_by_admin,
)
from orders.views.errors import error_response
from orders.views.order import get_sync_engine
from permissions.roles import CAP_ORDERS_MANAGE, HasCapability


class AdminOrderListView(generics.ListAPIView):
    queryset = Order.objects.select_related("user", "service", "service__category")
    serializer_class = OrderSerializer
    permission_classes = [IsAuthenticated, HasCapability]
    required_capability = CAP_ORDERS_MANAGE
    filterset_fields = ["status", "user", "is_sent_to_provider"]


class AdminOrderCancelView(APIView):
    permission_classes = [IsAuthenticated, HasCapability]
    required_capability = CAP_ORDERS_MANAGE

    @extend_schema(request=AdminCancelCommandSerializer, responses=OrderSerializer)
    def post(self, request, order_id):
        order = get_object_or_404(Order, pk=order_id)

        command = AdminCancelCommandSerializer(data=request.data)
        command.is_valid(raise_exception=True)

        try:
            order = cancel_order_by_admin(
                order, request.user, command.validated_data["reason"]
            )
        except InvalidCancelReasonError as exc:
            return error_response(
                code="CANCEL_REASON_REQUIRED",
                message=str(exc),
                http_status=status.HTTP_400_BAD_REQUEST,
            )
        except OrderNotCancellableError as exc:
            return error_response(
                code="ORDER_NOT_CANCELLABLE",
                message=str(exc),
                http_status=status.HTTP_409_CONFLICT,
            )
        except CancellationError as exc:
            return error_response(
                code="CANCEL_FAILED",
                message=str(exc),
                http_status=status.HTTP_400_BAD_REQUEST,
            )

        return Response(OrderSerializer(order).data, status=status.HTTP_200_OK)


class AdminOrderSyncView(APIView):
    """
    Run Duty A + Duty B once.

    With the engine running in this process the tick is queued on its
    scheduler (202). Otherwise it runs here and the counts are returned (200);
    placement claims keep it from double-sending against a worker process.
    """

    permission_classes = [IsAuthenticated, HasCapability]
    required_capability = CAP_ORDERS_MANAGE
    throttle_scope = "order_sync"

    def get_throttles(self):
        return [ScopedRateThrottle(), *super().get_throttles()]

    @extend_schema(request=None, responses=OpenApiTypes.OBJECT)
    def post(self, request):
        engine = get_sync_engine()
        if engine.request_tick():
            return Response({"queued": True}, status=status.HTTP_202_ACCEPTED)

        reports = engine.run_tick()
        return Response(
            {name: report.as_dict() for name, report in reports.items()},
            status=status.HTTP_200_OK,
        )
