# orders/views/order.py

"""
CUSTOMER ORDER API

- list/retrieve: own orders (admins may retrieve any order)
- create: place an order (wallet debit + background provider placement)
- cancel: self-cancel while pending and unsent
- sync: on-demand provider status refresh
"""

from django.apps import apps
from drf_spectacular.utils import extend_schema
from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.throttling import ScopedRateThrottle

from orders.models import Order
from orders.serializers.commands import PlaceOrderCommandSerializer
from orders.serializers.order import OrderSerializer
from orders.services.cancellation import (
    CancellationError,
    OrderAccessError,
    OrderNotCancellableError,
    cancel_order_by_user,
)
from orders.services.order_store import OrderNotSyncableError, ensure_syncable
from orders.services.placement import (
    InsufficientBalanceError,
    InvalidOrderQuantityError,
    PlacementError,
    ServiceUnavailableError,
    place_order,
)
from orders.views.errors import error_response
from permissions.roles import (
    CAP_ORDERS_MANAGE,
    CAP_ORDERS_PLACE,
    HasCapability,
    IsOwnerOrHasCapability,
    user_has_capability,
)


def get_sync_engine():
    return apps.get_app_config("orders").sync_engine


class OrderViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    mixins.CreateModelMixin,
    viewsets.GenericViewSet,
):
    serializer_class = OrderSerializer
    permission_classes = [IsAuthenticated, IsOwnerOrHasCapability]
    filterset_fields = ["status"]

    # Object access beyond ownership (IsOwnerOrHasCapability)
    required_capability = CAP_ORDERS_MANAGE

    def get_queryset(self):
        qs = Order.objects.select_related("user", "service", "service__category")
        user = self.request.user
        if self.action != "list" and user_has_capability(user, CAP_ORDERS_MANAGE):
            return qs
        return qs.filter(user=user)

    def get_permissions(self):
        if self.action == "create":
            self.required_capability = CAP_ORDERS_PLACE
            return [IsAuthenticated(), HasCapability()]
        return super().get_permissions()

    def get_throttles(self):
        if self.action in ("create", "cancel"):
            self.throttle_scope = "order_write"
            return [ScopedRateThrottle(), *super().get_throttles()]
        if self.action == "sync":
            self.throttle_scope = "order_sync"
            return [ScopedRateThrottle(), *super().get_throttles()]
        return super().get_throttles()

    # --------------------------------------------------
    # PLACE ORDER
    # --------------------------------------------------

    @extend_schema(request=PlaceOrderCommandSerializer, responses={201: OrderSerializer})
    def create(self, request, *args, **kwargs):
        command = PlaceOrderCommandSerializer(data=request.data)
        command.is_valid(raise_exception=True)
        data = command.validated_data

        try:
            order = place_order(
                user=request.user,
                service=data["service"],
                target_url=data["target_url"],
                quantity=data["quantity"],
            )
        except InsufficientBalanceError as exc:
            return error_response(
                code="INSUFFICIENT_BALANCE",
                message=str(exc),
                http_status=status.HTTP_400_BAD_REQUEST,
            )
        except InvalidOrderQuantityError as exc:
            return error_response(
                code="INVALID_QUANTITY",
                message=str(exc),
                http_status=status.HTTP_400_BAD_REQUEST,
            )
        except ServiceUnavailableError as exc:
            return error_response(
                code="SERVICE_UNAVAILABLE",
                message=str(exc),
                http_status=status.HTTP_400_BAD_REQUEST,
            )
        except PlacementError as exc:
            return error_response(
                code="ORDER_FAILED",
                message=str(exc),
                http_status=status.HTTP_400_BAD_REQUEST,
            )

        return Response(OrderSerializer(order).data, status=status.HTTP_201_CREATED)

    # --------------------------------------------------
    # SELF-CANCEL
    # --------------------------------------------------

    @extend_schema(request=None, responses=OrderSerializer)
    @action(detail=True, methods=["post"], url_path="cancel")
    def cancel(self, request, pk=None):
        order = self.get_object()

        try:
            order = cancel_order_by_user(order, request.user)
        except OrderAccessError as exc:
            return error_response(
                code="FORBIDDEN",
                message=str(exc),
                http_status=status.HTTP_403_FORBIDDEN,
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

    # --------------------------------------------------
    # ON-DEMAND SYNC
    # --------------------------------------------------

    @extend_schema(request=None, responses=OrderSerializer)
    @action(detail=True, methods=["post"], url_path="sync")
    def sync(self, request, pk=None):
        order = self.get_object()

        try:
            ensure_syncable(order)
        except OrderNotSyncableError as exc:
            return error_response(
                code="ORDER_NOT_SYNCABLE",
                message=str(exc),
                http_status=status.HTTP_400_BAD_REQUEST,
            )

        if not get_sync_engine().sync_single_order(order.pk):
            return error_response(
                code="PROVIDER_SYNC_FAILED",
                message="Unable to sync order with provider",
                http_status=status.HTTP_502_BAD_GATEWAY,
            )

        order.refresh_from_db()
        return Response(OrderSerializer(order).data, status=status.HTTP_200_OK)
