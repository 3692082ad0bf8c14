# orders/views/__init__.py

from .admin import AdminOrderCancelView, AdminOrderListView, AdminOrderSyncView
from .order import OrderViewSet

__all__ = [
    "OrderViewSet",
    "AdminOrderListView",
    "AdminOrderCancelView",
    "AdminOrderSyncView",
]
