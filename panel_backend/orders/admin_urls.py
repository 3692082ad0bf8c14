# orders/admin_urls.py

from django.urls import path

from orders.views import AdminOrderCancelView, AdminOrderListView, AdminOrderSyncView

urlpatterns = [
    path("", AdminOrderListView.as_view(), name="admin-orders"),
    path("sync/", AdminOrderSyncView.as_view(), name="admin-orders-sync"),
    path("<int:order_id>/cancel/", AdminOrderCancelView.as_view(), name="admin-order-cancel"),
]
