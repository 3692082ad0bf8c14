# wallet/urls.py

from django.urls import path

from wallet.views import TransactionListView

urlpatterns = [
    path("transactions/", TransactionListView.as_view(), name="wallet-transactions"),
]
