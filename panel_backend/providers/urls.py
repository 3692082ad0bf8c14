# providers/urls.py

from django.urls import path

from providers.views import (
    ProviderBalanceView,
    ProviderCatalogSyncView,
    ProviderConnectionTestView,
    ProviderListView,
)

urlpatterns = [
    path("", ProviderListView.as_view(), name="admin-providers"),
    path("<int:provider_id>/sync/", ProviderCatalogSyncView.as_view(), name="admin-provider-sync"),
    path("<int:provider_id>/balance/", ProviderBalanceView.as_view(), name="admin-provider-balance"),
    path("<int:provider_id>/test/", ProviderConnectionTestView.as_view(), name="admin-provider-test"),
]
