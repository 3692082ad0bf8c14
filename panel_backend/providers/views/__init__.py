# providers/views/__init__.py

from .admin import (
    ProviderBalanceView,
    ProviderCatalogSyncView,
    ProviderConnectionTestView,
    ProviderListView,
)

__all__ = [
    "ProviderListView",
    "ProviderCatalogSyncView",
    "ProviderBalanceView",
    "ProviderConnectionTestView",
]
