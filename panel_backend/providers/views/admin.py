# providers/views/admin.py

"""
PROVIDER ADMINISTRATION

- list / register providers
- catalog import, balance refresh, connection test (each one upstream call chain)
"""

from django.db.models import Count
from django.shortcuts import get_object_or_404
from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import extend_schema
from rest_framework import generics, status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from permissions.roles import CAP_PROVIDERS_MANAGE, HasCapability
from providers.models import Provider
from providers.serializers import ProviderSerializer
from providers.services.catalog_sync import (
    CatalogSyncError,
    check_provider_connection,
    refresh_provider_balance,
    sync_provider_catalog,
)


def error_response(*, code: str, message: str, http_status: int):
    return Response(
        {"error": {"code": code, "message": message}},
        status=http_status,
    )


class ProviderAdminMixin:
    permission_classes = [IsAuthenticated, HasCapability]
    required_capability = CAP_PROVIDERS_MANAGE


class ProviderListView(ProviderAdminMixin, generics.ListCreateAPIView):
    serializer_class = ProviderSerializer
    filterset_fields = ["is_active"]

    def get_queryset(self):
        return Provider.objects.annotate(services_count=Count("services")).order_by("name")


class ProviderCatalogSyncView(ProviderAdminMixin, APIView):
    @extend_schema(request=None, responses=OpenApiTypes.OBJECT)
    def post(self, request, provider_id):
        provider = get_object_or_404(Provider, pk=provider_id)

        try:
            report = sync_provider_catalog(provider)
        except CatalogSyncError as exc:
            return error_response(
                code="CATALOG_SYNC_FAILED",
                message=str(exc),
                http_status=status.HTTP_502_BAD_GATEWAY,
            )

        return Response(
            {
                "message": f"Synced {report.synced} services from {provider.name}",
                "synced": report.synced,
                "created": report.created,
                "updated": report.updated,
                "errors": report.errors[:10],
                "provider": ProviderSerializer(provider).data,
            },
            status=status.HTTP_200_OK,
        )


class ProviderBalanceView(ProviderAdminMixin, APIView):
    @extend_schema(request=None, responses=ProviderSerializer)
    def post(self, request, provider_id):
        provider = get_object_or_404(Provider, pk=provider_id)

        result = refresh_provider_balance(provider)
        if not result.ok:
            return error_response(
                code="PROVIDER_BALANCE_FAILED",
                message=result.error,
                http_status=status.HTTP_502_BAD_GATEWAY,
            )

        return Response(ProviderSerializer(provider).data, status=status.HTTP_200_OK)


class ProviderConnectionTestView(ProviderAdminMixin, APIView):
    @extend_schema(request=None, responses=OpenApiTypes.OBJECT)
    def post(self, request, provider_id):
        provider = get_object_or_404(Provider, pk=provider_id)
        return Response(check_provider_connection(provider), status=status.HTTP_200_OK)
