# catalog/views.py

from rest_framework import generics
from rest_framework.permissions import AllowAny

from catalog.models import Service, ServiceCategory
from catalog.serializers import ServiceCategorySerializer, ServiceSerializer


class CategoryListView(generics.ListAPIView):
    serializer_class = ServiceCategorySerializer
    permission_classes = [AllowAny]
    pagination_class = None

    def get_queryset(self):
        return ServiceCategory.objects.filter(is_active=True).order_by("name")


class ServiceListView(generics.ListAPIView):
    """Active services; `?category=<id>` or `?category__slug=<slug>` narrows the list."""

    serializer_class = ServiceSerializer
    permission_classes = [AllowAny]
    filterset_fields = ["category", "category__slug"]

    def get_queryset(self):
        return (
            Service.objects
            .filter(is_active=True, category__is_active=True)
            .select_related("category")
            .order_by("category__name", "name")
        )
