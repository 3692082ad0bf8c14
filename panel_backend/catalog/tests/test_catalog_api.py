# catalog/tests/test_catalog_api.py

from decimal import Decimal

from django.test import TestCase
from rest_framework import status
from rest_framework.test import APIClient

from catalog.models import Service, ServiceCategory


class CatalogApiTests(TestCase):
    """Public catalog: active items only, no provider details."""

    def setUp(self):
        self.client = APIClient()
        self.instagram = ServiceCategory.objects.create(name="Instagram", slug="instagram")
        self.youtube = ServiceCategory.objects.create(name="YouTube", slug="youtube")
        ServiceCategory.objects.create(name="Hidden", slug="hidden", is_active=False)

        self.followers = Service.objects.create(
            category=self.instagram,
            name="Followers",
            price_per_thousand=Decimal("1.5000"),
            provider_service_id=None,
        )
        Service.objects.create(
            category=self.youtube,
            name="Views",
            price_per_thousand=Decimal("0.5000"),
        )
        Service.objects.create(
            category=self.instagram,
            name="Retired",
            price_per_thousand=Decimal("9.0000"),
            is_active=False,
        )

    def test_categories_are_public_and_active_only(self):
        res = self.client.get("/api/catalog/categories/")

        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertEqual([c["slug"] for c in res.data], ["instagram", "youtube"])

    def test_services_hide_provider_binding(self):
        res = self.client.get("/api/catalog/services/")

        self.assertEqual(res.status_code, status.HTTP_200_OK)
        names = [s["name"] for s in res.data["results"]]
        self.assertEqual(names, ["Followers", "Views"])
        self.assertNotIn("provider", res.data["results"][0])
        self.assertNotIn("provider_service_id", res.data["results"][0])

    def test_services_filter_by_category_slug(self):
        res = self.client.get("/api/catalog/services/", {"category__slug": "youtube"})

        self.assertEqual([s["name"] for s in res.data["results"]], ["Views"])

    def test_price_for_quantity(self):
        self.assertEqual(self.followers.price_for(2000), Decimal("3"))
