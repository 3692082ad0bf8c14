# users/tests/test_permissions.py

from django.contrib.auth import get_user_model
from django.test import TestCase
from rest_framework.test import APIRequestFactory

from permissions.roles import (
    CAP_ORDERS_MANAGE,
    CAP_ORDERS_PLACE,
    CAP_PROVIDERS_MANAGE,
    CAP_WALLET_ADJUST,
    HasCapability,
    capabilities_for,
    user_has_capability,
)

User = get_user_model()


class _View:
    def __init__(self, capability=None):
        self.required_capability = capability


class CapabilityTests(TestCase):
    """
    GUARANTEES:
    - admins hold every capability
    - customers can only place orders
    - a view without a declared capability is closed
    """

    def setUp(self):
        self.factory = APIRequestFactory()
        self.admin = User.objects.create_user(
            email="admin@example.com", password="pass", role=User.ROLE_ADMIN
        )
        self.customer = User.objects.create_user(email="customer@example.com", password="pass")
        self.superuser = User.objects.create_superuser(email="root@example.com", password="pass")

    def _request_for(self, user):
        request = self.factory.get("/")
        request.user = user
        return request

    def test_admin_capabilities(self):
        self.assertEqual(
            capabilities_for(self.admin),
            {CAP_ORDERS_PLACE, CAP_ORDERS_MANAGE, CAP_PROVIDERS_MANAGE, CAP_WALLET_ADJUST},
        )
        self.assertTrue(user_has_capability(self.superuser, CAP_WALLET_ADJUST))

    def test_customer_capabilities(self):
        self.assertTrue(user_has_capability(self.customer, CAP_ORDERS_PLACE))
        self.assertFalse(user_has_capability(self.customer, CAP_ORDERS_MANAGE))

    def test_has_capability_permission(self):
        permission = HasCapability()

        self.assertTrue(
            permission.has_permission(self._request_for(self.admin), _View(CAP_PROVIDERS_MANAGE))
        )
        self.assertFalse(
            permission.has_permission(self._request_for(self.customer), _View(CAP_PROVIDERS_MANAGE))
        )
        self.assertFalse(permission.has_permission(self._request_for(self.admin), _View()))
