# permissions/roles.py

from __future__ import annotations

from typing import Optional

from rest_framework.permissions import BasePermission


# =========================================================
# ROLE CONSTANTS
# =========================================================
ROLE_ADMIN = "admin"
ROLE_CUSTOMER = "customer"


# =========================================================
# CAPABILITIES (THE REAL PERMISSION LANGUAGE)
# =========================================================
# Views protect capabilities, not raw roles.
CAP_ORDERS_PLACE = "orders.place"
CAP_ORDERS_MANAGE = "orders.manage"          # any user's orders: cancel with reason, force sync
CAP_PROVIDERS_MANAGE = "providers.manage"    # catalog sync, balance refresh, connection test
CAP_WALLET_ADJUST = "wallet.adjust"          # manual credit/debit of a user's wallet

ALL_CAPABILITIES = {
    CAP_ORDERS_PLACE,
    CAP_ORDERS_MANAGE,
    CAP_PROVIDERS_MANAGE,
    CAP_WALLET_ADJUST,
}


# =========================================================
# ROLE → CAPABILITY MAP
# =========================================================
ROLE_CAPABILITIES: dict[str, set[str]] = {
    ROLE_ADMIN: {
        *ALL_CAPABILITIES,
    },
    ROLE_CUSTOMER: {
        CAP_ORDERS_PLACE,
    },
}


# =========================================================
# Helpers
# =========================================================
def get_user_role(user) -> Optional[str]:
    if getattr(user, "is_superuser", False):
        return ROLE_ADMIN
    return getattr(user, "role", None)


def capabilities_for(user) -> set[str]:
    return set(ROLE_CAPABILITIES.get(get_user_role(user), set()))


def user_has_capability(user, capability: str) -> bool:
    if not user or not getattr(user, "is_authenticated", False):
        return False
    return capability in capabilities_for(user)


# =========================================================
# Capability Permissions
# =========================================================
class HasCapability(BasePermission):
    """
    Require a specific capability.

    Usage:
        permission_classes = [IsAuthenticated, HasCapability]
        required_capability = CAP_ORDERS_MANAGE
    """

    def has_permission(self, request, view):
        required = getattr(view, "required_capability", None)
        if not required:
            # deny-by-default: a view that forgot to declare a capability is closed
            return False

        return user_has_capability(request.user, required)


class IsOwnerOrHasCapability(BasePermission):
    """
    Object-level: the object's owner, or anyone holding view.required_capability.

    The owner is read from obj.user_id.
    """

    def has_object_permission(self, request, view, obj):
        user = request.user
        if not user or not user.is_authenticated:
            return False

        if getattr(obj, "user_id", None) == user.pk:
            return True

        required = getattr(view, "required_capability", None)
        return bool(required) and user_has_capability(user, required)
