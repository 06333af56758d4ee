# permissions/roles.py

from __future__ import annotations

from typing import Optional

from rest_framework.permissions import BasePermission


# =========================================================
# ROLE CONSTANTS (STAFF JOB ROLES)
# =========================================================
# These mirror users.User.ROLE_* and describe what the staff member does.
ROLE_OWNER = "owner"
ROLE_MANAGER = "manager"
ROLE_CASHIER = "cashier"
ROLE_STAFF = "staff"

STAFF_ROLES = {
    ROLE_OWNER,
    ROLE_MANAGER,
    ROLE_CASHIER,
    ROLE_STAFF,
}


# =========================================================
# CAPABILITIES (THE REAL PERMISSION LANGUAGE)
# =========================================================
# Views protect capabilities, not raw roles.
CAP_ORDERS_VIEW = "orders.view"
CAP_ORDERS_MANAGE = "orders.manage"

CAP_PAYMENTS_TAKE = "payments.take"
CAP_PAYMENTS_DELETE = "payments.delete"
CAP_PAYMENTS_REFUND = "payments.refund"

CAP_GIFTCARDS_VIEW = "giftcards.view"
CAP_GIFTCARDS_ISSUE = "giftcards.issue"

ALL_CAPABILITIES = {
    CAP_ORDERS_VIEW,
    CAP_ORDERS_MANAGE,
    CAP_PAYMENTS_TAKE,
    CAP_PAYMENTS_DELETE,
    CAP_PAYMENTS_REFUND,
    CAP_GIFTCARDS_VIEW,
    CAP_GIFTCARDS_ISSUE,
}


# =========================================================
# ROLE → CAPABILITY MAP
# =========================================================
ROLE_CAPABILITIES: dict[str, set[str]] = {
    ROLE_OWNER: {
        *ALL_CAPABILITIES,
    },
    ROLE_MANAGER: {
        *ALL_CAPABILITIES,
    },
    ROLE_CASHIER: {
        CAP_ORDERS_VIEW,
        CAP_ORDERS_MANAGE,
        CAP_PAYMENTS_TAKE,
        CAP_GIFTCARDS_VIEW,
        # NOT delete/refund: those reverse money and need a manager
    },
    ROLE_STAFF: {
        CAP_ORDERS_VIEW,
        CAP_ORDERS_MANAGE,
    },
}


# =========================================================
# Helpers
# =========================================================
def get_user_role(user) -> Optional[str]:
    return getattr(user, "role", None)


def effective_capabilities_for(user) -> set[str]:
    """
    Capabilities granted to the user.

    Superusers get everything; inactive or business-less staff get nothing.
    """
    if getattr(user, "is_superuser", False):
        return set(ALL_CAPABILITIES)

    if getattr(user, "business_id", None) is None:
        return set()

    return set(ROLE_CAPABILITIES.get(get_user_role(user), set()))


def user_has_capability(user, capability: str) -> bool:
    return capability in effective_capabilities_for(user)


# =========================================================
# Capability Permissions
# =========================================================
class HasCapability(BasePermission):
    """
    Require a specific capability.

    Usage:
        permission_classes = [IsAuthenticated, HasCapability]
        view.required_capability = CAP_PAYMENTS_REFUND
    """

    def has_permission(self, request, view):
        user = request.user
        if not user or not user.is_authenticated:
            return False

        required = getattr(view, "required_capability", None)
        if not required:
            # deny-by-default: an unset capability must not open the endpoint
            return False

        return user_has_capability(user, required)


class HasAnyCapability(BasePermission):
    """
    Require ANY capability from a list.

    Usage:
        view.required_any_capabilities = {CAP_ORDERS_VIEW, CAP_ORDERS_MANAGE}
    """

    def has_permission(self, request, view):
        user = request.user
        if not user or not user.is_authenticated:
            return False

        required = getattr(view, "required_any_capabilities", None)
        if not required:
            return False

        caps = effective_capabilities_for(user)
        return any(cap in caps for cap in set(required))
