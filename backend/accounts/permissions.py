# accounts/permissions.py
from rest_framework.permissions import BasePermission


class _RolePermission(BasePermission):
    """
    Allows access only to authenticated users with a given role.
    Keeps role check logic centralized.
    """
    role = None

    def has_permission(self, request, view):
        user = getattr(request, "user", None)
        if not user or not user.is_authenticated:
            return False
        return getattr(user, "role", None) == self.role


class IsFarmer(_RolePermission):
    role = "farmer"


class IsBuyer(_RolePermission):
    role = "buyer"


class IsTransporter(_RolePermission):
    role = "transporter"
