"""
Permission classes for clinic scoping.
"""
from rest_framework.permissions import SAFE_METHODS, BasePermission

from .models import Patient

MANAGER_ROLES = {"admin", "doctor"}


class IsClinicStaff(BasePermission):
    """Authenticated staff user bound to a clinic."""
    message = 'User is not bound to a clinic.'

    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        user = getattr(request, "user", None)
        return bool(user and user.is_authenticated and getattr(user, "clinic_id", None))


class IsClinicAdmin(BasePermission):
    """Clinic staff with the admin or doctor role."""
    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        user = getattr(request, "user", None)
        return bool(
            user and user.is_authenticated and getattr(user, "clinic_id", None)
            and (getattr(user, "role", None) in MANAGER_ROLES or user.is_superuser)
        )


class IsAppPatient(BasePermission):
    """Request authenticated with a patient app token."""
    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        return isinstance(getattr(request, "user", None), Patient)


class IsClinicAdminOrReadOnly(IsClinicAdmin):
    """Clinic staff may read; writes need the admin or doctor role."""
    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        if request.method in SAFE_METHODS:
            return True
        return super().has_permission(request, view)
