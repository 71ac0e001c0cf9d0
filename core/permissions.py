"""
Role based permission classes.
"""
from rest_framework.permissions import BasePermission, SAFE_METHODS

from core.models import User


def _role(request):
    user = getattr(request, "user", None)
    if not (user and user.is_authenticated):
        return None
    return getattr(user, "role", None)


class IsAdminRole(BasePermission):
    """Allow access only to users with the admin role."""
    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        return _role(request) == User.ROLE_ADMIN


class IsDoctorRole(BasePermission):
    """Allow access only to users with the doctor role."""
    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        return _role(request) == User.ROLE_DOCTOR


class IsPatientRole(BasePermission):
    """Allow access only to users with the patient role."""
    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        return _role(request) == User.ROLE_PATIENT


class IsAdminOrDoctor(BasePermission):
    def has_permission(self, request, view) -> bool:
        return _role(request) in {User.ROLE_ADMIN, User.ROLE_DOCTOR}


class IsAdminOrPatient(BasePermission):
    def has_permission(self, request, view) -> bool:
        return _role(request) in {User.ROLE_ADMIN, User.ROLE_PATIENT}


class ReadOnly(BasePermission):
    """Allow read-only access (GET, HEAD, OPTIONS)."""
    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        return request.method in SAFE_METHODS


def is_admin_or_doctor_self(user, doctor_id) -> bool:
    """Admins may manage any doctor; a doctor only their own record."""
    role = getattr(user, "role", None)
    if role == User.ROLE_ADMIN:
        return True
    if role == User.ROLE_DOCTOR:
        profile = getattr(user, "doctor_profile", None)
        return bool(profile and profile.id == int(doctor_id))
    return False
