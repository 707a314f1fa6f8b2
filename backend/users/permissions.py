from rest_framework.permissions import BasePermission


class IsSalonAdmin(BasePermission):
    """Allow staff users and superusers."""

    message = "Not authorized as an admin"

    def has_permission(self, request, view):
        user = request.user
        return bool(user and user.is_authenticated and getattr(user, "is_salon_admin", False))
