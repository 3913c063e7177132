from django.conf import settings
from rest_framework.permissions import BasePermission


class CrmAccess(BasePermission):
    """
    Open when CRM_ENABLE_AUTH is off (local/dev); otherwise every request,
    reads included, needs an authenticated user (JWT bearer token).
    """
    def has_permission(self, request, view):
        if not getattr(settings, "CRM_ENABLE_AUTH", False):
            return True
        return bool(request.user and request.user.is_authenticated)
