from rest_framework.permissions import BasePermission


class APIKeyPermission(BasePermission):
    """Requires a request authenticated by APIKeyAuthentication"""

    def has_permission(self, request, view):
        # request.auth holds the api key string when authentication succeeded
        return getattr(request, 'auth', None) is not None
