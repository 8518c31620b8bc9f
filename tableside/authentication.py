from dataclasses import dataclass
from typing import Optional

from rest_framework.authentication import BaseAuthentication
from rest_framework.exceptions import AuthenticationFailed
from django.conf import settings


STAFF_ROLES = ('waiter', 'chef', 'reception')


@dataclass(frozen=True)
class StaffIdentity:
    """
    Opaque staff record handed over by the external identity provider.

    Only ``uid`` (stamped on tables and orders) and ``role`` (selects the
    dashboard projection) are used by the lifecycle code.
    """
    uid: Optional[str] = None
    role: Optional[str] = None
    email: Optional[str] = None

    is_authenticated = True
    is_anonymous = False

    def __str__(self):
        return self.email or self.uid or 'anonymous-staff'


class APIKeyAuthentication(BaseAuthentication):
    """
    API key authentication using the X-API-Key header.

    Staff identity comes from X-Staff-Uid, X-Staff-Role and X-Staff-Email.
    """

    def authenticate(self, request):
        api_key = request.META.get('HTTP_X_API_KEY')

        if not api_key:
            return None

        expected_api_key = getattr(settings, 'API_KEY', 'demo')

        if api_key != expected_api_key:
            raise AuthenticationFailed('Invalid API key')

        role = request.META.get('HTTP_X_STAFF_ROLE') or None
        if role is not None:
            role = role.strip().lower()
            if role not in STAFF_ROLES:
                raise AuthenticationFailed(f'Unknown staff role: {role}')

        identity = StaffIdentity(
            uid=request.META.get('HTTP_X_STAFF_UID') or None,
            role=role,
            email=request.META.get('HTTP_X_STAFF_EMAIL') or None,
        )
        return (identity, api_key)
