from django.db.models import Q
from django.utils import timezone
from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework import status
from drf_spectacular.utils import extend_schema, OpenApiParameter
from drf_spectacular.types import OpenApiTypes

from billing.models import Bill
from orders.models import Order
from tables.models import Table
from tableside import exceptions
from tableside.authentication import STAFF_ROLES
from .projections import project_for_role


class DashboardView(APIView):
    """Role specific dashboard, rebuilt from current state on every request"""

    @extend_schema(
        summary="Get dashboard",
        description="Waiter floor plan, chef kitchen board or reception overview. "
                    "Defaults to the role in X-Staff-Role.",
        parameters=[
            OpenApiParameter(name='role', type=OpenApiTypes.STR, location=OpenApiParameter.QUERY,
                             enum=list(STAFF_ROLES)),
            OpenApiParameter(name='search', type=OpenApiTypes.STR, location=OpenApiParameter.QUERY,
                             description='Waiter view only: table number, guest name or status'),
        ],
        responses={200: OpenApiTypes.OBJECT, 400: OpenApiTypes.OBJECT}
    )
    def get(self, request):
        role = request.query_params.get('role') or getattr(request.user, 'role', None)
        if not role:
            return Response({'error': 'role is required'}, status=status.HTTP_400_BAD_REQUEST)

        now = timezone.now()
        tables = list(Table.objects.all())
        open_sessions = [t.session_id for t in tables if t.session_id is not None]
        orders = list(Order.objects.filter(
            Q(session_id__in=open_sessions) | Q(created_at__date=timezone.localdate(now))
        ))
        bills = list(Bill.objects.filter(status='paid', paid_at__date=timezone.localdate(now)))

        try:
            data = project_for_role(role, tables, orders, bills, now=now,
                                    search=request.query_params.get('search', ''))
        except exceptions.TablesideError as exc:
            return exceptions.error_response(exc)
        return Response(data)
