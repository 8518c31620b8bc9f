from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework import status
from django.shortcuts import get_object_or_404
from drf_spectacular.utils import extend_schema, OpenApiParameter
from drf_spectacular.types import OpenApiTypes

from .models import Bill
from .serializers import BillSerializer, BillQuerySerializer


class BillListView(APIView):
    """Bill history"""

    @extend_schema(
        summary="List bills",
        description="Bills newest first, optionally for one session or table",
        parameters=[
            OpenApiParameter(name='session_id', type=OpenApiTypes.UUID, location=OpenApiParameter.QUERY),
            OpenApiParameter(name='table_number', type=OpenApiTypes.INT, location=OpenApiParameter.QUERY),
        ],
        responses={200: BillSerializer(many=True), 400: OpenApiTypes.OBJECT}
    )
    def get(self, request):
        query = BillQuerySerializer(data={k: v for k, v in request.query_params.items() if v != ''})
        if not query.is_valid():
            return Response(query.errors, status=status.HTTP_400_BAD_REQUEST)

        params = query.validated_data
        bills = Bill.objects.prefetch_related('orders')
        if 'session_id' in params:
            bills = bills.filter(session_id=params['session_id'])
        if 'table_number' in params:
            bills = bills.filter(table_number=params['table_number'])
        return Response(BillSerializer(bills, many=True).data)


class BillDetailView(APIView):
    @extend_schema(
        summary="Get bill",
        responses={200: BillSerializer}
    )
    def get(self, request, bill_id):
        bill = get_object_or_404(Bill, id=bill_id)
        return Response(BillSerializer(bill).data)
