from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework import status
from django.shortcuts import get_object_or_404
from drf_spectacular.utils import extend_schema, OpenApiParameter, OpenApiExample
from drf_spectacular.types import OpenApiTypes

from billing.serializers import BillDraftSerializer, BillSerializer, SettleSerializer
from billing.services import BillingService
from orders.selectors import session_orders_queryset
from orders.serializers import OrderSerializer
from tableside import exceptions
from .models import Table
from .serializers import (
    TableSerializer, CreateTableSerializer, UpdateTableSerializer,
    OccupyTableSerializer, FreeTableSerializer, VoidedSessionSerializer
)
from .services import TableLifecycleService, TableAdminService


TABLE_ID_PARAMETER = OpenApiParameter(
    name='table_id',
    type=OpenApiTypes.INT,
    location=OpenApiParameter.PATH,
    description='Table ID'
)


class TableListView(APIView):
    @extend_schema(
        summary="List tables",
        description="All tables ordered by number",
        parameters=[
            OpenApiParameter(name='status', type=OpenApiTypes.STR, location=OpenApiParameter.QUERY,
                             enum=[choice for choice, _ in Table.STATUS_CHOICES]),
        ],
        responses={200: TableSerializer(many=True)}
    )
    def get(self, request):
        tables = Table.objects.all()
        if request.query_params.get('status'):
            tables = tables.filter(status=request.query_params['status'])
        return Response(TableSerializer(tables, many=True).data)

    @extend_schema(
        summary="Create a table",
        request=CreateTableSerializer,
        responses={201: TableSerializer, 400: OpenApiTypes.OBJECT},
        examples=[
            OpenApiExample(
                'Create Table Example',
                summary='Create table 5',
                description='Create table 5 with 4 seats',
                value={'number': 5, 'capacity': 4}
            )
        ]
    )
    def post(self, request):
        serializer = CreateTableSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        try:
            table = TableAdminService.create_table(**serializer.validated_data)
        except exceptions.TablesideError as exc:
            return exceptions.error_response(exc)
        return Response(TableSerializer(table).data, status=status.HTTP_201_CREATED)


class TableDetailView(APIView):
    @extend_schema(
        summary="Get table details",
        parameters=[TABLE_ID_PARAMETER],
        responses={200: TableSerializer}
    )
    def get(self, request, table_id):
        table = get_object_or_404(Table, id=table_id)
        return Response(TableSerializer(table).data)

    @extend_schema(
        summary="Edit a table",
        description="Change number, capacity or status of a table that is not occupied",
        parameters=[TABLE_ID_PARAMETER],
        request=UpdateTableSerializer,
        responses={200: TableSerializer, 400: OpenApiTypes.OBJECT, 409: OpenApiTypes.OBJECT}
    )
    def patch(self, request, table_id):
        table = get_object_or_404(Table, id=table_id)
        serializer = UpdateTableSerializer(data=request.data, partial=True)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        try:
            table = TableAdminService.update_table(table.id, **serializer.validated_data)
        except exceptions.TablesideError as exc:
            return exceptions.error_response(exc)
        return Response(TableSerializer(table).data)

    @extend_schema(
        summary="Delete a table",
        parameters=[TABLE_ID_PARAMETER],
        responses={204: None, 400: OpenApiTypes.OBJECT}
    )
    def delete(self, request, table_id):
        table = get_object_or_404(Table, id=table_id)
        try:
            TableAdminService.delete_table(table.id)
        except exceptions.TablesideError as exc:
            return exceptions.error_response(exc)
        return Response(status=status.HTTP_204_NO_CONTENT)


class OccupyTableView(APIView):
    @extend_schema(
        summary="Seat guests",
        description="Occupy an available table and start a new session",
        parameters=[TABLE_ID_PARAMETER],
        request=OccupyTableSerializer,
        responses={200: TableSerializer, 400: OpenApiTypes.OBJECT, 409: OpenApiTypes.OBJECT},
        examples=[
            OpenApiExample(
                'Occupy Example',
                summary='Seat guest A at table 5',
                value={'guest_name': 'A', 'guest_phone': '555-1111', 'party_size': 2}
            )
        ]
    )
    def post(self, request, table_id):
        table = get_object_or_404(Table, id=table_id)

        serializer = OccupyTableSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        try:
            table = TableLifecycleService.occupy(
                table.id,
                acting_user=request.user,
                **serializer.validated_data
            )
        except exceptions.TablesideError as exc:
            return exceptions.error_response(exc)
        return Response(TableSerializer(table).data)


class FreeTableView(APIView):
    @extend_schema(
        summary="Free a table without billing",
        description="Release an occupied table whose session has nothing to bill. Leaves an audit record.",
        parameters=[TABLE_ID_PARAMETER],
        request=FreeTableSerializer,
        responses={200: VoidedSessionSerializer, 400: OpenApiTypes.OBJECT}
    )
    def post(self, request, table_id):
        table = get_object_or_404(Table, id=table_id)
        serializer = FreeTableSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        session_id = table.session_id
        try:
            table = TableLifecycleService.free_table(
                table.id,
                acting_user=request.user,
                reason=serializer.validated_data['reason']
            )
        except exceptions.TablesideError as exc:
            return exceptions.error_response(exc)

        voided = table.voided_sessions.get(session_id=session_id)
        return Response(VoidedSessionSerializer(voided).data)


class TableOrdersView(APIView):
    @extend_schema(
        summary="Current session orders",
        description="Orders of the seating currently at the table; empty when the table is free",
        parameters=[TABLE_ID_PARAMETER],
        responses={200: OrderSerializer(many=True)}
    )
    def get(self, request, table_id):
        table = get_object_or_404(Table, id=table_id)
        orders = session_orders_queryset(table)
        return Response(OrderSerializer(orders, many=True).data)


class TableBillView(APIView):
    @extend_schema(
        summary="Bill preview",
        description="Subtotal, tax and total for the table's current session. Nothing is saved.",
        parameters=[TABLE_ID_PARAMETER],
        responses={200: BillDraftSerializer, 400: OpenApiTypes.OBJECT, 409: OpenApiTypes.OBJECT}
    )
    def get(self, request, table_id):
        table = get_object_or_404(Table, id=table_id)
        try:
            draft = BillingService.preview(table.id)
        except exceptions.TablesideError as exc:
            return exceptions.error_response(exc)
        return Response(BillDraftSerializer(draft).data)


class SettleTableView(APIView):
    @extend_schema(
        summary="Settle table",
        description=(
            "Generate the paid bill for the current session, release the table and "
            "mark the session's orders served. All or nothing."
        ),
        parameters=[TABLE_ID_PARAMETER],
        request=SettleSerializer,
        responses={
            201: BillSerializer,
            400: OpenApiTypes.OBJECT,
            409: OpenApiTypes.OBJECT,
            503: OpenApiTypes.OBJECT
        },
        examples=[
            OpenApiExample(
                'Settle Request',
                summary='Pay by card',
                value={'payment_method': 'card'}
            ),
            OpenApiExample(
                'Nothing To Bill',
                summary='Session has no orders',
                value={'error': 'No orders found for Table 5', 'code': 'nothing_to_bill'},
                response_only=True,
                status_codes=['400']
            )
        ]
    )
    def post(self, request, table_id):
        table = get_object_or_404(Table, id=table_id)

        serializer = SettleSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        try:
            bill = BillingService.settle(
                table.id,
                serializer.validated_data['payment_method'],
                acting_user=request.user,
                expected_version=serializer.validated_data.get('expected_version')
            )
        except exceptions.TablesideError as exc:
            return exceptions.error_response(exc)
        return Response(BillSerializer(bill).data, status=status.HTTP_201_CREATED)
