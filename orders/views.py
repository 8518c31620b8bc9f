from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework import status
from django.shortcuts import get_object_or_404
from drf_spectacular.utils import extend_schema, OpenApiParameter, OpenApiExample
from drf_spectacular.types import OpenApiTypes

from tableside import exceptions
from tables.models import Table
from . import selectors
from .models import Order
from .serializers import OrderSerializer, OrderQuerySerializer, SubmitOrderSerializer, AdvanceOrderSerializer
from .services import OrderLifecycleService


SUBMIT_EXAMPLE = OpenApiExample(
    'Submit Order Example',
    summary='Order for table 5',
    description='Two portions of menu item 1 and one of menu item 2',
    value={
        'table_id': 5,
        'items': [
            {'menu_item_id': 1, 'quantity': 2},
            {'menu_item_id': 2, 'quantity': 1, 'notes': 'less spicy'}
        ],
        'notes': ''
    }
)


def _submit(request, create):
    serializer = SubmitOrderSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    data = serializer.validated_data
    table = get_object_or_404(Table, id=data['table_id'])
    try:
        order = create(
            table.id,
            data['items'],
            notes=data['notes'],
            acting_user=request.user,
            session_id=data.get('session_id'),
        )
    except exceptions.TablesideError as exc:
        return exceptions.error_response(exc)
    return Response(OrderSerializer(order).data, status=status.HTTP_201_CREATED)


class OrderListView(APIView):
    @extend_schema(
        summary="List orders",
        description="Orders filtered by status, table and session",
        parameters=[
            OpenApiParameter(name='status', type=OpenApiTypes.STR, location=OpenApiParameter.QUERY,
                             enum=[choice for choice, _ in Order.STATUS_CHOICES]),
            OpenApiParameter(name='table_id', type=OpenApiTypes.INT, location=OpenApiParameter.QUERY),
            OpenApiParameter(name='session_id', type=OpenApiTypes.UUID, location=OpenApiParameter.QUERY),
            OpenApiParameter(name='today', type=OpenApiTypes.BOOL, location=OpenApiParameter.QUERY,
                             description='Only orders created today'),
        ],
        responses={200: OrderSerializer(many=True), 400: OpenApiTypes.OBJECT}
    )
    def get(self, request):
        query = OrderQuerySerializer(data={k: v for k, v in request.query_params.items() if v != ''})
        if not query.is_valid():
            return Response(query.errors, status=status.HTTP_400_BAD_REQUEST)

        params = query.validated_data
        orders = Order.objects.all()
        if 'status' in params:
            orders = orders.filter(status=params['status'])
        if 'table_id' in params:
            orders = orders.filter(table_id=params['table_id'])
        if 'session_id' in params:
            orders = orders.filter(session_id=params['session_id'])
        if params['today']:
            orders = selectors.created_on(orders)
        return Response(OrderSerializer(orders, many=True).data)

    @extend_schema(
        summary="Submit order",
        description="Send an order for an occupied table to the kitchen",
        request=SubmitOrderSerializer,
        responses={201: OrderSerializer, 400: OpenApiTypes.OBJECT},
        examples=[SUBMIT_EXAMPLE]
    )
    def post(self, request):
        return _submit(request, OrderLifecycleService.submit)


class DirectOrderView(APIView):
    @extend_schema(
        summary="Direct-entry order",
        description="Reception charge that skips the kitchen and is recorded as served",
        request=SubmitOrderSerializer,
        responses={201: OrderSerializer, 400: OpenApiTypes.OBJECT},
        examples=[SUBMIT_EXAMPLE]
    )
    def post(self, request):
        return _submit(request, OrderLifecycleService.submit_served)


class OrderDetailView(APIView):
    @extend_schema(
        summary="Get order",
        responses={200: OrderSerializer}
    )
    def get(self, request, order_id):
        order = get_object_or_404(Order, id=order_id)
        return Response(OrderSerializer(order).data)


class AdvanceOrderView(APIView):
    @extend_schema(
        summary="Advance order status",
        description="pending -> preparing -> ready -> served. Repeating the current status is a no-op.",
        request=AdvanceOrderSerializer,
        responses={200: OrderSerializer, 400: OpenApiTypes.OBJECT},
        examples=[
            OpenApiExample(
                'Start Preparing',
                summary='Kitchen starts an order',
                value={'status': 'preparing'}
            )
        ]
    )
    def post(self, request, order_id):
        order = get_object_or_404(Order, id=order_id)

        serializer = AdvanceOrderSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        try:
            order = OrderLifecycleService.advance(order.id, serializer.validated_data['status'])
        except exceptions.TablesideError as exc:
            return exceptions.error_response(exc)
        return Response(OrderSerializer(order).data)


class ReadyForPickupView(APIView):
    @extend_schema(
        summary="Orders ready for pickup",
        description="Ready orders whose table still holds the session that placed them",
        responses={200: OrderSerializer(many=True)}
    )
    def get(self, request):
        orders = selectors.ready_for_pickup_queryset()
        return Response(OrderSerializer(orders, many=True).data)
