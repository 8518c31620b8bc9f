from rest_framework import serializers
from orders.serializers import OrderItemSerializer
from .models import Bill
from .services import PAYMENT_METHODS


class BillSerializer(serializers.ModelSerializer):
    items = OrderItemSerializer(many=True, read_only=True)

    class Meta:
        model = Bill
        fields = ['id', 'table', 'table_number', 'guest_name', 'session_id', 'orders', 'items',
                 'subtotal', 'gst_rate', 'tax', 'total', 'status', 'payment_method',
                 'generated_at', 'paid_at']
        read_only_fields = fields


class BillDraftSerializer(serializers.Serializer):
    table_id = serializers.IntegerField()
    table_number = serializers.IntegerField()
    guest_name = serializers.CharField()
    session_id = serializers.UUIDField()
    order_ids = serializers.ListField(child=serializers.IntegerField())
    items = OrderItemSerializer(many=True)
    subtotal = serializers.DecimalField(max_digits=10, decimal_places=2)
    gst_rate = serializers.DecimalField(max_digits=5, decimal_places=2)
    tax = serializers.DecimalField(max_digits=10, decimal_places=2, help_text="subtotal x gst_rate / 100")
    total = serializers.DecimalField(max_digits=10, decimal_places=2)


class SettleSerializer(serializers.Serializer):
    """Serializer for settling a table's session"""
    payment_method = serializers.ChoiceField(
        choices=PAYMENT_METHODS,
        default='cash',
        help_text="How the guest paid; recorded only"
    )
    expected_version = serializers.IntegerField(
        required=False,
        min_value=0,
        help_text="Table version the client saw"
    )


class BillQuerySerializer(serializers.Serializer):
    """Query string filters for bill history"""
    session_id = serializers.UUIDField(required=False)
    table_number = serializers.IntegerField(required=False, min_value=1)
