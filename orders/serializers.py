from rest_framework import serializers
from .models import Order


class OrderItemSerializer(serializers.Serializer):
    """Menu snapshot embedded in an order"""
    id = serializers.IntegerField(help_text="Menu item the line was taken from")
    name = serializers.CharField()
    price = serializers.DecimalField(max_digits=10, decimal_places=2)
    quantity = serializers.IntegerField(min_value=1)
    notes = serializers.CharField(allow_blank=True, required=False)
    category = serializers.CharField()


class OrderSerializer(serializers.ModelSerializer):
    items = OrderItemSerializer(many=True, read_only=True)

    class Meta:
        model = Order
        fields = ['id', 'table', 'table_number', 'guest_name', 'session_id', 'waiter_id',
                 'items', 'status', 'total_amount', 'notes', 'created_at', 'updated_at', 'served_at']
        read_only_fields = fields
        extra_kwargs = {
            'total_amount': {'help_text': 'Sum of price x quantity, frozen at submission'}
        }


class OrderLineRequestSerializer(serializers.Serializer):
    menu_item_id = serializers.IntegerField(help_text="ID of the menu item to order")
    quantity = serializers.IntegerField(min_value=1, default=1, help_text="Quantity (minimum 1)")
    notes = serializers.CharField(max_length=200, required=False, allow_blank=True, default='')


class SubmitOrderSerializer(serializers.Serializer):
    table_id = serializers.IntegerField(help_text="Table the order is for")
    session_id = serializers.UUIDField(
        required=False,
        help_text="Session the client saw on the table; rejected if the table moved on"
    )
    items = OrderLineRequestSerializer(many=True)
    notes = serializers.CharField(required=False, allow_blank=True, default='')


class AdvanceOrderSerializer(serializers.Serializer):
    status = serializers.ChoiceField(
        choices=[Order.STATUS_PREPARING, Order.STATUS_READY, Order.STATUS_SERVED],
        help_text="Next status for the order"
    )


class OrderQuerySerializer(serializers.Serializer):
    """Query string filters for the order list"""
    status = serializers.ChoiceField(choices=Order.STATUS_CHOICES, required=False)
    table_id = serializers.IntegerField(required=False, min_value=1)
    session_id = serializers.UUIDField(required=False)
    today = serializers.BooleanField(required=False, default=False)
