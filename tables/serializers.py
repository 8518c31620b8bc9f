from rest_framework import serializers
from .models import Table, VoidedSession


class TableSerializer(serializers.ModelSerializer):
    class Meta:
        model = Table
        fields = ['id', 'number', 'capacity', 'status', 'guest_name', 'guest_phone',
                 'party_size', 'occupied_at', 'waiter_id', 'session_id', 'version', 'updated_at']
        read_only_fields = fields
        extra_kwargs = {
            'session_id': {'help_text': 'Current seating; set only while the table is occupied'},
            'version': {'help_text': 'Pass back as expected_version to reject writes based on a stale view'}
        }


class CreateTableSerializer(serializers.ModelSerializer):
    status = serializers.ChoiceField(
        choices=[Table.STATUS_AVAILABLE, Table.STATUS_RESERVED],
        default=Table.STATUS_AVAILABLE
    )

    class Meta:
        model = Table
        fields = ['number', 'capacity', 'status']
        extra_kwargs = {
            'number': {'help_text': 'Table number (positive integer)', 'validators': []},
            'capacity': {'help_text': 'Number of seats (positive integer)'}
        }

    def validate_number(self, value):
        if value <= 0:
            raise serializers.ValidationError("number must be a positive integer")
        return value

    def validate_capacity(self, value):
        if value <= 0:
            raise serializers.ValidationError("capacity must be a positive integer")
        return value


class UpdateTableSerializer(CreateTableSerializer):
    status = serializers.ChoiceField(
        choices=[Table.STATUS_AVAILABLE, Table.STATUS_RESERVED],
        required=False
    )
    expected_version = serializers.IntegerField(required=False, min_value=0)

    class Meta(CreateTableSerializer.Meta):
        fields = ['number', 'capacity', 'status', 'expected_version']
        extra_kwargs = {
            'number': {'required': False, 'validators': []},
            'capacity': {'required': False}
        }


class OccupyTableSerializer(serializers.Serializer):
    guest_name = serializers.CharField(max_length=100, allow_blank=True, help_text="Guest name")
    guest_phone = serializers.CharField(max_length=30, allow_blank=True, help_text="Guest phone number")
    party_size = serializers.IntegerField(default=1, help_text="Number of guests (minimum 1)")
    expected_version = serializers.IntegerField(required=False, min_value=0)


class FreeTableSerializer(serializers.Serializer):
    reason = serializers.CharField(max_length=200, required=False, allow_blank=True, default='')


class VoidedSessionSerializer(serializers.ModelSerializer):
    class Meta:
        model = VoidedSession
        fields = ['id', 'table', 'table_number', 'session_id', 'guest_name',
                 'released_by', 'reason', 'released_at']
