from django.contrib import admin
from .models import Order


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = ['id', 'table_number', 'guest_name', 'status', 'total_amount', 'created_at']
    list_filter = ['status', 'created_at']
    search_fields = ['table_number', 'guest_name', 'session_id']
    readonly_fields = ['table', 'table_number', 'session_id', 'items', 'total_amount',
                       'created_at', 'updated_at', 'served_at']
