from django.contrib import admin
from .models import Bill


@admin.register(Bill)
class BillAdmin(admin.ModelAdmin):
    list_display = ['id', 'table_number', 'guest_name', 'total', 'payment_method', 'status', 'paid_at']
    list_filter = ['status', 'payment_method', 'paid_at']
    search_fields = ['table_number', 'guest_name', 'session_id']
    readonly_fields = ['session_id', 'items', 'subtotal', 'gst_rate', 'tax', 'total',
                       'generated_at', 'paid_at']
