from django.contrib import admin
from .models import Table, VoidedSession


@admin.register(Table)
class TableAdmin(admin.ModelAdmin):
    list_display = ['id', 'number', 'capacity', 'status', 'guest_name', 'occupied_at']
    list_filter = ['status']
    search_fields = ['number', 'guest_name', 'guest_phone']
    readonly_fields = ['session_id', 'occupied_at', 'waiter_id', 'version', 'updated_at']


@admin.register(VoidedSession)
class VoidedSessionAdmin(admin.ModelAdmin):
    list_display = ['id', 'table_number', 'guest_name', 'released_by', 'released_at']
    search_fields = ['table_number', 'session_id']
    readonly_fields = ['released_at']
