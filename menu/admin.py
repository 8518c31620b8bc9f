from django.contrib import admin
from .models import Category, MenuItem, RestaurantSettings


@admin.register(Category)
class CategoryAdmin(admin.ModelAdmin):
    list_display = ['id', 'name', 'display_order']
    search_fields = ['name']


@admin.register(MenuItem)
class MenuItemAdmin(admin.ModelAdmin):
    list_display = ['id', 'name', 'category', 'price', 'is_available']
    search_fields = ['name']
    list_filter = ['category', 'is_available']


@admin.register(RestaurantSettings)
class RestaurantSettingsAdmin(admin.ModelAdmin):
    list_display = ['gst_rate', 'updated_at']
    readonly_fields = ['updated_at']
