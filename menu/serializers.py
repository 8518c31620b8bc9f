from rest_framework import serializers
from .models import Category, MenuItem


class CategorySerializer(serializers.ModelSerializer):
    class Meta:
        model = Category
        fields = ['id', 'name', 'display_order']


class MenuItemSerializer(serializers.ModelSerializer):
    category = serializers.CharField(source='category.name', read_only=True)

    class Meta:
        model = MenuItem
        fields = ['id', 'name', 'description', 'price', 'category', 'is_available',
                 'preparation_time', 'allergens']
        extra_kwargs = {
            'price': {'help_text': 'Unit price in rupees (e.g., 120.00)'},
            'preparation_time': {'help_text': 'Expected preparation time in minutes'}
        }
