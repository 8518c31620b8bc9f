from rest_framework.views import APIView
from rest_framework.response import Response
from drf_spectacular.utils import extend_schema, OpenApiParameter
from drf_spectacular.types import OpenApiTypes

from .models import Category, MenuItem
from .serializers import CategorySerializer, MenuItemSerializer


class MenuListView(APIView):
    @extend_schema(
        summary="List menu items",
        description="Available menu items, optionally restricted to one category",
        parameters=[
            OpenApiParameter(
                name='category',
                type=OpenApiTypes.STR,
                location=OpenApiParameter.QUERY,
                description='Category name (case-insensitive)'
            )
        ],
        responses={200: MenuItemSerializer(many=True)}
    )
    def get(self, request):
        items = MenuItem.objects.select_related('category').filter(is_available=True)
        category = request.query_params.get('category')
        if category:
            items = items.filter(category__name__iexact=category)
        return Response(MenuItemSerializer(items, many=True).data)


class CategoryListView(APIView):
    @extend_schema(
        summary="List categories",
        responses={200: CategorySerializer(many=True)}
    )
    def get(self, request):
        return Response(CategorySerializer(Category.objects.all(), many=True).data)
