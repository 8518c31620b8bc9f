from django.urls import path
from . import views

urlpatterns = [
    path('', views.MenuListView.as_view(), name='menu_list'),
    path('categories/', views.CategoryListView.as_view(), name='category_list'),
]
