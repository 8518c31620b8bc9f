from django.urls import path
from . import views

urlpatterns = [
    path('', views.BillListView.as_view(), name='bill_list'),
    path('<int:bill_id>/', views.BillDetailView.as_view(), name='bill_detail'),
]
