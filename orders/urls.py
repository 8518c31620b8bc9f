from django.urls import path
from . import views

urlpatterns = [
    path('', views.OrderListView.as_view(), name='order_list'),
    path('direct/', views.DirectOrderView.as_view(), name='direct_order'),
    path('ready/', views.ReadyForPickupView.as_view(), name='ready_for_pickup'),
    path('<int:order_id>/', views.OrderDetailView.as_view(), name='order_detail'),
    path('<int:order_id>/advance/', views.AdvanceOrderView.as_view(), name='advance_order'),
]
