from django.urls import path
from . import views

urlpatterns = [
    path('', views.TableListView.as_view(), name='table_list'),
    path('<int:table_id>/', views.TableDetailView.as_view(), name='table_detail'),
    path('<int:table_id>/occupy/', views.OccupyTableView.as_view(), name='occupy_table'),
    path('<int:table_id>/free/', views.FreeTableView.as_view(), name='free_table'),
    path('<int:table_id>/orders/', views.TableOrdersView.as_view(), name='table_orders'),
    path('<int:table_id>/bill/', views.TableBillView.as_view(), name='table_bill'),
    path('<int:table_id>/settle/', views.SettleTableView.as_view(), name='settle_table'),
]
