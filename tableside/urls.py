"""
URL configuration for the tableside project.
"""
from django.contrib import admin
from django.urls import path, include
from drf_spectacular.views import SpectacularAPIView, SpectacularSwaggerView

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/tables/', include('tables.urls')),
    path('api/orders/', include('orders.urls')),
    path('api/bills/', include('billing.urls')),
    path('api/menu/', include('menu.urls')),
    path('api/dashboard/', include('dashboards.urls')),
    path('api/schema/', SpectacularAPIView.as_view(), name='schema'),
    path('api/docs/', SpectacularSwaggerView.as_view(url_name='schema'), name='swagger-ui'),
]
