"""
URL configuration for config project.

The invoice operations are exposed as services (apps.invoices.services) and
the reminder job; only the admin and a health check are routed here.
"""
from django.contrib import admin
from django.urls import path

from config.views import health_check

urlpatterns = [
    # Health check
    path('api/health/', health_check, name='health-check'),

    # Admin
    path('admin/', admin.site.urls),
]


# Custom error handlers
handler404 = 'config.views.error_404'
handler500 = 'config.views.error_500'
