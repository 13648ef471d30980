from django.contrib import admin
from django.urls import path, include

from .views import health_check

urlpatterns = [
    path('admin/', admin.site.urls),
    path("health/", health_check), # Health check endpoint
    
    # Authentication endpoints (at /api/auth/)
    path('api/auth/', include('accounts.urls')),  # register, login, refresh
    
    # Transporter APIs (profile, status, assignments)
    path('api/transporter/', include('transporters.urls')),

    # Order detail, cancel, confirm delivery
    path('api/orders/', include('orders.urls')),
    
    # Transport cascade endpoints (at /api/transport/)
    path('api/transport/', include('transport.urls')),  # matching, cascades, offers, assignments
]
