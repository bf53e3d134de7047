from django.contrib import admin
from django.urls import path, include

from .views import health_check

urlpatterns = [
    path('admin/', admin.site.urls),
    path("health/", health_check), # Health check endpoint

    # Ride board and matching (at /api/rides/)
    path('api/rides/', include('rides.urls')),

    # Activity tracking and achievements (at /api/activity/)
    path('api/activity/', include('accounts.urls')),
]
