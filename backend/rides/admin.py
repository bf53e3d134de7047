"""Tells what to show in the Django admin interface for rides app"""

from django.contrib import admin
from .models import Ride


@admin.register(Ride)
class RideAdmin(admin.ModelAdmin):
    """Ride admin"""
    list_display = ['id', 'host', 'ride_type', 'destination', 'departure_time', 'seats_available', 'status']
    list_filter = ['ride_type', 'status', 'departure_time']
    search_fields = ['host__username', 'origin', 'destination']
    readonly_fields = ['created_at', 'updated_at']
    date_hierarchy = 'departure_time'
