"""Tells what to show in the Django admin interface for orders app"""

from django.contrib import admin
from .models import Order

@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    """Order admin"""
    list_display = ['id', 'buyer', 'farmer', 'status', 'transporter', 'transport_cost', 'created_at']
    list_filter = ['status', 'uses_transport', 'created_at']
    search_fields = ['buyer__username', 'farmer__username', 'delivery_location', 'listing_id']
    readonly_fields = ['created_at', 'updated_at', 'cancelled_at']
    date_hierarchy = 'created_at'
