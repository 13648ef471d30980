"""Tells what to show in the Django admin interface for transport app"""

from django.contrib import admin
from .models import TransportCascade, TransportOffer, TransportAssignment


class TransportOfferInline(admin.TabularInline):
    model = TransportOffer
    extra = 0
    fields = ("tier", "transporter", "status", "is_active", "sent_at", "responded_at", "counter_fee")
    readonly_fields = fields
    can_delete = False


@admin.register(TransportCascade)
class TransportCascadeAdmin(admin.ModelAdmin):
    """Transport cascade admin"""
    list_display = ['id', 'order', 'farmer', 'state', 'proposed_fee', 'minimum_fee', 'created_at', 'resolved_at']
    list_filter = ['state', 'created_at']
    search_fields = ['order__id', 'farmer__username']
    readonly_fields = ['version', 'sent_to_primary_at', 'sent_to_secondary_at', 'sent_to_tertiary_at',
                       'created_at', 'resolved_at', 'cancelled_at']
    inlines = [TransportOfferInline]


@admin.register(TransportOffer)
class TransportOfferAdmin(admin.ModelAdmin):
    list_display = ("cascade", "order", "transporter", "tier", "status", "is_active", "sent_at", "responded_at")
    list_filter = ("status", "tier")
    search_fields = ("order__id", "transporter__username")


@admin.register(TransportAssignment)
class TransportAssignmentAdmin(admin.ModelAdmin):
    list_display = ("order", "transporter", "transport_cost", "status", "pickup_time", "delivery_time")
    list_filter = ("status",)
    search_fields = ("order__id", "transporter__username")
