from django.contrib import admin
from transporters.models import TransporterProfile


@admin.register(TransporterProfile)
class TransporterProfileAdmin(admin.ModelAdmin):
    """Admin panel for managing Transporter Profiles"""

    list_display = [
        "user",
        "vehicle_number",
        "vehicle_type",
        "vehicle_capacity_kg",
        "rating",
        "completed_deliveries",
        "platform_score",
        "status",
    ]

    list_filter = [
        "status",
        "vehicle_type",
    ]

    search_fields = [
        "user__username",
        "vehicle_number",
        "base_location",
    ]

    readonly_fields = [
        "updated_at",
    ]

    ordering = ("user__username",)
