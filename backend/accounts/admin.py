from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from django.db.models import Count

from accounts.models import User
from transporters.models import TransporterProfile


class TransporterProfileInline(admin.StackedInline):
    """Vehicle and track record, edited alongside the transporter's account"""
    model = TransporterProfile
    can_delete = False
    extra = 0
    fields = (
        ("vehicle_number", "vehicle_type", "vehicle_capacity_kg"),
        ("base_location", "service_areas"),
        ("rating", "completed_deliveries", "on_time_delivery_rate", "platform_score"),
        "status",
    )
    readonly_fields = ("completed_deliveries", "platform_score")


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    """Marketplace accounts: farmers, buyers and transporters"""

    list_display = [
        "username",
        "role",
        "phone_number",
        "availability",
        "order_count",
        "is_active",
    ]
    list_filter = ["role", "transporter_profile__status", "is_active"]
    search_fields = ["username", "email", "phone_number", "transporter_profile__vehicle_number"]
    ordering = ("role", "username")

    fieldsets = BaseUserAdmin.fieldsets + (
        ("Marketplace", {"fields": ("role", "phone_number")}),
    )
    add_fieldsets = BaseUserAdmin.add_fieldsets + (
        ("Marketplace", {"fields": ("role", "phone_number")}),
    )

    def get_inlines(self, request, obj):
        # Only transporters carry a vehicle profile
        if obj is not None and obj.role == "transporter":
            return [TransporterProfileInline]
        return []

    def get_queryset(self, request):
        return (
            super().get_queryset(request)
            .select_related("transporter_profile")
            .annotate(
                _sales=Count("sales", distinct=True),
                _purchases=Count("purchases", distinct=True),
                _jobs=Count("transport_assignments", distinct=True),
            )
        )

    @admin.display(description="Availability", ordering="transporter_profile__status")
    def availability(self, obj):
        profile = getattr(obj, "transporter_profile", None) if obj.role == "transporter" else None
        return profile.get_status_display() if profile else "-"

    @admin.display(description="Orders")
    def order_count(self, obj):
        """Sales for farmers, purchases for buyers, jobs for transporters"""
        return {
            "farmer": obj._sales,
            "buyer": obj._purchases,
            "transporter": obj._jobs,
        }.get(obj.role, 0)
