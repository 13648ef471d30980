from rest_framework import serializers
from transporters.models import TransporterProfile
from accounts.serializers import UserSerializer


class TransporterProfileSerializer(serializers.ModelSerializer):
    """
    Full transporter profile serializer
    """
    user = UserSerializer(read_only=True)

    class Meta:
        model = TransporterProfile
        fields = [
            "id",
            "user",
            "vehicle_number",
            "vehicle_type",
            "vehicle_capacity_kg",
            "base_location",
            "service_areas",
            "rating",
            "completed_deliveries",
            "on_time_delivery_rate",
            "platform_score",
            "status",
            "updated_at",
        ]
        read_only_fields = [
            "id",
            "rating",
            "completed_deliveries",
            "on_time_delivery_rate",
            "platform_score",
            "status",
            "updated_at",
        ]

    def validate_service_areas(self, value):
        if not isinstance(value, list) or not all(isinstance(area, str) for area in value):
            raise serializers.ValidationError("service_areas must be a list of region names")
        return [area.strip() for area in value if area.strip()]


class TransporterStatusSerializer(serializers.Serializer):
    """
    Serializer for updating transporter availability (available/offline).
    """
    status = serializers.ChoiceField(choices=["available", "offline"])
