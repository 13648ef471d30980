from rest_framework import serializers

from accounts.serializers import UserBasicSerializer
from .models import Order


class OrderSerializer(serializers.ModelSerializer):
    """Serializer for Orders"""
    buyer = UserBasicSerializer(read_only=True)
    farmer = UserBasicSerializer(read_only=True)
    transporter = UserBasicSerializer(read_only=True)

    class Meta:
        model = Order
        fields = ['id', 'buyer', 'farmer', 'listing_id', 'quantity', 'total_amount',
                  'pickup_location', 'pickup_region', 'delivery_location', 'delivery_region',
                  'cargo_weight_kg', 'cargo_volume_m3', 'uses_transport', 'transporter',
                  'transport_cost', 'status', 'notes', 'created_at', 'updated_at',
                  'cancelled_at', 'cancellation_reason']
        read_only_fields = fields


class OrderSummarySerializer(serializers.ModelSerializer):
    """Compact order info embedded in transport offers"""

    class Meta:
        model = Order
        fields = ['id', 'listing_id', 'quantity', 'cargo_weight_kg', 'status']
        read_only_fields = fields


class OrderCancelSerializer(serializers.Serializer):
    """Serializer for order cancellation"""
    reason = serializers.CharField(required=False, allow_blank=True)
