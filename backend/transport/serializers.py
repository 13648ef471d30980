from decimal import Decimal

from django.utils import timezone
from rest_framework import serializers

from accounts.serializers import UserBasicSerializer
from orders.serializers import OrderSummarySerializer
from services.cascade import clock
from .models import TransportAssignment, TransportCascade, TransportOffer


def _tier_count(cascade):
    # Uses the prefetch cache when the caller prefetched offers
    return len(cascade.offers.all())


def offer_is_live(offer, now=None):
    """An offer is acceptable while it is open, its tier has opened and the deadline has not passed."""
    cascade = offer.cascade
    if offer.status not in TransportOffer.OPEN_STATUSES or not cascade.is_open:
        return False

    now = now or timezone.now()
    # A tier's activation depends only on the tiers before it
    if not clock.is_tier_open(cascade, offer.tier_rank, offer.tier_rank, now):
        return False

    deadline = clock.cascade_deadline(cascade, _tier_count(cascade))
    return deadline is None or now < deadline


class TransportOfferSerializer(serializers.ModelSerializer):
    """Offer as seen by the transporter it is addressed to"""
    order = OrderSummarySerializer(read_only=True)
    farmer = UserBasicSerializer(source='cascade.farmer', read_only=True)
    cascade_id = serializers.IntegerField(read_only=True)
    cascade_state = serializers.CharField(source='cascade.state', read_only=True)
    sent_to_primary_at = serializers.DateTimeField(source='cascade.sent_to_primary_at', read_only=True)
    sent_to_secondary_at = serializers.DateTimeField(source='cascade.sent_to_secondary_at', read_only=True)
    sent_to_tertiary_at = serializers.DateTimeField(source='cascade.sent_to_tertiary_at', read_only=True)
    is_active = serializers.SerializerMethodField()
    time_remaining_seconds = serializers.SerializerMethodField()

    class Meta:
        model = TransportOffer
        fields = ['id', 'cascade_id', 'cascade_state', 'order', 'farmer', 'tier', 'tier_rank',
                  'pickup_location', 'delivery_location', 'proposed_fee', 'status', 'is_active',
                  'time_remaining_seconds', 'sent_at', 'sent_to_primary_at', 'sent_to_secondary_at',
                  'sent_to_tertiary_at', 'responded_at', 'decline_reason', 'counter_fee',
                  'countered_at', 'agreed_fee', 'created_at']
        read_only_fields = fields

    def get_is_active(self, obj):
        return offer_is_live(obj, self.context.get('now'))

    def get_time_remaining_seconds(self, obj):
        """Seconds left in this tier's own exclusivity window"""
        if not offer_is_live(obj, self.context.get('now')):
            return None
        now = self.context.get('now') or timezone.now()
        return clock.seconds_until_window_closes(obj.cascade, obj.tier_rank, obj.tier_rank, now)


class CascadeOfferSerializer(serializers.ModelSerializer):
    """Offer row inside the farmer's cascade view"""
    transporter = UserBasicSerializer(read_only=True)
    is_active = serializers.SerializerMethodField()
    time_remaining_seconds = serializers.SerializerMethodField()

    class Meta:
        model = TransportOffer
        fields = ['id', 'tier', 'tier_rank', 'transporter', 'proposed_fee', 'status', 'is_active',
                  'time_remaining_seconds', 'sent_at', 'responded_at', 'decline_reason',
                  'counter_fee', 'countered_at', 'agreed_fee']
        read_only_fields = fields

    def get_is_active(self, obj):
        return offer_is_live(obj, self.context.get('now'))

    def get_time_remaining_seconds(self, obj):
        if not offer_is_live(obj, self.context.get('now')):
            return None
        now = self.context.get('now') or timezone.now()
        return clock.seconds_until_window_closes(obj.cascade, obj.tier_rank, obj.tier_rank, now)


class TransportCascadeSerializer(serializers.ModelSerializer):
    """Farmer polling view of a cascade; effective state is derived at read time"""
    offers = CascadeOfferSerializer(many=True, read_only=True)
    effective_state = serializers.SerializerMethodField()
    deadline = serializers.SerializerMethodField()

    class Meta:
        model = TransportCascade
        fields = ['id', 'order_id', 'state', 'effective_state', 'proposed_fee', 'minimum_fee',
                  'distance_km', 'pickup_location', 'delivery_location', 'window_seconds',
                  'sent_to_primary_at', 'sent_to_secondary_at', 'sent_to_tertiary_at', 'deadline',
                  'winning_offer_id', 'created_at', 'resolved_at', 'cancelled_at', 'offers']
        read_only_fields = fields

    def get_effective_state(self, obj):
        if not obj.is_open:
            return obj.state
        now = self.context.get('now') or timezone.now()
        tier_count = _tier_count(obj)
        deadline = clock.cascade_deadline(obj, tier_count)
        if deadline is not None and now >= deadline:
            return TransportCascade.RESOLVED_EXHAUSTED
        return clock.derive_state(obj, tier_count, now)

    def get_deadline(self, obj):
        deadline = clock.cascade_deadline(obj, _tier_count(obj))
        return deadline.isoformat() if deadline else None


class TransportAssignmentSerializer(serializers.ModelSerializer):
    """Serializer for Transport Assignments"""
    order = OrderSummarySerializer(read_only=True)
    transporter = UserBasicSerializer(read_only=True)
    offer_id = serializers.IntegerField(read_only=True)

    class Meta:
        model = TransportAssignment
        fields = ['id', 'order', 'offer_id', 'transporter', 'pickup_location', 'delivery_location',
                  'distance_km', 'transport_cost', 'status', 'pickup_time', 'delivery_time',
                  'created_at', 'updated_at']
        read_only_fields = fields


class MatchReasonsSerializer(serializers.Serializer):
    high_platform_activity = serializers.BooleanField()
    service_area_match = serializers.BooleanField()
    good_rating = serializers.BooleanField()
    experienced = serializers.BooleanField()


class TransporterSnapshotSerializer(serializers.Serializer):
    full_name = serializers.CharField()
    phone = serializers.CharField()
    vehicle_type = serializers.CharField()
    vehicle_capacity_kg = serializers.DecimalField(max_digits=10, decimal_places=2)
    base_location = serializers.CharField()
    service_areas = serializers.ListField(child=serializers.CharField())
    rating = serializers.DecimalField(max_digits=3, decimal_places=2)
    completed_deliveries = serializers.IntegerField()
    on_time_delivery_rate = serializers.DecimalField(max_digits=5, decimal_places=2)
    platform_score = serializers.IntegerField()


class TransporterCandidateSerializer(serializers.Serializer):
    """Ranked matching result (not a model)"""
    transporter_id = serializers.IntegerField()
    profile = TransporterSnapshotSerializer()
    match_score = serializers.FloatField()
    match_reasons = MatchReasonsSerializer()


class CreateCascadeSerializer(serializers.Serializer):
    """Farmer's ranked transporter selection"""
    primary_transporter_id = serializers.IntegerField()
    secondary_transporter_id = serializers.IntegerField()
    tertiary_transporter_id = serializers.IntegerField(required=False, allow_null=True)
    proposed_fee = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=Decimal('0'))
    pickup_location = serializers.CharField(required=False, allow_blank=True)


class DeclineOfferSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, max_length=500)


class CounterOfferSerializer(serializers.Serializer):
    counter_fee = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=Decimal('0'))


class CounterResponseSerializer(serializers.Serializer):
    accept = serializers.BooleanField()
