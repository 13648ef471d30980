"""
Load the transporter pool for an order and rank it.

Database access lives here; scoring itself is delegated to the pure
functions in ``services.matching.scoring``.
"""

import logging
from dataclasses import dataclass
from datetime import timedelta
from decimal import Decimal
from typing import List, Optional, Tuple

from django.db.models import Count, Q
from django.utils import timezone

from common.utils import get_distance_lookup, DistanceUnavailableError
from orders.models import Order
from transporters.models import TransporterProfile
from services.cascade.exceptions import OrderNotFoundError, ValidationError
from .fees import calculate_minimum_fee
from .scoring import MatchContext, TransporterCandidate, TransporterSnapshot, rank_transporters

logger = logging.getLogger(__name__)


@dataclass
class MatchResult:
    """Ranked candidates plus the fee floor for one order."""
    order: Order
    candidates: List[TransporterCandidate]
    minimum_fee: Decimal
    distance_km: Decimal


def build_transporter_snapshot(
    profile: TransporterProfile,
    deliveries_last_7_days: int = 0,
    deliveries_last_30_days: int = 0,
) -> TransporterSnapshot:
    """Parse a stored profile into the fixed-type view used for scoring."""
    user = profile.user
    return TransporterSnapshot(
        transporter_id=user.id,
        full_name=user.get_full_name() or user.username,
        phone=user.phone_number,
        vehicle_type=profile.vehicle_type,
        vehicle_capacity_kg=Decimal(profile.vehicle_capacity_kg),
        base_location=profile.base_location,
        service_areas=tuple(str(area) for area in (profile.service_areas or [])),
        rating=Decimal(profile.rating),
        completed_deliveries=int(profile.completed_deliveries),
        on_time_delivery_rate=Decimal(profile.on_time_delivery_rate),
        platform_score=int(profile.platform_score),
        deliveries_last_7_days=deliveries_last_7_days,
        deliveries_last_30_days=deliveries_last_30_days,
    )


def load_candidate_pool(now=None) -> List[TransporterSnapshot]:
    """Snapshot every available transporter with recent activity counts."""
    now = now or timezone.now()
    week_ago = now - timedelta(days=7)
    month_ago = now - timedelta(days=30)

    profiles = (
        TransporterProfile.objects.select_related("user")
        .filter(status="available", user__is_active=True, user__role="transporter")
        .annotate(
            recent_7=Count(
                "user__transport_assignments",
                filter=Q(user__transport_assignments__created_at__gte=week_ago),
            ),
            recent_30=Count(
                "user__transport_assignments",
                filter=Q(user__transport_assignments__created_at__gte=month_ago),
            ),
        )
    )
    return [
        build_transporter_snapshot(profile, profile.recent_7, profile.recent_30)
        for profile in profiles
    ]


def match_context_for_order(order: Order) -> MatchContext:
    return MatchContext(
        pickup_region=order.pickup_region,
        delivery_region=order.delivery_region,
        required_capacity_kg=Decimal(order.cargo_weight_kg),
    )


def order_minimum_fee(order: Order) -> Tuple[Decimal, Decimal]:
    """
    Compute the fee floor for an order's transport leg.
    
    Returns:
        Tuple of (minimum_fee, distance_km)
    
    Raises:
        ValidationError: If the distance lookup cannot resolve the order
    """
    lookup = get_distance_lookup()
    try:
        distance_km = Decimal(str(lookup(order)))
    except DistanceUnavailableError as e:
        raise ValidationError(f"Cannot price transport for this order: {e}")

    minimum_fee = calculate_minimum_fee(
        distance_km,
        order.cargo_weight_kg,
        order.cargo_volume_m3,
    )
    return minimum_fee, distance_km


def get_farmer_order(order_id: int, farmer=None) -> Order:
    """Fetch an order, hiding orders that belong to another farmer."""
    try:
        order = Order.objects.select_related("farmer", "buyer").get(id=order_id)
    except Order.DoesNotExist:
        raise OrderNotFoundError("Order not found")
    if farmer is not None and order.farmer_id != farmer.id:
        raise OrderNotFoundError("Order not found")
    return order


def match_transporters(order_id: int, farmer=None) -> MatchResult:
    """
    Rank available transporters for an order and compute its minimum fee.
    
    Args:
        order_id: Order needing transport
        farmer: If given, the order must belong to this farmer
    
    Returns:
        MatchResult (candidates may be empty when nobody is available)
    
    Raises:
        OrderNotFoundError: If the order does not exist
    """
    order = get_farmer_order(order_id, farmer)
    minimum_fee, distance_km = order_minimum_fee(order)

    candidates = rank_transporters(match_context_for_order(order), load_candidate_pool())

    logger.info(
        "Matched %d transporters for order %s (min fee %s, %s km)",
        len(candidates), order.id, minimum_fee, distance_km,
    )
    return MatchResult(
        order=order,
        candidates=candidates,
        minimum_fee=minimum_fee,
        distance_km=distance_km,
    )
