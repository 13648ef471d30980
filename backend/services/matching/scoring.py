"""
Transporter scoring and ranking.

Pure functions over immutable snapshots: nothing here touches the database,
so ranking is cheap to recompute on every matching request.

Score breakdown (weights come from TRANSPORT_MATCHING_POLICY):
    - rating        0-40 pts, proportional to rating / 5
    - activity      0-20 pts, full for a delivery in the last 7 days,
                    half for one in the last 30 days
    - service area  0-20 pts, full when both pickup and delivery regions
                    are served, half when only one is
    - experience    0-20 pts, bucketed by completed deliveries
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Iterable, List, Optional, Tuple

from django.conf import settings


@dataclass(frozen=True)
class TransporterSnapshot:
    """Transporter profile parsed once into fixed numeric types."""
    transporter_id: int
    full_name: str
    phone: str
    vehicle_type: str
    vehicle_capacity_kg: Decimal
    base_location: str
    service_areas: Tuple[str, ...]
    rating: Decimal
    completed_deliveries: int
    on_time_delivery_rate: Decimal
    platform_score: int
    deliveries_last_7_days: int = 0
    deliveries_last_30_days: int = 0


@dataclass(frozen=True)
class MatchReasons:
    high_platform_activity: bool = False
    service_area_match: bool = False
    good_rating: bool = False
    experienced: bool = False


@dataclass(frozen=True)
class TransporterCandidate:
    """One transporter's eligibility and score for one order."""
    transporter_id: int
    profile: TransporterSnapshot
    match_score: float
    match_reasons: MatchReasons


@dataclass(frozen=True)
class MatchContext:
    """What the matcher needs to know about the order."""
    pickup_region: str
    delivery_region: str
    required_capacity_kg: Decimal


@dataclass(frozen=True)
class MatchingPolicy:
    rating_weight: float = 40
    activity_weight: float = 20
    service_area_weight: float = 20
    experience_weight: float = 20
    max_rating: float = 5
    good_rating_threshold: float = 4.0
    experienced_threshold: int = 20
    # (minimum completed deliveries, share of experience_weight), highest first
    experience_buckets: Tuple[Tuple[int, float], ...] = field(
        default=((50, 1.0), (20, 0.75), (5, 0.5), (1, 0.25))
    )

    @classmethod
    def from_settings(cls) -> "MatchingPolicy":
        overrides = dict(getattr(settings, "TRANSPORT_MATCHING_POLICY", {}) or {})
        if "experience_buckets" in overrides:
            overrides["experience_buckets"] = tuple(
                sorted((tuple(bucket) for bucket in overrides["experience_buckets"]), reverse=True)
            )
        return cls(**overrides)


def _normalize(region: str) -> str:
    return (region or "").strip().lower()


def _served_regions(snapshot: TransporterSnapshot) -> set:
    regions = {_normalize(area) for area in snapshot.service_areas}
    if snapshot.base_location:
        regions.add(_normalize(snapshot.base_location))
    regions.discard("")
    return regions


def score_transporter(
    snapshot: TransporterSnapshot,
    context: MatchContext,
    policy: MatchingPolicy,
) -> TransporterCandidate:
    """Score a single (already eligible) transporter."""
    rating = float(snapshot.rating)
    rating_share = min(max(rating / policy.max_rating, 0.0), 1.0) if policy.max_rating else 0.0
    rating_points = policy.rating_weight * rating_share

    if snapshot.deliveries_last_7_days > 0:
        activity_points = policy.activity_weight
    elif snapshot.deliveries_last_30_days > 0:
        activity_points = policy.activity_weight / 2
    else:
        activity_points = 0.0

    regions = _served_regions(snapshot)
    covered = sum(
        1 for region in (context.pickup_region, context.delivery_region)
        if _normalize(region) and _normalize(region) in regions
    )
    area_points = policy.service_area_weight * (covered / 2)

    experience_share = next(
        (share for minimum, share in policy.experience_buckets
         if snapshot.completed_deliveries >= minimum),
        0.0,
    )
    experience_points = policy.experience_weight * experience_share

    score = min(rating_points + activity_points + area_points + experience_points, 100.0)

    reasons = MatchReasons(
        high_platform_activity=snapshot.deliveries_last_7_days > 0,
        service_area_match=covered > 0,
        good_rating=rating >= policy.good_rating_threshold,
        experienced=snapshot.completed_deliveries >= policy.experienced_threshold,
    )
    return TransporterCandidate(
        transporter_id=snapshot.transporter_id,
        profile=snapshot,
        match_score=round(score, 2),
        match_reasons=reasons,
    )


def rank_transporters(
    context: MatchContext,
    pool: Iterable[TransporterSnapshot],
    policy: Optional[MatchingPolicy] = None,
) -> List[TransporterCandidate]:
    """
    Rank eligible transporters for an order.
    
    Transporters whose vehicle cannot carry the cargo are excluded, not
    down-ranked. Ordering is by score descending, then completed deliveries
    descending, then transporter id ascending.
    
    Args:
        context: Order regions and required capacity
        pool: Snapshots of available transporters
        policy: Weights and thresholds (defaults to TRANSPORT_MATCHING_POLICY)
    
    Returns:
        List of TransporterCandidate, best first (empty if pool is empty)
    """
    policy = policy or MatchingPolicy.from_settings()

    candidates = [
        score_transporter(snapshot, context, policy)
        for snapshot in pool
        if snapshot.vehicle_capacity_kg >= context.required_capacity_kg
    ]
    candidates.sort(
        key=lambda c: (-c.match_score, -c.profile.completed_deliveries, c.transporter_id)
    )
    return candidates
