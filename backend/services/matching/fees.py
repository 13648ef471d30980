"""
Fee floor calculation.

The minimum transport fee is a deterministic function of distance and cargo
size: ``base + per_km * distance + per_kg * weight + per_m3 * volume``.
"""

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

from django.conf import settings

from services.cascade.exceptions import ValidationError

_CENTS = Decimal("0.01")


@dataclass(frozen=True)
class FeePolicy:
    """Tariff used to derive the minimum fee for a transport leg."""
    base: Decimal = Decimal("100")
    per_km: Decimal = Decimal("5")
    per_kg: Decimal = Decimal("0.25")
    per_m3: Decimal = Decimal("0")

    @classmethod
    def from_settings(cls) -> "FeePolicy":
        overrides = getattr(settings, "TRANSPORT_FEE_POLICY", {}) or {}
        return cls(**{key: Decimal(str(value)) for key, value in overrides.items()})


def calculate_minimum_fee(
    distance_km,
    weight_kg,
    volume_m3=0,
    policy: Optional[FeePolicy] = None,
) -> Decimal:
    """
    Compute the minimum acceptable fee for a transport leg.
    
    Args:
        distance_km: Road/straight-line distance between pickup and delivery
        weight_kg: Cargo weight
        volume_m3: Cargo volume
        policy: Tariff to apply (defaults to TRANSPORT_FEE_POLICY)
    
    Returns:
        Non-negative fee rounded to cents
    
    Raises:
        ValidationError: If any input is negative
    """
    policy = policy or FeePolicy.from_settings()

    distance = Decimal(str(distance_km))
    weight = Decimal(str(weight_kg))
    volume = Decimal(str(volume_m3 or 0))
    if distance < 0 or weight < 0 or volume < 0:
        raise ValidationError("Distance and cargo size must not be negative")

    fee = policy.base + policy.per_km * distance + policy.per_kg * weight + policy.per_m3 * volume
    return max(fee, Decimal("0")).quantize(_CENTS, rounding=ROUND_HALF_UP)


def ensure_fee_meets_floor(fee, minimum_fee) -> Decimal:
    """Reject (never clamp) a fee below the floor."""
    fee = Decimal(str(fee))
    if fee < minimum_fee:
        raise ValidationError(f"Fee must be at least KES {minimum_fee:.2f}")
    return fee
