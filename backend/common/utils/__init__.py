"""Common utility functions."""

from .geo import (
    calculate_distance,
    order_distance_km,
    get_distance_lookup,
    DistanceUnavailableError,
)

__all__ = [
    "calculate_distance",
    "order_distance_km",
    "get_distance_lookup",
    "DistanceUnavailableError",
]
