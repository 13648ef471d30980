"""
Geographic utility functions.

This module provides core geospatial calculations used throughout the application.
"""

from decimal import Decimal
from math import radians, cos, sin, asin, sqrt
from typing import Callable

from django.conf import settings
from django.utils.module_loading import import_string


class DistanceUnavailableError(Exception):
    """Raised when a distance lookup cannot resolve an order's legs."""
    pass


def calculate_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Calculate distance between two points in meters using Haversine formula.
    
    Args:
        lat1: Latitude of first point
        lon1: Longitude of first point
        lat2: Latitude of second point
        lon2: Longitude of second point
    
    Returns:
        Distance in meters
    """
    lat1, lon1, lat2, lon2 = map(radians, [float(lat1), float(lon1), float(lat2), float(lon2)])
    dlat = lat2 - lat1
    dlon = lon2 - lon1
    a = sin(dlat / 2) ** 2 + cos(lat1) * cos(lat2) * sin(dlon / 2) ** 2
    c = 2 * asin(sqrt(a))
    r = 6371000  # Earth's radius in meters
    return c * r


def order_distance_km(order) -> Decimal:
    """
    Default distance lookup: straight-line pickup -> delivery distance.
    
    Raises:
        DistanceUnavailableError: If the order is missing coordinates
    """
    coords = (
        order.pickup_latitude,
        order.pickup_longitude,
        order.delivery_latitude,
        order.delivery_longitude,
    )
    if any(value is None for value in coords):
        raise DistanceUnavailableError(
            f"Order {order.id} has no pickup/delivery coordinates"
        )
    meters = calculate_distance(*coords)
    return (Decimal(str(meters)) / 1000).quantize(Decimal("0.01"))


def get_distance_lookup() -> Callable:
    """Resolve the configured ``order -> km`` lookup (TRANSPORT_DISTANCE_LOOKUP)."""
    path = getattr(settings, "TRANSPORT_DISTANCE_LOOKUP", "common.utils.geo.order_distance_km")
    return import_string(path)
