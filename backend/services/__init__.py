"""
Services package - Business logic layer.

This package contains all business logic services that operate on Django models
but are decoupled from the HTTP/WebSocket layer.

Modules:
    - cascade: Transport cascade lifecycle and assignments
    - matching: Transporter ranking and fee floor
"""

# cascade first: matching raises the cascade exception types
from .cascade import (
    create_cascade,
    accept_offer,
    decline_offer,
    counter_offer,
    respond_to_counter,
    cancel_order_cascades,
    sweep_open_cascades,
    TransportCascadeError,
    ValidationError,
    OrderNotFoundError,
    OfferNotFoundError,
    OfferNotActiveError,
    OfferClosedError,
)
from .matching import (
    match_transporters,
    calculate_minimum_fee,
)

__all__ = [
    # Cascade
    "create_cascade",
    "accept_offer",
    "decline_offer",
    "counter_offer",
    "respond_to_counter",
    "cancel_order_cascades",
    "sweep_open_cascades",
    # Matching
    "match_transporters",
    "calculate_minimum_fee",
    # Exceptions
    "TransportCascadeError",
    "ValidationError",
    "OrderNotFoundError",
    "OfferNotFoundError",
    "OfferNotActiveError",
    "OfferClosedError",
]
