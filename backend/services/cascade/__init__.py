"""
Transport cascade service - Tiered offer lifecycle.

This module handles:
    - Creating cascades and their tiered offers
    - Accepting/declining/countering offers
    - Opening later tiers and exhausting cascades on the clock
    - Binding the winning offer to a transport assignment
    - Pickup and delivery progress
"""

from .exceptions import (
    TransportCascadeError,
    ValidationError,
    OrderNotFoundError,
    OfferNotFoundError,
    OfferNotActiveError,
    OfferClosedError,
    AssignmentNotFoundError,
    CascadeNotResolvedError,
)

from .cascade_lifecycle import (
    CascadeResult,
    create_cascade,
    get_order_cascade,
    respond_to_counter,
    list_offers,
    accept_offer,
    decline_offer,
    counter_offer,
    cancel_order_cascades,
    advance_cascade,
    sweep_open_cascades,
    sweep_backlog,
)

from .binder import bind_assignment
from .assignments import mark_picked_up, mark_delivered

__all__ = [
    # Lifecycle operations
    "CascadeResult",
    "create_cascade",
    "get_order_cascade",
    "respond_to_counter",
    "list_offers",
    "accept_offer",
    "decline_offer",
    "counter_offer",
    "cancel_order_cascades",
    "advance_cascade",
    "sweep_open_cascades",
    "sweep_backlog",
    "bind_assignment",
    # Assignments
    "mark_picked_up",
    "mark_delivered",
    # Exceptions
    "TransportCascadeError",
    "ValidationError",
    "OrderNotFoundError",
    "OfferNotFoundError",
    "OfferNotActiveError",
    "OfferClosedError",
    "AssignmentNotFoundError",
    "CascadeNotResolvedError",
]
