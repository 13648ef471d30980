"""
Order/assignment binder.

Turns a resolved cascade into exactly one TransportAssignment and advances
the parent order. Safe to call repeatedly: the assignment is keyed by order.
"""

import logging
from typing import Tuple

from django.conf import settings
from django.db import transaction
from django.db.models import F

from transport.models import TransportAssignment, TransportCascade
from transporters.models import TransporterProfile
from realtime.notifications import notify_order_parties, notify_transporter_event
from .exceptions import CascadeNotResolvedError

logger = logging.getLogger(__name__)


@transaction.atomic
def bind_assignment(cascade: TransportCascade) -> Tuple[TransportAssignment, bool]:
    """
    Materialize the transport assignment for a won cascade.
    
    Args:
        cascade: TransportCascade in resolved_accepted state
    
    Returns:
        Tuple of (assignment, created); created is False on repeat calls
    
    Raises:
        CascadeNotResolvedError: If the cascade has no winning offer
    """
    if cascade.state != TransportCascade.RESOLVED_ACCEPTED or cascade.winning_offer_id is None:
        raise CascadeNotResolvedError(f"Cascade {cascade.id} has no accepted offer")

    offer = cascade.winning_offer
    transport_cost = offer.agreed_fee if offer.agreed_fee is not None else offer.proposed_fee

    assignment, created = TransportAssignment.objects.get_or_create(
        order_id=cascade.order_id,
        defaults={
            "offer": offer,
            "transporter_id": offer.transporter_id,
            "pickup_location": offer.pickup_location,
            "delivery_location": offer.delivery_location,
            "distance_km": cascade.distance_km,
            "transport_cost": transport_cost,
            "status": "assigned",
        },
    )
    if not created:
        logger.debug("Assignment for order %s already exists", cascade.order_id)
        return assignment, False

    from orders.services import mark_order_assigned
    order = mark_order_assigned(cascade.order_id, offer.transporter_id, transport_cost)

    # Winning transporters earn platform score
    bonus = getattr(settings, "TRANSPORT_WINNER_SCORE_BONUS", 3)
    TransporterProfile.objects.filter(user_id=offer.transporter_id).update(
        platform_score=F("platform_score") + bonus
    )

    logger.info(
        "Assigned order %s to transporter %s for %s (cascade %s)",
        order.id, offer.transporter_id, transport_cost, cascade.id,
    )

    def after_commit():
        notify_transporter_event(
            "offer_accepted",
            offer.transporter_id,
            offer,
            f"Transport offer accepted! You've earned +{bonus} platform score.",
            extra={"assignment_id": assignment.id},
        )
        notify_order_parties(
            "transport_assigned",
            order,
            "A transporter has been assigned to your order.",
            extra={"assignment_id": assignment.id, "transporter_id": offer.transporter_id},
        )

    # Clients fetch the assignment as soon as they hear about it
    transaction.on_commit(after_commit)

    return assignment, True
