"""
Assignment progress: pickup and delivery by the assigned transporter.
"""

import logging

from django.db import transaction
from django.db.models import F
from django.utils import timezone

from orders.models import Order
from transport.models import TransportAssignment
from transporters.models import TransporterProfile
from realtime.notifications import notify_order_parties
from .exceptions import AssignmentNotFoundError, ValidationError

logger = logging.getLogger(__name__)


def _get_assignment_for_update(transporter, assignment_id: int) -> TransportAssignment:
    order_id = (
        TransportAssignment.objects
        .filter(id=assignment_id, transporter=transporter)
        .values_list("order_id", flat=True)
        .first()
    )
    if order_id is None:
        raise AssignmentNotFoundError("Transport assignment not found")

    # Lock the order first, like every cascade transition
    order = Order.objects.select_for_update().get(id=order_id)
    assignment = TransportAssignment.objects.select_for_update().get(id=assignment_id)
    assignment.order = order
    return assignment


@transaction.atomic
def mark_picked_up(transporter, assignment_id: int) -> TransportAssignment:
    """
    Transporter collected the cargo.

    Raises:
        AssignmentNotFoundError: If the assignment is not the transporter's
        ValidationError: If the assignment is not awaiting pickup
    """
    assignment = _get_assignment_for_update(transporter, assignment_id)

    if assignment.status != 'assigned':
        raise ValidationError(f"Cannot mark pickup - assignment is {assignment.status}")

    now = timezone.now()
    assignment.status = 'in_transit'
    assignment.pickup_time = now
    assignment.save(update_fields=['status', 'pickup_time', 'updated_at'])

    order = assignment.order
    order.status = 'in_transit'
    order.save(update_fields=['status', 'updated_at'])

    logger.info("Transporter %s picked up order %s", transporter.id, order.id)

    notify_order_parties(
        "assignment_updated",
        order,
        "Your order has been picked up and is on the way.",
        extra={"assignment_id": assignment.id, "assignment_status": assignment.status},
    )
    return assignment


@transaction.atomic
def mark_delivered(transporter, assignment_id: int) -> TransportAssignment:
    """
    Transporter handed the cargo over.

    Credits the transporter with a completed delivery, which feeds the
    activity and experience parts of matching.
    """
    assignment = _get_assignment_for_update(transporter, assignment_id)

    if assignment.status != 'in_transit':
        raise ValidationError(f"Cannot mark delivery - assignment is {assignment.status}")

    now = timezone.now()
    assignment.status = 'delivered'
    assignment.delivery_time = now
    assignment.save(update_fields=['status', 'delivery_time', 'updated_at'])

    order = assignment.order
    order.status = 'delivered'
    order.save(update_fields=['status', 'updated_at'])

    TransporterProfile.objects.filter(user=transporter).update(
        completed_deliveries=F('completed_deliveries') + 1
    )

    logger.info("Transporter %s delivered order %s", transporter.id, order.id)

    notify_order_parties(
        "assignment_updated",
        order,
        "Your order has been delivered.",
        extra={"assignment_id": assignment.id, "assignment_status": assignment.status},
    )
    return assignment
