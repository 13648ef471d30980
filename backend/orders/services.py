"""
Order operations the transport cascade depends on.

The order subsystem proper (checkout, payment, listings) lives elsewhere;
this module covers reading orders, cancelling them and the status changes
driven by transport.
"""

import logging
from decimal import Decimal

from django.db import transaction
from django.utils import timezone

from orders.models import Order
from realtime.notifications import notify_order_parties
from services.cascade.exceptions import OrderNotFoundError, ValidationError

logger = logging.getLogger(__name__)

CANCELLABLE_STATUSES = ['pending', 'payment_pending', 'paid']


def get_order_for_user(user, order_id: int) -> Order:
    """Fetch an order visible to ``user`` (its buyer or farmer)."""
    try:
        order = Order.objects.select_related('buyer', 'farmer', 'transporter').get(id=order_id)
    except Order.DoesNotExist:
        raise OrderNotFoundError("Order not found")

    if user.id not in (order.buyer_id, order.farmer_id):
        raise OrderNotFoundError("Order not found")
    return order


def mark_order_assigned(order_id: int, transporter_id: int, transport_cost: Decimal) -> Order:
    """Record the winning transporter and fee on the order."""
    order = Order.objects.select_for_update().get(id=order_id)
    order.transporter_id = transporter_id
    order.transport_cost = transport_cost
    order.status = 'assigned'
    order.save(update_fields=['transporter', 'transport_cost', 'status', 'updated_at'])
    return order


def mark_order_status(order: Order, new_status: str) -> Order:
    order.status = new_status
    order.save(update_fields=['status', 'updated_at'])
    return order


@transaction.atomic
def cancel_order(user, order_id: int, reason: str = "No reason provided") -> Order:
    """
    Cancel an order by its buyer or farmer, closing any live transport cascade.
    
    Args:
        user: Buyer or farmer of the order
        order_id: ID of the order to cancel
        reason: Cancellation reason
    
    Returns:
        The cancelled Order
    
    Raises:
        OrderNotFoundError: If the order is missing or not the user's
        ValidationError: If the order is past the cancellable stage
    """
    get_order_for_user(user, order_id)
    # Same per-order lock the cascade transitions take
    order = Order.objects.select_for_update().get(id=order_id)

    if order.status not in CANCELLABLE_STATUSES:
        raise ValidationError(f"Cannot cancel - order is already {order.status}")

    now = timezone.now()
    order.status = 'cancelled'
    order.cancelled_at = now
    order.cancellation_reason = reason
    order.save(update_fields=['status', 'cancelled_at', 'cancellation_reason', 'updated_at'])

    from services.cascade import cancel_order_cascades
    closed = cancel_order_cascades(order, now=now)

    logger.info("Order %s cancelled by user %s (%d cascade(s) closed)", order.id, user.id, closed)

    notify_order_parties('order_cancelled', order, f"Order cancelled: {reason}")
    return order


@transaction.atomic
def confirm_delivery(buyer, order_id: int) -> Order:
    """Buyer confirms a delivered order."""
    try:
        order = Order.objects.select_for_update().get(id=order_id, buyer=buyer)
    except Order.DoesNotExist:
        raise OrderNotFoundError("Order not found")

    if order.status != 'delivered':
        raise ValidationError(f"Cannot confirm delivery - order is {order.status}")

    mark_order_status(order, 'confirmed')
    logger.info("Buyer %s confirmed delivery of order %s", buyer.id, order.id)

    notify_order_parties('delivery_confirmed', order, "Buyer confirmed delivery.", include_buyer=False)
    return order
