"""
Notification helpers for sending WebSocket messages to connected clients.

This module provides functions to:
- Push transport offers and offer outcomes to transporters
- Send cascade and assignment events to the farmer and buyer of an order

Delivery is best-effort: a failed push is logged and never rolls back the
state change that triggered it. Clients that miss a push catch up by polling.
"""

from __future__ import annotations

import logging
from typing import Dict, Any

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer

logger = logging.getLogger(__name__)


def _group_send(group: str, payload: Dict[str, Any]) -> bool:
    channel_layer = get_channel_layer()
    if channel_layer is None:
        return False

    try:
        logger.debug("WS -> %s: %s", group, payload.get("type"))
        async_to_sync(channel_layer.group_send)(group, payload)
    except Exception:
        logger.exception("Failed to send %s to %s", payload.get("type"), group)
        return False
    return True


# ---------------------- Transporter Notifications ----------------------

def notify_transporter_event(
    event_type: str,
    transporter_id: int | None,
    offer=None,
    message: str = "",
    extra: Dict[str, Any] = None,
) -> bool:
    """
    Send an event to a specific transporter using their personal group: transporter_<id>
    
    Args:
        event_type: Handler name in consumer (transport_offer, offer_closed, offer_accepted, ...)
        transporter_id: Target transporter's user ID
        offer: Optional TransportOffer the event is about
        message: Optional message to include
        extra: Additional payload data
    
    Returns:
        True if sent successfully, False otherwise
    """
    if not transporter_id:
        return False

    payload = {
        "type": event_type,
        "transporter_id": transporter_id,
        **(extra or {}),
    }

    if offer is not None:
        from transport.serializers import TransportOfferSerializer
        payload["offer_id"] = offer.id
        payload["order_id"] = offer.order_id
        payload["offer_data"] = TransportOfferSerializer(offer).data

    if message:
        payload["message"] = message

    return _group_send(f"transporter_{transporter_id}", payload)


# ---------------------- Order Party Notifications ----------------------

def notify_user_event(
    event_type: str,
    user_id: int | None,
    order=None,
    message: str = "",
    extra: Dict[str, Any] = None,
) -> bool:
    """
    Send an order-related event to one user through: user_<user_id>
    
    Args:
        event_type: Handler name in consumer (offer_countered, cascade_exhausted, transport_assigned, ...)
        user_id: Target user ID
        order: Optional Order the event is about
        message: Optional message to include
        extra: Additional payload data
    
    Returns:
        True if sent successfully, False otherwise
    """
    if not user_id:
        return False

    payload = {
        "type": event_type,
        **(extra or {}),
    }

    if order is not None:
        payload["order_id"] = order.id
        payload["status"] = order.status

    if message:
        payload["message"] = message

    return _group_send(f"user_{user_id}", payload)


def notify_order_parties(
    event_type: str,
    order,
    message: str = "",
    extra: Dict[str, Any] = None,
    include_buyer: bool = True,
) -> int:
    """
    Send an event to the farmer (and buyer) of an order and to the order_<id> group.
    
    Returns:
        Number of groups the event was delivered to
    """
    recipients = [order.farmer_id]
    if include_buyer:
        recipients.append(order.buyer_id)

    sent = sum(
        1 for user_id in recipients
        if notify_user_event(event_type, user_id, order, message, extra)
    )

    payload = {
        "type": event_type,
        "order_id": order.id,
        "status": order.status,
        **(extra or {}),
    }
    if message:
        payload["message"] = message
    if _group_send(f"order_{order.id}", payload):
        sent += 1

    return sent
