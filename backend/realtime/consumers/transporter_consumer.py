"""Transporter WebSocket consumer for transport offers and their outcomes."""

import logging

from .base import BaseConsumer

logger = logging.getLogger(__name__)


class TransporterConsumer(BaseConsumer):
    """
    WebSocket consumer for transporters.
    
    Handles:
        - New transport offers as each tier opens
        - Offer outcomes (won, closed, counter rejected)
        - Availability status echoes
    """

    async def on_connect(self):
        """Set up transporter-specific groups on connection."""
        if self.role != "transporter":
            await self.send_error("This endpoint is for transporters only")
            await self.close()
            return

        # Join transporter-specific group for targeted notifications
        self.transporter_group = f"transporter_{self.user_id}"
        await self._join_group(self.transporter_group)

        logger.debug("Transporter %s connected", self.user_id)
        await self.send_json({
            "type": "connection_established",
            "user_id": self.user_id,
            "role": self.role,
            "message": "Transporter connected successfully",
        })

    # ---------------------- Event Handlers (from group_send) ----------------------

    async def transport_offer(self, event):
        """Sent when this transporter's tier opens."""
        await self.send_json({
            "type": "transport_offer",
            "offer_id": event.get("offer_id"),
            "order_id": event.get("order_id"),
            "offer": event.get("offer_data"),
            "message": event.get("message", ""),
        })

    async def offer_closed(self, event):
        """Sent when another tier won, the order was cancelled or the cascade expired."""
        await self.send_json({
            "type": "offer_closed",
            "offer_id": event.get("offer_id"),
            "order_id": event.get("order_id"),
            "message": event.get("message", "This offer is no longer available"),
        })

    async def offer_accepted(self, event):
        """Sent to the winning transporter once the assignment exists."""
        await self.send_json({
            "type": "offer_accepted",
            "offer_id": event.get("offer_id"),
            "order_id": event.get("order_id"),
            "assignment_id": event.get("assignment_id"),
            "offer": event.get("offer_data", {}),
            "message": event.get("message", ""),
        })

    async def counter_rejected(self, event):
        await self.send_json({
            "type": "counter_rejected",
            "offer_id": event.get("offer_id"),
            "order_id": event.get("order_id"),
            "message": event.get("message", ""),
        })

    async def status_updated(self, event):
        await self.send_json({
            "type": "status_updated",
            "status": event.get("status"),
        })
