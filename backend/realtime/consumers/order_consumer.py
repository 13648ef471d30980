"""Order tracking WebSocket consumer for transport progress."""

import logging
from typing import Dict, Any, Set

from channels.db import database_sync_to_async

from .base import BaseConsumer

logger = logging.getLogger(__name__)


class OrderConsumer(BaseConsumer):
    """
    WebSocket consumer for order tracking.
    
    Used by farmers and buyers to follow one order's transport: cascade
    progress, assignment and delivery. Events addressed to the user
    personally arrive through the base user group.
    """

    async def on_connect(self):
        self.joined_orders: Set[str] = set()

        await self.send_json({
            "type": "connection_established",
            "user_id": self.user_id,
            "role": self.role,
            "message": "Order tracking connection established",
        })

    async def handle_message(self, msg_type: str, data: Dict[str, Any]):
        """Handle order tracking messages."""
        
        if msg_type == "subscribe_order":
            await self._handle_subscribe(data)
        elif msg_type == "unsubscribe_order":
            await self._handle_unsubscribe(data)
        else:
            await super().handle_message(msg_type, data)

    # ---------------------- Message Handlers ----------------------

    async def _handle_subscribe(self, data: Dict[str, Any]):
        order_id = data.get("order_id")
        
        if order_id is None:
            await self.send_error("subscribe_order requires order_id")
            return

        is_valid = await self._validate_order_participant(order_id)
        if not is_valid:
            await self.send_error("You are not authorized to track this order")
            return

        order_group = f"order_{order_id}"
        await self._join_group(order_group)
        self.joined_orders.add(order_group)

        await self.send_success("order_subscribed", order_id=order_id)

    async def _handle_unsubscribe(self, data: Dict[str, Any]):
        order_id = data.get("order_id")
        
        if order_id is None:
            return

        order_group = f"order_{order_id}"
        await self._leave_group(order_group)
        self.joined_orders.discard(order_group)

        await self.send_success("order_unsubscribed", order_id=order_id)

    # ---------------------- Database Helpers ----------------------

    @database_sync_to_async
    def _validate_order_participant(self, order_id) -> bool:
        """Buyer, farmer and assigned transporter may follow an order."""
        from orders.models import Order
        try:
            order = Order.objects.get(id=order_id)
        except (Order.DoesNotExist, ValueError, TypeError):
            return False
        return self.user_id in (order.buyer_id, order.farmer_id, order.transporter_id)
