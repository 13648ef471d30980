"""Realtime consumers for WebSocket communication."""

from .base import BaseConsumer
from .transporter_consumer import TransporterConsumer
from .order_consumer import OrderConsumer

__all__ = [
    "BaseConsumer",
    "TransporterConsumer",
    "OrderConsumer",
]
