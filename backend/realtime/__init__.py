"""
Realtime app for WebSocket communication.

This app provides:
- WebSocket consumers for transporters and order tracking
- Notification helpers for pushing cascade and assignment events
- JWT authentication middleware for WebSocket connections

Usage:
    from realtime.consumers import TransporterConsumer, OrderConsumer
    from realtime.notifications import notify_transporter_event, notify_order_parties
"""
