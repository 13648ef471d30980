"""WebSocket URL routing for the realtime app."""

from django.urls import re_path

from .consumers import TransporterConsumer, OrderConsumer

websocket_urlpatterns = [
    # Transport offers for transporters
    # URL: ws://localhost:8000/ws/transporter/?token=<access>
    re_path(
        r"ws/transporter/$",
        TransporterConsumer.as_asgi(),
        name="transporter-ws"
    ),
    
    # Order tracking (farmers and buyers)
    # URL: ws://localhost:8000/ws/order/?token=<access>
    re_path(
        r"ws/order/$",
        OrderConsumer.as_asgi(),
        name="order-ws"
    ),
]
