import logging

import redis
from django.conf import settings
from django.utils import timezone
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework import status
from channels.layers import get_channel_layer

from services.cascade import sweep_backlog
from transport.tasks import sweep_transport_cascades_task

logger = logging.getLogger(__name__)


def _check_cascades(now):
    """Open cascades, and whether the beat sweep is keeping their clocks current"""
    # Two missed sweeps before a cascade counts as left behind
    grace = 2 * getattr(settings, "TRANSPORT_SWEEP_INTERVAL_SECONDS", 60)
    open_count, overdue = sweep_backlog(now, grace_seconds=grace)
    report = {"open": open_count, "overdue": overdue}
    if overdue:
        report["detail"] = f"{overdue} cascade(s) past a tier activation or deadline; is celery beat running?"
    return report, overdue == 0


def _check_broker():
    redis.Redis.from_url(settings.CELERY_BROKER_URL, socket_timeout=3).ping()
    if sweep_transport_cascades_task.name not in sweep_transport_cascades_task.app.tasks:
        raise RuntimeError("cascade sweep task not registered")


@api_view(["GET"])
@permission_classes([AllowAny])
def health_check(request):
    """
    Health of the transport cascade service

    Reports the database (through the open cascade backlog), the Celery
    broker and the channel layer used for offer pushes. Any failing part
    turns the response into a 503.
    """
    now = timezone.now()
    health_status = {
        "status": "healthy",
        "timestamp": now.isoformat(),
        "services": {},
    }

    def fail(name, detail):
        logger.warning("Health check: %s unhealthy (%s)", name, detail)
        health_status["services"][name] = f"unhealthy: {detail}"
        health_status["status"] = "unhealthy"

    try:
        report, on_time = _check_cascades(now)
        health_status["cascades"] = report
        health_status["services"]["database"] = "healthy"
        if not on_time:
            health_status["status"] = "unhealthy"
    except Exception as e:
        fail("database", e)

    try:
        _check_broker()
        health_status["services"]["celery"] = "healthy"
    except Exception as e:
        fail("celery", e)

    if get_channel_layer() is None:
        fail("channels", "no channel layer configured")
    else:
        health_status["services"]["channels"] = "healthy"

    status_code = (
        status.HTTP_200_OK
        if health_status["status"] == "healthy"
        else status.HTTP_503_SERVICE_UNAVAILABLE
    )
    return Response(health_status, status=status_code)
