"""Celery tasks for transport cascade background processing."""

from celery import shared_task
import logging

logger = logging.getLogger(__name__)


@shared_task
def advance_transport_cascade_task(cascade_id: int):
    """
    Open due tiers / exhaust one cascade.

    Scheduled at every tier activation time and at the cascade deadline.
    Running it early, late or twice is harmless: it only applies what the
    cascade clock says is due.
    """
    from services.cascade import advance_cascade

    try:
        changed = advance_cascade(cascade_id)
    except Exception:
        logger.exception("Error advancing cascade %s", cascade_id)
        return False

    if changed:
        logger.info("Advanced cascade %s", cascade_id)
    return changed


@shared_task
def sweep_transport_cascades_task():
    """Periodic safety net (Celery beat) for timers that were lost or never scheduled."""
    from services.cascade import sweep_open_cascades

    checked, advanced = sweep_open_cascades()
    if advanced:
        logger.info("Cascade sweep advanced %d of %d open cascade(s)", advanced, checked)
    return {"checked": checked, "advanced": advanced}


def schedule_cascade_timers(cascade_id: int, window_seconds: int, tier_count: int):
    """Queue an advance for each later tier's activation and for the deadline."""
    for step in range(1, tier_count + 1):
        try:
            advance_transport_cascade_task.apply_async((cascade_id,), countdown=window_seconds * step)
        except Exception:
            # The beat sweep still picks the cascade up
            logger.exception("Could not schedule timer %d for cascade %s", step, cascade_id)
