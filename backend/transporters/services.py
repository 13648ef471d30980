import logging

from transporters.models import TransporterProfile
from realtime.notifications import notify_transporter_event

logger = logging.getLogger(__name__)


def update_transporter_status(profile: TransporterProfile, new_status: str):
    """
    Update transporter availability status.
    Only available transporters enter the matching pool.
    """
    profile.status = new_status
    profile.save(update_fields=["status", "updated_at"])
    logger.info("Transporter %s is now %s", profile.user_id, new_status)

    notify_transporter_event(
        "status_updated",
        profile.user_id,
        extra={"status": new_status},
    )
    return profile


def update_transporter_profile(profile: TransporterProfile, data, request=None):
    """Update vehicle and service area details with partial data."""
    from transporters.serializers import TransporterProfileSerializer
    ser = TransporterProfileSerializer(profile, data=data, partial=True, context={"request": request})
    ser.is_valid(raise_exception=True)
    ser.save()
    return ser.data
