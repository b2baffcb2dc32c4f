from rolodex.schemas.notifications import NotificationType
from rolodex.services.providers import SimulatedProvider


class PushNotificationProvider(SimulatedProvider):
    """Push channel; the recipient is a device token."""

    type = NotificationType.PUSH
    outage_message = "Push notification service temporarily unavailable"
