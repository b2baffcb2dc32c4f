from rolodex.models.schema.notification import NotificationEntry
from rolodex.models.schema.otp import OtpEntry


class Databases:
    otp = OtpEntry
    notification = NotificationEntry
