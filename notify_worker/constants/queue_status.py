from enum import Enum


class NotificationStatus(Enum):
    pending = "pending"
    processing = "processing"
    sent = "sent"
    failed = "failed"


TERMINAL_STATUSES = (NotificationStatus.sent.value, NotificationStatus.failed.value)
