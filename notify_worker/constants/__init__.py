from notify_worker.constants.queue_status import NotificationStatus, TERMINAL_STATUSES

LINE_GROUP_CHANNEL = "line_group"

__all__ = [
    "NotificationStatus",
    "TERMINAL_STATUSES",
    "LINE_GROUP_CHANNEL",
]
