from notify_worker.models.notification_job_model import NotificationJob

__all__ = [
    "NotificationJob",
]
