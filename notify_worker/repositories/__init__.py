from notify_worker.repositories.notification_job_repository import NotificationJobRepository

__all__ = [
    "NotificationJobRepository",
]
