from typing import Optional


class NotifyWorkerError(Exception):
    """Base error for the notification worker."""


class ConfigurationError(NotifyWorkerError):
    """Required configuration is missing; aborts the whole invocation."""


class JobStoreError(NotifyWorkerError):
    """A read or write against the notification_jobs table failed."""


class DeliveryError(NotifyWorkerError):
    """
    The LINE push call did not succeed.

    status_code is None for transport-level failures (connect errors,
    timeouts) where no HTTP response was received.
    """

    def __init__(self, message: str, status_code: Optional[int] = None, body: str = ""):
        super().__init__(message)
        self.status_code = status_code
        self.body = body
