from notify_worker.services.dispatcher import BatchDispatcher
from notify_worker.services.job_store import JobStore
from notify_worker.services.line_client import LinePushClient, is_retryable
from notify_worker.services.message_formatter import build_message_text
from notify_worker.services.retry_policy import MAX_RETRIES, backoff_minutes, should_retry

__all__ = [
    "BatchDispatcher",
    "JobStore",
    "LinePushClient",
    "is_retryable",
    "build_message_text",
    "MAX_RETRIES",
    "backoff_minutes",
    "should_retry",
]
