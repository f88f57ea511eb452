from datetime import datetime, timezone
from typing import Callable

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    # Scheduling and bookkeeping timestamps are always UTC
    return datetime.now(timezone.utc)
