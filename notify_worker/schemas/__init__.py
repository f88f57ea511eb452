from .notification_schemas import (
    RenderableJob,
    DispatchSummary,
    parse_batch_size,
    DEFAULT_BATCH_SIZE,
    MAX_BATCH_SIZE,
)

__all__ = [
    "RenderableJob",
    "DispatchSummary",
    "parse_batch_size",
    "DEFAULT_BATCH_SIZE",
    "MAX_BATCH_SIZE",
]
