import math
from typing import Any, Dict, List, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_BATCH_SIZE = 20
MIN_BATCH_SIZE = 1
MAX_BATCH_SIZE = 100


def _text(value: Any) -> str:
    """Stringify an untyped payload value; None becomes empty."""
    if value is None:
        return ""
    return str(value).strip()


class RenderableJob(BaseModel):
    """Typed view of a job's template fields, built from the raw payload map."""
    model_config = ConfigDict(frozen=True)

    title: Optional[str] = None
    body: Optional[str] = None
    priority: Optional[str] = None
    ticket_id: Optional[str] = None

    @classmethod
    def from_job(cls, job: Any) -> "RenderableJob":
        payload = getattr(job, "payload", None)
        if not isinstance(payload, Mapping):
            payload = {}

        title = _text(payload.get("title")) or _text(getattr(job, "event_type", None))
        ticket_id = _text(getattr(job, "ticket_id", None)) or _text(payload.get("ticket_id"))

        return cls(
            title=title or None,
            body=_text(payload.get("body")) or None,
            priority=_text(payload.get("priority")) or None,
            ticket_id=ticket_id or None,
        )


class DispatchSummary(BaseModel):
    """Result of one worker invocation."""
    model_config = ConfigDict(populate_by_name=True)

    scanned: int = 0
    claimed: int = 0
    sent: int = 0
    retry_scheduled: int = Field(default=0, alias="retryScheduled")
    failed: int = 0
    errors: List[str] = Field(default_factory=list)

    def to_response(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)


def parse_batch_size(body: Any, default: int = DEFAULT_BATCH_SIZE) -> int:
    """
    Read batchSize from a decoded request body.

    Anything that isn't a finite number falls back to default; numbers are
    floored and clamped to [MIN_BATCH_SIZE, MAX_BATCH_SIZE].
    """
    if not isinstance(body, dict):
        return default

    value = body.get("batchSize")
    # bool is an int subclass, but true/false is not a size
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return default
    if isinstance(value, float) and not math.isfinite(value):
        return default

    return max(MIN_BATCH_SIZE, min(MAX_BATCH_SIZE, math.floor(value)))
