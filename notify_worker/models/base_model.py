from datetime import datetime, timezone
from uuid import uuid4
from sqlalchemy import Column, DateTime, String
from notify_worker.db import Base


class BaseModel(Base):
    __abstract__ = True

    # Primary key
    id = Column(String(36), primary_key=True, default=lambda: str(uuid4()))

    # FIFO tiebreak for candidate ordering, never updated
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        index=True,
    )
