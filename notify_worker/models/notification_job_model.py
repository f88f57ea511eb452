from sqlalchemy.sql.functions import func
from sqlalchemy.sql.schema import Column, Index
from sqlalchemy.sql.sqltypes import String, DateTime, Integer, JSON, Text

from notify_worker.models.base_model import BaseModel


class NotificationJob(BaseModel):
    __tablename__ = "notification_jobs"

    #routing
    channel = Column(String(50), nullable=False, index=True)
    event_type = Column(String(100), nullable=False)
    ticket_id = Column(String(64), nullable=True)

    #template fields (title, body, priority, ticket_id...)
    payload = Column(JSON, nullable=True, default=dict)

    # status and scheduling
    status = Column(String(20), nullable=False, default="pending")
    scheduled_at = Column(DateTime(timezone=True), nullable=False, default=func.now())
    attempts = Column(Integer, nullable=False, default=0)
    last_error = Column(Text, nullable=True)

    claimed_at = Column(DateTime(timezone=True), nullable=True)
    processed_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index("ix_notification_jobs_due", "channel", "status", "scheduled_at"),
    )
