"""CalendarEvent ORM model — the local event store behind the calendar tools."""
import uuid
from datetime import timezone

from sqlalchemy import Column, Date, DateTime, String, Text
from sqlalchemy.sql import func
from sqlalchemy.types import TypeDecorator

from calendar_copilot.database import Base


class UTCDateTime(TypeDecorator):
    """Timezone-aware datetime stored as UTC.

    SQLite drops tzinfo on the way back; values are re-tagged as UTC on load
    and converted to UTC on bind (naive input is taken to be UTC already).
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is not None:
            if value.tzinfo is None:
                value = value.replace(tzinfo=timezone.utc)
            value = value.astimezone(timezone.utc)
        return value

    def process_result_value(self, value, dialect):
        if value is not None and value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value


class CalendarEvent(Base):
    __tablename__ = "calendar_events"

    event_id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    summary = Column(String(255), nullable=False, default="(No title)")
    description = Column(Text, nullable=True)
    location = Column(String(500), nullable=True)
    # Timed events
    start_time = Column(UTCDateTime, nullable=True, index=True)
    end_time = Column(UTCDateTime, nullable=True)
    # All-day events; end_date is exclusive
    start_date = Column(Date, nullable=True, index=True)
    end_date = Column(Date, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    @property
    def is_all_day(self) -> bool:
        return self.start_time is None
