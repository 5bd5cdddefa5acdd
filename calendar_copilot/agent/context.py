"""Per-request collaborators handed to every tool handler."""
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Callable, Iterator, Optional

from sqlalchemy.orm import Session

from calendar_copilot.integrations.amadeus import AmadeusClient
from calendar_copilot.integrations.open_meteo import OpenMeteoClient
from calendar_copilot.services.free_busy import MAX_SLOTS_RETURNED
from calendar_copilot.services.intervals import WorkingHoursPolicy


@dataclass
class ToolContext:
    """Everything a handler may touch.

    Handlers run concurrently in worker threads, so each opens its own
    database session through ``session()`` rather than sharing one.
    """

    session_factory: Callable[[], Session]
    timezone: str = "UTC"
    working_hours: Optional[WorkingHoursPolicy] = None
    flights: Optional[AmadeusClient] = None
    weather: Optional[OpenMeteoClient] = None
    default_slot_minutes: int = 30
    max_free_slots: int = MAX_SLOTS_RETURNED

    @contextmanager
    def session(self) -> Iterator[Session]:
        db = self.session_factory()
        try:
            yield db
        finally:
            db.close()

    def policy_for(self, timezone: str) -> WorkingHoursPolicy:
        if self.working_hours is None:
            return WorkingHoursPolicy(timezone=timezone)
        return self.working_hours.with_timezone(timezone)
