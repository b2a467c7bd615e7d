"""Lifecycle status of live events."""
from datetime import datetime, timedelta
from typing import Optional

from processor.constants import ONGOING_WINDOW_HOURS
from processor.models import CalendarDate, EventRecord, EventStatus
from processor.time_heuristics import TimeHeuristicParser


class EventStatusResolver:
    """
    Derives an EventStatus from an event's date and timing text.

    The result is a pure function of its inputs and the supplied "now";
    nothing is stored, so callers re-evaluate whenever they render.
    """

    def __init__(self, time_parser: Optional[TimeHeuristicParser] = None):
        self.time_parser = time_parser or TimeHeuristicParser()

    def resolve(self, date: CalendarDate, start_time_text: Optional[str],
                late_reg_text: Optional[str], level_length_minutes: Optional[int],
                now: datetime) -> EventStatus:
        """
        Resolve the status of an event at a given moment.

        Args:
            date: Scheduled day of the event
            start_time_text: Free-text start time
            late_reg_text: Free-text end of late registration
            level_length_minutes: Minutes per level, None for the default
            now: Current local time

        Returns:
            EventStatus for the given moment
        """
        start = self.time_parser.resolve_start_instant(date, start_time_text)
        late_reg_end = self.time_parser.resolve_late_registration_end(
            start, late_reg_text, level_length_minutes
        )
        ongoing_end = (late_reg_end or start) + timedelta(hours=ONGOING_WINDOW_HOURS)

        if now < start:
            return EventStatus.UPCOMING
        if late_reg_end is not None and start <= now < late_reg_end:
            return EventStatus.LATE_REGISTRATION
        if now < ongoing_end:
            return EventStatus.ACTIVE
        return EventStatus.COMPLETED

    def resolve_event(self, event: EventRecord,
                      now: Optional[datetime] = None) -> EventStatus:
        """Resolve the status of a catalog record, defaulting now to the local clock."""
        return self.resolve(
            date=event.scheduled_date,
            start_time_text=event.start_time_text,
            late_reg_text=event.late_registration_text,
            level_length_minutes=event.level_length_minutes,
            now=now or datetime.now(),
        )
