"""Heuristics for turning free-text event times into datetimes."""
import logging
import re
from datetime import datetime, time, timedelta
from typing import Callable, List, Optional, Tuple

from processor.constants import (
    DEFAULT_LEVEL_LENGTH_MINUTES,
    DEFAULT_START_HOUR,
    DEFAULT_START_MINUTE,
    LATE_REGISTRATION_FALLBACK_HOURS,
)
from processor.models import CalendarDate

logger = logging.getLogger(__name__)


def _hours_to_minutes(match: re.Match) -> int:
    return int(float(match.group(1)) * 60)


def _minutes(match: re.Match) -> int:
    return int(match.group(1))


def _hours_and_minutes(match: re.Match) -> int:
    return int(match.group(1)) * 60 + int(match.group(2))


class TimeHeuristicParser:
    """Resolves start and late registration times from human-entered text."""

    # Tried in order, first match wins. Some formats accept subsets of others.
    TIME_OF_DAY_FORMATS = [
        '%I:%M %p',   # h:mm a  -> "7:30 PM"
        '%H:%M',      # HH:mm   -> "19:00"
        '%I %p',      # h a     -> "7 PM"
        '%I%p',       # ha      -> "7PM"
        '%I:%M%p',    # h:mma   -> "7:30PM"
    ]

    LEVEL_PATTERNS: List[re.Pattern] = [
        re.compile(r'(?:end of )?level\s+(\d+)', re.IGNORECASE),
        re.compile(r'(\d+)\s+levels?', re.IGNORECASE),
        re.compile(r'through level\s+(\d+)', re.IGNORECASE),
    ]

    DURATION_PATTERNS: List[Tuple[re.Pattern, Callable[[re.Match], int]]] = [
        (re.compile(r'(\d+(?:\.\d+)?)\s*hours?', re.IGNORECASE), _hours_to_minutes),
        (re.compile(r'(\d+)\s*minutes?', re.IGNORECASE), _minutes),
        (re.compile(r'(\d+)h\s*(\d+)m', re.IGNORECASE), _hours_and_minutes),
        (re.compile(r'(\d+(?:\.\d+)?)\s*hrs?', re.IGNORECASE), _hours_to_minutes),
        (re.compile(r'(\d+)\s*mins?', re.IGNORECASE), _minutes),
    ]

    TIME_TOKEN_PATTERN = re.compile(r'\b\d{1,2}:?\d{0,2}\s*[ap]?m?\b', re.IGNORECASE)

    def parse_time_of_day(self, text: Optional[str]) -> Optional[time]:
        """
        Parse a time of day against TIME_OF_DAY_FORMATS.

        Args:
            text: Time text such as "7:30 PM" or "19:00"

        Returns:
            time object or None if no format matches
        """
        if not text or not text.strip():
            return None

        cleaned = text.strip()
        for fmt in self.TIME_OF_DAY_FORMATS:
            try:
                return datetime.strptime(cleaned, fmt).time()
            except ValueError:
                continue

        return None

    def resolve_start_instant(self, base_date: CalendarDate,
                              start_time_text: Optional[str]) -> datetime:
        """
        Resolve when an event starts.

        Args:
            base_date: Scheduled day of the event
            start_time_text: Free-text start time, may be empty

        Returns:
            Start datetime; 18:00 on base_date when the text is empty or
            unparsable
        """
        time_of_day = self.parse_time_of_day(start_time_text)
        if time_of_day is None:
            if start_time_text and start_time_text.strip():
                logger.debug(f"Unparsable start time {start_time_text!r}, using default")
            return base_date.to_datetime(DEFAULT_START_HOUR, DEFAULT_START_MINUTE)

        return base_date.to_datetime(time_of_day.hour, time_of_day.minute)

    def resolve_late_registration_end(self, start: datetime,
                                      late_reg_text: Optional[str],
                                      level_length_minutes: Optional[int] = None
                                      ) -> Optional[datetime]:
        """
        Resolve when late registration closes.

        Cues are tried in priority order: level count, duration, clock
        time, then a fixed fallback after start.

        Args:
            start: Resolved event start
            late_reg_text: Free-text description, e.g. "End of Level 8"
            level_length_minutes: Minutes per level (default 20)

        Returns:
            End of late registration, or None when the text is empty
        """
        if not late_reg_text or not late_reg_text.strip():
            return None

        cleaned = late_reg_text.strip().lower()

        levels = self.extract_level_count(cleaned)
        if levels is not None:
            length = (DEFAULT_LEVEL_LENGTH_MINUTES if level_length_minutes is None
                      else level_length_minutes)
            return start + timedelta(minutes=levels * length)

        duration = self.extract_duration_minutes(cleaned)
        if duration is not None:
            return start + timedelta(minutes=duration)

        clock_time = self.extract_clock_time(cleaned)
        if clock_time is not None:
            return start.replace(hour=clock_time.hour, minute=clock_time.minute,
                                 second=0, microsecond=0)

        logger.debug(f"No late registration cue in {late_reg_text!r}, using fallback")
        return start + timedelta(hours=LATE_REGISTRATION_FALLBACK_HOURS)

    def extract_level_count(self, text: str) -> Optional[int]:
        """Return N from "level N" style phrases, or None."""
        for pattern in self.LEVEL_PATTERNS:
            match = pattern.search(text)
            if match:
                return int(match.group(1))
        return None

    def extract_duration_minutes(self, text: str) -> Optional[int]:
        """Return a duration in whole minutes from "2 hours" style phrases, or None."""
        for pattern, to_minutes in self.DURATION_PATTERNS:
            match = pattern.search(text)
            if match:
                return to_minutes(match)
        return None

    def extract_clock_time(self, text: str) -> Optional[time]:
        """Find the first time-looking token in text and parse it."""
        match = self.TIME_TOKEN_PATTERN.search(text)
        if not match:
            return None
        return self.parse_time_of_day(match.group(0))
