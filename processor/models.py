"""Data models for the event catalog."""
import math
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from enum import Enum
from typing import FrozenSet, List, Optional


MONTH_NAMES_SHORT = [
    'Jan', 'Feb', 'Mar', 'Apr', 'May', 'Jun',
    'Jul', 'Aug', 'Sep', 'Oct', 'Nov', 'Dec'
]


@dataclass(frozen=True, order=True)
class CalendarDate:
    """Calendar day without a time zone, ordered like (year, month, day)."""
    year: int
    month: int
    day: int

    @classmethod
    def parse(cls, value: str) -> Optional['CalendarDate']:
        """
        Parse a YYYY-MM-DD string.

        Args:
            value: Date string

        Returns:
            CalendarDate or None if the string is not a valid date
        """
        if not isinstance(value, str):
            return None

        parts = value.strip().split('-')
        if len(parts) != 3:
            return None

        try:
            year, month, day = (int(part) for part in parts)
        except ValueError:
            return None

        if not (1 <= month <= 12 and 1 <= day <= 31):
            return None

        return cls(year=year, month=month, day=day)

    @classmethod
    def from_date(cls, value: date) -> 'CalendarDate':
        return cls(year=value.year, month=value.month, day=value.day)

    def to_datetime(self, hour: int = 0, minute: int = 0) -> datetime:
        """
        Build a naive local datetime on this day.

        Out-of-range days roll over into the following month instead of
        raising, so "2025-02-30" lands on March 2nd.
        """
        year = self.year + (self.month - 1) // 12
        month = (self.month - 1) % 12 + 1
        first_of_month = datetime(year, month, 1, hour, minute)
        return first_of_month + timedelta(days=self.day - 1)

    @property
    def display_medium(self) -> str:
        """e.g. "May 24, 2025"."""
        return f"{self._month_name_short()} {self.day}, {self.year}"

    @property
    def display_short(self) -> str:
        """e.g. "May 24"."""
        return f"{self._month_name_short()} {self.day}"

    def _month_name_short(self) -> str:
        if not 1 <= self.month <= 12:
            return 'Unk'
        return MONTH_NAMES_SHORT[self.month - 1]

    def __str__(self) -> str:
        return f"{self.year:04d}-{self.month:02d}-{self.day:02d}"


@dataclass(frozen=True)
class EventRecord:
    """
    One scheduled tournament or game.

    Records compare and hash by event_id only.
    """
    event_id: str
    name: str = field(compare=False)
    scheduled_date: CalendarDate = field(compare=False)
    start_time_text: Optional[str] = field(default=None, compare=False)
    late_registration_text: Optional[str] = field(default=None, compare=False)
    level_length_minutes: Optional[int] = field(default=None, compare=False)
    series_name: Optional[str] = field(default=None, compare=False)
    buyin_text: Optional[str] = field(default=None, compare=False)
    buyin_amount: Optional[float] = field(default=None, compare=False)
    image_url: Optional[str] = field(default=None, compare=False)
    venue: Optional[str] = field(default=None, compare=False)
    game: Optional[str] = field(default=None, compare=False)
    guarantee: Optional[float] = field(default=None, compare=False)
    guarantee_text: Optional[str] = field(default=None, compare=False)
    starting_chips: Optional[int] = field(default=None, compare=False)
    chips_text: Optional[str] = field(default=None, compare=False)
    levels_text: Optional[str] = field(default=None, compare=False)
    pdf_link: Optional[str] = field(default=None, compare=False)
    series_start: Optional[datetime] = field(default=None, compare=False)
    series_end: Optional[datetime] = field(default=None, compare=False)

    def to_dict(self) -> dict:
        """Convert to a JSON-compatible dictionary."""
        return {
            'event_id': self.event_id,
            'name': self.name,
            'scheduled_date': str(self.scheduled_date),
            'start_time_text': self.start_time_text,
            'late_registration_text': self.late_registration_text,
            'level_length_minutes': self.level_length_minutes,
            'series_name': self.series_name,
            'buyin_text': self.buyin_text,
            'buyin_amount': self.buyin_amount,
            'image_url': self.image_url,
            'venue': self.venue,
            'game': self.game,
            'guarantee': self.guarantee,
            'guarantee_text': self.guarantee_text,
            'starting_chips': self.starting_chips,
            'chips_text': self.chips_text,
            'levels_text': self.levels_text,
            'pdf_link': self.pdf_link,
            'series_start': _format_datetime(self.series_start),
            'series_end': _format_datetime(self.series_end),
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'EventRecord':
        """
        Build a record from the dictionary produced by to_dict.

        Raises:
            KeyError: If a required field is missing
            TypeError: If a field has the wrong type
            ValueError: If the scheduled date, a timestamp or a number is malformed
        """
        scheduled_date = CalendarDate.parse(_required_text(data, 'scheduled_date'))
        if scheduled_date is None:
            raise ValueError(f"Invalid scheduled_date: {data['scheduled_date']!r}")

        return cls(
            event_id=_required_text(data, 'event_id'),
            name=_required_text(data, 'name'),
            scheduled_date=scheduled_date,
            start_time_text=_optional_text(data, 'start_time_text'),
            late_registration_text=_optional_text(data, 'late_registration_text'),
            level_length_minutes=_optional_int(data, 'level_length_minutes'),
            series_name=_optional_text(data, 'series_name'),
            buyin_text=_optional_text(data, 'buyin_text'),
            buyin_amount=_optional_number(data, 'buyin_amount'),
            image_url=_optional_text(data, 'image_url'),
            venue=_optional_text(data, 'venue'),
            game=_optional_text(data, 'game'),
            guarantee=_optional_number(data, 'guarantee'),
            guarantee_text=_optional_text(data, 'guarantee_text'),
            starting_chips=_optional_int(data, 'starting_chips'),
            chips_text=_optional_text(data, 'chips_text'),
            levels_text=_optional_text(data, 'levels_text'),
            pdf_link=_optional_text(data, 'pdf_link'),
            series_start=_parse_datetime(_optional_text(data, 'series_start')),
            series_end=_parse_datetime(_optional_text(data, 'series_end')),
        )


@dataclass(frozen=True)
class CachedCatalogSnapshot:
    """Full catalog plus the unix time it was captured."""
    events: List[EventRecord]
    captured_at: float


class EventStatus(Enum):
    """Lifecycle phase of an event relative to the current time."""
    UPCOMING = 'upcoming'
    LATE_REGISTRATION = 'lateRegistration'
    ACTIVE = 'active'
    COMPLETED = 'completed'


class BuyinRange(Enum):
    """Buy-in filter buckets."""
    ALL = 'All Buy-ins'
    RANGE_0_500 = '$0 - $500'
    RANGE_500_1500 = '$500 - $1,500'
    RANGE_1500_5000 = '$1,500 - $5,000'
    RANGE_5000_PLUS = '$5,000+'

    def contains(self, value: float) -> bool:
        """Check whether a numeric buy-in falls into this range."""
        if self is BuyinRange.ALL:
            return True
        if self is BuyinRange.RANGE_0_500:
            return 0 <= value <= 500
        if self is BuyinRange.RANGE_500_1500:
            return 500 < value <= 1500
        if self is BuyinRange.RANGE_1500_5000:
            return 1500 < value <= 5000
        return value > 5000

    @classmethod
    def from_label(cls, label: Optional[str]) -> 'BuyinRange':
        """
        Look up a range by its label or member name.

        Unknown or empty labels map to ALL.
        """
        if not label:
            return cls.ALL
        for member in cls:
            if label in (member.value, member.name):
                return member
        return cls.ALL


@dataclass(frozen=True)
class FilterSelection:
    """Active filter choices for the catalog views."""
    series_set: FrozenSet[str] = frozenset()
    buyin_range: BuyinRange = BuyinRange.ALL
    active_date: Optional[CalendarDate] = None


@dataclass(frozen=True)
class SeriesGrouping:
    """Events grouped by series name with the display order of the groups."""
    groups: dict
    sorted_series_names: List[str]


@dataclass(frozen=True)
class AvailableSeries:
    """Series facet: names ordered by popularity plus the pruned selection."""
    names: List[str]
    selected: FrozenSet[str]


def _format_datetime(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _parse_datetime(value: Optional[str]) -> Optional[datetime]:
    if value is None:
        return None
    return datetime.fromisoformat(value)


def _required_text(data: dict, key: str) -> str:
    value = data[key]
    if not isinstance(value, str):
        raise TypeError(f"{key} must be a string, got {type(value).__name__}")
    return value


def _optional_text(data: dict, key: str) -> Optional[str]:
    value = data.get(key)
    if value is not None and not isinstance(value, str):
        raise TypeError(f"{key} must be a string or null, got {type(value).__name__}")
    return value


def _optional_int(data: dict, key: str) -> Optional[int]:
    value = data.get(key)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"{key} must be an integer or null, got {type(value).__name__}")
    return value


def _optional_number(data: dict, key: str) -> Optional[float]:
    value = data.get(key)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise TypeError(f"{key} must be a number or null, got {type(value).__name__}")
    if not math.isfinite(value):
        raise ValueError(f"{key} must be finite, got {value!r}")
    return float(value)
