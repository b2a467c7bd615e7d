"""Filtering, grouping and sorting of the event catalog."""
import locale
import logging
import threading
from collections import Counter
from typing import Callable, Dict, FrozenSet, Iterable, List, Optional, Sequence

from processor.buyin_parser import BuyinExpressionParser
from processor.constants import OTHER_EVENTS, SERIES_DEBOUNCE_SECONDS
from processor.debounce import Debouncer
from processor.models import (
    AvailableSeries,
    BuyinRange,
    CalendarDate,
    EventRecord,
    FilterSelection,
    SeriesGrouping,
)

logger = logging.getLogger(__name__)


class CatalogAggregator:
    """
    Derived views over the full event catalog.

    All methods are pure: they never mutate the catalog or the selection
    and return new collections. An empty catalog yields empty results.
    """

    def __init__(self, buyin_parser: Optional[BuyinExpressionParser] = None):
        self.buyin_parser = buyin_parser or BuyinExpressionParser()

    def available_dates(self, catalog: Sequence[EventRecord]) -> List[CalendarDate]:
        """Distinct scheduled dates in ascending order."""
        return sorted({event.scheduled_date for event in catalog})

    def available_dates_for_filters(self, catalog: Sequence[EventRecord],
                                    selection: FilterSelection) -> List[CalendarDate]:
        """Dates left after the series and buy-in filters (date filter not applied)."""
        events = self._filter_by_series(catalog, selection.series_set)
        events = self._filter_by_buyin(events, selection.buyin_range)
        return self.available_dates(events)

    def filtered_and_sorted(self, catalog: Sequence[EventRecord],
                            selection: FilterSelection) -> List[EventRecord]:
        """
        Events matching every active filter, ready for display.

        Without an explicit date the earliest date in the catalog is used.
        Events are ordered by buy-in ascending with zero or unknown
        buy-ins last, then by name. Names compare case-insensitively
        through the process LC_COLLATE locale.

        Args:
            catalog: Full event catalog
            selection: Active filters

        Returns:
            New list of matching events
        """
        events = self._filter_by_series(catalog, selection.series_set)
        events = self._filter_by_buyin(events, selection.buyin_range)

        active_date = selection.active_date
        if active_date is None:
            dates = self.available_dates(catalog)
            active_date = dates[0] if dates else None
        if active_date is not None:
            events = [event for event in events if event.scheduled_date == active_date]

        return sorted(events, key=self._buyin_sort_key)

    def grouped_by_series(self, catalog: Sequence[EventRecord],
                          selection: FilterSelection) -> SeriesGrouping:
        """
        Group events by series name across all dates.

        Only the buy-in filter applies, so a series view shows every
        occurrence. Events without a series go to "Other Events", which
        always sorts last; other groups sort by size, then name.
        """
        events = self._filter_by_buyin(catalog, selection.buyin_range)

        groups: Dict[str, List[EventRecord]] = {}
        for event in events:
            key = event.series_name if event.series_name is not None else OTHER_EVENTS
            groups.setdefault(key, []).append(event)

        sorted_names = sorted(
            groups,
            key=lambda name: (name == OTHER_EVENTS, -len(groups[name]), name)
        )
        return SeriesGrouping(groups=groups, sorted_series_names=sorted_names)

    def events_for_series(self, catalog: Sequence[EventRecord], series_name: str,
                          buyin_range: BuyinRange = BuyinRange.ALL) -> List[EventRecord]:
        """
        All events of one series, sorted by date, then buy-in, then name.

        "Other Events" selects the events that have no series.
        """
        if series_name == OTHER_EVENTS:
            events = [event for event in catalog if event.series_name is None]
        else:
            events = [event for event in catalog if event.series_name == series_name]

        events = self._filter_by_buyin(events, buyin_range)
        return sorted(
            events,
            key=lambda event: (event.scheduled_date, self._zero_last_name_key(event))
        )

    def events_by_date_for_series(self, catalog: Sequence[EventRecord], series_name: str,
                                  buyin_range: BuyinRange = BuyinRange.ALL
                                  ) -> Dict[CalendarDate, List[EventRecord]]:
        """events_for_series grouped by date; keys are in ascending date order."""
        grouped: Dict[CalendarDate, List[EventRecord]] = {}
        for event in self.events_for_series(catalog, series_name, buyin_range):
            grouped.setdefault(event.scheduled_date, []).append(event)
        return grouped

    def recompute_available_series(self, catalog: Sequence[EventRecord],
                                   selected_series: Iterable[str] = ()) -> AvailableSeries:
        """
        Rank non-empty series names by event count and prune the selection.

        Args:
            catalog: Full event catalog
            selected_series: Series currently selected by the caller

        Returns:
            AvailableSeries with names sorted by count (descending) then
            name, and the selection reduced to names still present
        """
        counts = Counter(
            event.series_name for event in catalog
            if event.series_name and event.series_name.strip()
        )
        names = sorted(counts, key=lambda name: (-counts[name], name))
        available = set(names)
        selected = frozenset(name for name in selected_series if name in available)
        return AvailableSeries(names=names, selected=selected)

    def _filter_by_series(self, events: Iterable[EventRecord],
                          series_set: FrozenSet[str]) -> List[EventRecord]:
        if not series_set:
            return list(events)
        return [
            event for event in events
            if event.series_name is not None and event.series_name in series_set
        ]

    def _filter_by_buyin(self, events: Iterable[EventRecord],
                         buyin_range: BuyinRange) -> List[EventRecord]:
        if buyin_range is BuyinRange.ALL:
            return list(events)

        matching = []
        for event in events:
            amount = self.buyin_parser.effective_amount(event)
            if amount is not None and buyin_range.contains(amount):
                matching.append(event)
        return matching

    def _buyin_sort_key(self, event: EventRecord):
        amount = self.buyin_parser.effective_amount(event) or 0
        unpriced = amount <= 0
        return (unpriced, 0 if unpriced else amount, _name_key(event.name))

    def _zero_last_name_key(self, event: EventRecord):
        amount = self.buyin_parser.effective_amount(event) or 0
        return (amount <= 0, _name_key(event.name))


def _name_key(name: str) -> str:
    # Collation follows LC_COLLATE; under the C locale this is codepoint order
    return locale.strxfrm(name.casefold())


class AvailableSeriesTracker:
    """
    Holds the series facet for a changing catalog.

    Catalog changes are debounced so a multi-page fetch triggers one
    recomputation per burst instead of one per page.
    """

    def __init__(self, aggregator: Optional[CatalogAggregator] = None,
                 selected_series: Iterable[str] = (),
                 wait_seconds: float = SERIES_DEBOUNCE_SECONDS,
                 on_update: Optional[Callable[[AvailableSeries], None]] = None):
        self.aggregator = aggregator or CatalogAggregator()
        self.on_update = on_update
        self._lock = threading.Lock()
        self._available_series: List[str] = []
        self._selected_series: FrozenSet[str] = frozenset(selected_series)
        self._debouncer = Debouncer(self._recompute, wait_seconds)

    @property
    def available_series(self) -> List[str]:
        with self._lock:
            return list(self._available_series)

    @property
    def selected_series(self) -> FrozenSet[str]:
        with self._lock:
            return self._selected_series

    def select(self, series: Iterable[str]) -> None:
        with self._lock:
            self._selected_series = frozenset(series)

    def catalog_changed(self, catalog: Sequence[EventRecord]) -> None:
        """Record a catalog change; recomputation happens after the quiet window."""
        self._debouncer.trigger(list(catalog))

    def flush(self) -> bool:
        """Run any pending recomputation immediately."""
        return self._debouncer.flush()

    def cancel(self) -> None:
        self._debouncer.cancel()

    def _recompute(self, catalog: List[EventRecord]) -> None:
        with self._lock:
            result = self.aggregator.recompute_available_series(
                catalog, self._selected_series
            )
            self._available_series = result.names
            self._selected_series = result.selected

        logger.info(
            f"Recomputed available series: {len(result.names)} series "
            f"from {len(catalog)} events"
        )
        if self.on_update is not None:
            self.on_update(result)
