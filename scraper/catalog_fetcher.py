"""HTTP client for the poker event catalog."""
import logging
import math
import time
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

import requests

from processor.models import CalendarDate, EventRecord

logger = logging.getLogger(__name__)


class CatalogFetcher:
    """Fetches raw event documents page by page and maps them to EventRecords."""

    MAX_RETRIES = 3
    BASE_DELAY_SECONDS = 1

    def __init__(self, base_url: str, timeout: int = 30):
        """
        Initialize the catalog fetcher.

        Args:
            base_url: Catalog endpoint returning {"events": [...], "nextPageToken": ...}
            timeout: HTTP request timeout in seconds (default: 30)
        """
        self.base_url = base_url
        self.timeout = timeout

    def fetch_events(self, on_batch: Optional[Callable[[List[EventRecord]], None]] = None
                     ) -> List[EventRecord]:
        """
        Fetch the full catalog ordered by event date.

        Args:
            on_batch: Called with the catalog accumulated so far after
                every page

        Returns:
            List of EventRecord objects

        Raises:
            requests.RequestException: If a page cannot be fetched after retries
        """
        events: List[EventRecord] = []
        page_token = None
        page = 0

        while True:
            page += 1
            payload = self._fetch_page(page_token)
            documents = payload.get('events') or []
            events.extend(self.parse_documents(documents))
            logger.info(f"Fetched page {page}: {len(documents)} documents, {len(events)} events total")

            if on_batch is not None:
                on_batch(list(events))

            page_token = payload.get('nextPageToken')
            if not page_token:
                break

        logger.info(f"Successfully fetched {len(events)} events")
        return events

    def _fetch_page(self, page_token: Optional[str]) -> Dict[str, Any]:
        """
        Fetch one catalog page with retry logic.

        Raises:
            requests.RequestException: If all retry attempts fail
        """
        params = {'orderBy': 'eventDate'}
        if page_token:
            params['pageToken'] = page_token

        for attempt in range(self.MAX_RETRIES):
            try:
                logger.info(f"Fetching catalog page (attempt {attempt + 1}/{self.MAX_RETRIES})")
                response = requests.get(self.base_url, params=params, timeout=self.timeout)
                response.raise_for_status()
                payload = response.json()
                if not isinstance(payload, dict):
                    raise requests.RequestException("Catalog response is not a JSON object")
                return payload

            except (requests.RequestException, ValueError) as e:
                if attempt < self.MAX_RETRIES - 1:
                    delay = self.BASE_DELAY_SECONDS * (2 ** attempt)
                    logger.warning(
                        f"Request failed (attempt {attempt + 1}/{self.MAX_RETRIES}): {e}. "
                        f"Retrying in {delay} seconds..."
                    )
                    time.sleep(delay)
                else:
                    logger.error(
                        f"All {self.MAX_RETRIES} retry attempts failed. Last error: {e}"
                    )
                    if isinstance(e, requests.RequestException):
                        raise
                    raise requests.RequestException(f"Invalid catalog response: {e}") from e

    def parse_documents(self, documents: List[Dict[str, Any]]) -> List[EventRecord]:
        """
        Map raw documents to records, skipping the ones that cannot be used.

        Args:
            documents: Raw catalog documents

        Returns:
            List of EventRecord objects
        """
        events = []
        for document in documents:
            try:
                event = self.parse_document(document)
                if event:
                    events.append(event)
            except Exception as e:
                logger.warning(f"Failed to parse event document: {e}")
                continue
        return events

    def parse_document(self, document: Dict[str, Any]) -> Optional[EventRecord]:
        """
        Map a single raw document to an EventRecord.

        Documents without an id, buy-in text, event date or name are
        skipped.

        Returns:
            EventRecord object or None if required fields are missing
        """
        event_id = document.get('id')
        if not event_id:
            logger.warning("Event document missing required field: id")
            return None

        buyin_text = document.get('buyInFormatted')
        if not isinstance(buyin_text, str) or not buyin_text:
            logger.warning(f"Event document '{event_id}' missing required field: buyInFormatted")
            return None

        scheduled_date = self._parse_event_date(document.get('eventDate'))
        if scheduled_date is None:
            logger.warning(
                f"Invalid eventDate for event document '{event_id}': {document.get('eventDate')}"
            )
            return None

        name = document.get('eventName')
        if not isinstance(name, str) or not name:
            logger.warning(f"Event document '{event_id}' missing required field: eventName")
            return None

        return EventRecord(
            event_id=str(event_id),
            name=name,
            scheduled_date=scheduled_date,
            start_time_text=_blank_to_none(document.get('eventTime')),
            late_registration_text=_blank_to_none(document.get('lateRegistration')),
            level_length_minutes=_optional_int(document.get('levelLength')),
            series_name=_blank_to_none(document.get('series')),
            buyin_text=buyin_text,
            buyin_amount=_optional_float(document.get('buyIn')),
            image_url=document.get('imageUrl'),
            venue=document.get('casino'),
            game=document.get('game'),
            guarantee=_optional_float(document.get('guarantee')),
            guarantee_text=document.get('guaranteeFormatted'),
            starting_chips=_optional_int(document.get('startingChips')),
            chips_text=document.get('chipsFormatted'),
            levels_text=document.get('levelsFormatted'),
            pdf_link=document.get('pdfLink'),
            series_start=self._parse_timestamp(document.get('seriesStart')),
            series_end=self._parse_timestamp(document.get('seriesEnd')),
        )

    def _parse_event_date(self, value: Any) -> Optional[CalendarDate]:
        timestamp = self._parse_timestamp(value)
        if timestamp is None:
            return None
        return CalendarDate.from_date(timestamp)

    def _parse_timestamp(self, value: Any) -> Optional[datetime]:
        """
        Parse an ISO 8601 string or epoch seconds into a naive local datetime.

        Returns:
            datetime or None if the value is missing or malformed
        """
        if value is None or isinstance(value, bool):
            return None

        if isinstance(value, (int, float)):
            try:
                return datetime.fromtimestamp(value)
            except (OverflowError, OSError, ValueError):
                return None

        if isinstance(value, str) and value.strip():
            try:
                parsed = datetime.fromisoformat(value.strip().replace('Z', '+00:00'))
            except ValueError:
                return None
            if parsed.tzinfo is not None:
                parsed = parsed.astimezone().replace(tzinfo=None)
            return parsed

        return None


def _blank_to_none(value: Any) -> Optional[str]:
    if not isinstance(value, str) or not value.strip():
        return None
    return value


def _optional_int(value: Any) -> Optional[int]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if not math.isfinite(value):
        return None
    return int(value)


def _optional_float(value: Any) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if not math.isfinite(value):
        return None
    return float(value)
