"""Unit tests for CatalogFetcher."""
from datetime import datetime
from unittest.mock import patch

import pytest
import responses
from requests.exceptions import RequestException, Timeout

from processor.models import CalendarDate
from scraper.catalog_fetcher import CatalogFetcher


CATALOG_URL = "https://catalog.example.com/events"


def document(event_id, **overrides):
    data = {
        'id': event_id,
        'eventName': f"Event {event_id}",
        'buyInFormatted': "$1,100",
        'eventDate': "2025-06-10",
    }
    data.update(overrides)
    return data


class TestCatalogFetcher:
    """Test cases for CatalogFetcher class."""

    @responses.activate
    def test_fetch_events_success(self):
        """Test fetching and mapping a single page."""
        responses.add(
            responses.GET,
            CATALOG_URL,
            json={'events': [
                document(
                    "evt-1",
                    eventName="$1,500 Monster Stack",
                    buyInFormatted="$1,500",
                    buyIn=1500,
                    eventTime="11:00 AM",
                    lateRegistration="End of Level 10",
                    levelLength=40,
                    series="WSOP",
                    casino="Horseshoe",
                    guarantee=5000000,
                    guaranteeFormatted="$5,000,000",
                    startingChips=50000,
                    seriesStart="2025-05-27T12:00:00",
                ),
                document("evt-2", eventTime="   ", series=""),
            ]},
            status=200
        )

        fetcher = CatalogFetcher(CATALOG_URL, timeout=30)
        events = fetcher.fetch_events()

        assert len(events) == 2

        first = events[0]
        assert first.event_id == "evt-1"
        assert first.name == "$1,500 Monster Stack"
        assert first.scheduled_date == CalendarDate(2025, 6, 10)
        assert first.start_time_text == "11:00 AM"
        assert first.late_registration_text == "End of Level 10"
        assert first.level_length_minutes == 40
        assert first.series_name == "WSOP"
        assert first.buyin_text == "$1,500"
        assert first.buyin_amount == 1500.0
        assert first.venue == "Horseshoe"
        assert first.guarantee == 5000000.0
        assert first.starting_chips == 50000
        assert first.series_start == datetime(2025, 5, 27, 12, 0)

        second = events[1]
        assert second.start_time_text is None
        assert second.series_name is None
        assert second.buyin_amount is None

    @responses.activate
    def test_fetch_events_follows_pages(self):
        """Test that pagination accumulates events and reports each batch."""
        responses.add(
            responses.GET, CATALOG_URL,
            json={'events': [document("evt-1"), document("evt-2")], 'nextPageToken': 'p2'},
            status=200
        )
        responses.add(
            responses.GET, CATALOG_URL,
            json={'events': [document("evt-3")]},
            status=200
        )

        batches = []
        fetcher = CatalogFetcher(CATALOG_URL)
        events = fetcher.fetch_events(on_batch=batches.append)

        assert [e.event_id for e in events] == ["evt-1", "evt-2", "evt-3"]
        assert [len(batch) for batch in batches] == [2, 3]
        assert "pageToken=p2" in responses.calls[1].request.url

    @responses.activate
    @patch('scraper.catalog_fetcher.time.sleep')
    def test_fetch_events_with_retry_success(self, mock_sleep):
        """Test retry logic succeeds after initial failures."""
        responses.add(responses.GET, CATALOG_URL, body="Server Error", status=500)
        responses.add(responses.GET, CATALOG_URL, body="Server Error", status=500)
        responses.add(responses.GET, CATALOG_URL, json={'events': [document("evt-1")]}, status=200)

        fetcher = CatalogFetcher(CATALOG_URL)
        events = fetcher.fetch_events()

        assert len(events) == 1
        assert len(responses.calls) == 3
        assert [call.args[0] for call in mock_sleep.call_args_list] == [1, 2]

    @responses.activate
    @patch('scraper.catalog_fetcher.time.sleep')
    def test_fetch_events_all_retries_fail(self, mock_sleep):
        """Test that exception is raised when all retries fail."""
        for _ in range(3):
            responses.add(responses.GET, CATALOG_URL, body="Server Error", status=500)

        fetcher = CatalogFetcher(CATALOG_URL)

        with pytest.raises(RequestException):
            fetcher.fetch_events()

        assert len(responses.calls) == 3

    @responses.activate
    @patch('scraper.catalog_fetcher.time.sleep')
    def test_fetch_events_timeout(self, mock_sleep):
        """Test timeout handling."""
        for _ in range(3):
            responses.add(responses.GET, CATALOG_URL, body=Timeout("Request timed out"))

        fetcher = CatalogFetcher(CATALOG_URL)

        with pytest.raises(Timeout):
            fetcher.fetch_events()

        assert len(responses.calls) == 3

    @responses.activate
    @patch('scraper.catalog_fetcher.time.sleep')
    def test_fetch_events_invalid_json(self, mock_sleep):
        """Test that a non-JSON body is retried and then reported as a request error."""
        for _ in range(3):
            responses.add(responses.GET, CATALOG_URL, body="<html>oops</html>", status=200)

        fetcher = CatalogFetcher(CATALOG_URL)

        with pytest.raises(RequestException):
            fetcher.fetch_events()

    @responses.activate
    def test_empty_catalog(self):
        """Test that an empty catalog is a valid result."""
        responses.add(responses.GET, CATALOG_URL, json={'events': []}, status=200)

        assert CatalogFetcher(CATALOG_URL).fetch_events() == []


class TestParseDocument:
    """Test cases for document mapping."""

    @pytest.mark.parametrize("overrides", [
        {'id': ''},
        {'buyInFormatted': ''},
        {'buyInFormatted': None},
        {'eventDate': None},
        {'eventDate': 'someday'},
        {'eventName': ''},
    ])
    def test_skips_documents_missing_required_fields(self, overrides):
        """Test that incomplete documents are dropped."""
        fetcher = CatalogFetcher(CATALOG_URL)

        assert fetcher.parse_document(document("evt-1", **overrides)) is None

    def test_epoch_event_date(self):
        """Test that epoch seconds map to the local calendar day."""
        fetcher = CatalogFetcher(CATALOG_URL)
        timestamp = datetime(2025, 6, 10, 15, 0).timestamp()

        record = fetcher.parse_document(document("evt-1", eventDate=timestamp))

        assert record.scheduled_date == CalendarDate(2025, 6, 10)

    def test_parse_documents_skips_bad_entries(self):
        """Test that bad documents are skipped without failing the batch."""
        fetcher = CatalogFetcher(CATALOG_URL)

        events = fetcher.parse_documents([
            document("evt-1"),
            "not a document",
            document("evt-2", eventName=""),
            document("evt-3"),
        ])

        assert [e.event_id for e in events] == ["evt-1", "evt-3"]

    @pytest.mark.parametrize("value", [float('nan'), float('inf'), float('-inf')])
    def test_non_finite_numbers_are_dropped(self, value):
        """Test that NaN and infinite numeric fields map to None."""
        fetcher = CatalogFetcher(CATALOG_URL)

        record = fetcher.parse_document(
            document("evt-1", buyIn=value, guarantee=value, levelLength=value)
        )

        assert record.buyin_amount is None
        assert record.guarantee is None
        assert record.level_length_minutes is None
