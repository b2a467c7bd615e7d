"""AWS Lambda handler for the poker event catalog."""
import json
import logging
import os
import time
from datetime import datetime
from typing import Any, Dict, List, Optional

from botocore.exceptions import ClientError

from processor.buyin_parser import BuyinExpressionParser
from processor.catalog_aggregator import AvailableSeriesTracker, CatalogAggregator
from processor.event_status import EventStatusResolver
from processor.models import BuyinRange, CalendarDate, EventRecord, FilterSelection
from scraper.catalog_fetcher import CatalogFetcher
from storage.catalog_cache import EventCatalogCache
from storage.dynamodb_store import DynamoDBKeyValueStore
from storage.kv_store import FileKeyValueStore, KeyValueStore


# Configure JSON logging
class JsonFormatter(logging.Formatter):
    """Custom JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data = {
            'timestamp': self.formatTime(record),
            'level': record.levelname,
            'message': record.getMessage(),
            'logger': record.name
        }

        if record.exc_info:
            log_data['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_data)


def setup_logging(log_level: str = 'INFO') -> None:
    """
    Configure logging with JSON formatter.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
    """
    root_logger = logging.getLogger()

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())
    root_logger.addHandler(handler)

    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))


def build_store(backend: str) -> KeyValueStore:
    """
    Create the cache backend selected by CACHE_BACKEND.

    Args:
        backend: "file" or "dynamodb"
    """
    if backend == 'dynamodb':
        return DynamoDBKeyValueStore(table_name=os.environ.get('TABLE_NAME', 'event-catalog-cache'))
    return FileKeyValueStore(directory=os.environ.get('CACHE_DIR', '/tmp/event-catalog-cache'))


def parse_selection(event: Dict[str, Any]) -> FilterSelection:
    """
    Build the filter selection from the invocation payload.

    Unknown buy-in labels and malformed dates fall back to no filter.
    """
    series = event.get('series') or []
    if isinstance(series, str):
        series = [series]

    active_date = None
    if event.get('date'):
        active_date = CalendarDate.parse(str(event['date']))

    return FilterSelection(
        series_set=frozenset(str(name) for name in series),
        buyin_range=BuyinRange.from_label(event.get('buyin_range')),
        active_date=active_date
    )


def serialize_event(record: EventRecord, resolver: EventStatusResolver,
                    buyin_parser: BuyinExpressionParser, now: datetime) -> Dict[str, Any]:
    """Event dictionary for the response, with its current status and buy-in."""
    data = record.to_dict()
    data['status'] = resolver.resolve_event(record, now).value
    data['effective_buyin'] = buyin_parser.effective_amount(record)
    return data


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Main Lambda handler for catalog queries.

    Loads the catalog from the cache, or from the catalog endpoint on a
    miss (or when "refresh" is set), then applies the requested filters.

    Args:
        event: Payload with optional "series", "buyin_range", "date" and "refresh"
        context: Lambda context object

    Returns:
        Response dict with statusCode and the aggregated catalog views
    """
    catalog_url = os.environ.get('CATALOG_URL', 'http://localhost:8080/events')
    cache_backend = os.environ.get('CACHE_BACKEND', 'file')
    log_level = os.environ.get('LOG_LEVEL', 'INFO')
    timeout_seconds = int(os.environ.get('TIMEOUT_SECONDS', '30'))

    setup_logging(log_level)
    logger = logging.getLogger(__name__)

    event = event or {}
    start_time = time.time()
    logger.info(
        "Lambda execution started",
        extra={
            'catalog_url': catalog_url,
            'cache_backend': cache_backend,
            'timeout_seconds': timeout_seconds
        }
    )

    try:
        selection = parse_selection(event)
        cache = EventCatalogCache(build_store(cache_backend))
        aggregator = CatalogAggregator()
        tracker = AvailableSeriesTracker(aggregator, selected_series=selection.series_set)

        catalog: Optional[List[EventRecord]] = None
        source = 'cache'
        if not event.get('refresh'):
            catalog = cache.read()

        if catalog is None:
            source = 'network'
            fetcher = CatalogFetcher(base_url=catalog_url, timeout=timeout_seconds)
            try:
                logger.info("Cache miss - fetching catalog")
                catalog = fetcher.fetch_events(on_batch=tracker.catalog_changed)
            except Exception as e:
                tracker.cancel()
                logger.error(
                    f"Failed to fetch catalog after retries: {str(e)}",
                    extra={'error_type': type(e).__name__},
                    exc_info=True
                )
                duration = time.time() - start_time
                return {
                    'statusCode': 500,
                    'body': json.dumps({
                        'message': 'Failed to fetch event catalog',
                        'error': str(e),
                        'error_type': type(e).__name__,
                        'duration_seconds': round(duration, 2)
                    })
                }

            if catalog:
                try:
                    cache.write(catalog)
                except (OSError, ClientError) as e:
                    # Serve the fetched catalog even when it cannot be cached
                    logger.error(
                        f"Error writing catalog cache: {str(e)}",
                        extra={'error_type': type(e).__name__},
                        exc_info=True
                    )

        tracker.catalog_changed(catalog)
        tracker.flush()

        # Series selection is pruned to names still present in the catalog
        selection = FilterSelection(
            series_set=tracker.selected_series,
            buyin_range=selection.buyin_range,
            active_date=selection.active_date
        )

        now = datetime.now()
        resolver = EventStatusResolver()
        buyin_parser = aggregator.buyin_parser

        grouping = aggregator.grouped_by_series(catalog, selection)
        filtered = aggregator.filtered_and_sorted(catalog, selection)

        duration = time.time() - start_time
        logger.info(
            "Lambda execution completed successfully",
            extra={
                'duration_seconds': round(duration, 2),
                'source': source,
                'catalog_size': len(catalog),
                'matching_events': len(filtered)
            }
        )

        return {
            'statusCode': 200,
            'body': json.dumps({
                'source': source,
                'available_dates': [str(d) for d in aggregator.available_dates(catalog)],
                'filtered_dates': [
                    str(d) for d in aggregator.available_dates_for_filters(catalog, selection)
                ],
                'events': [
                    serialize_event(record, resolver, buyin_parser, now) for record in filtered
                ],
                'series_groups': {
                    name: [record.event_id for record in records]
                    for name, records in grouping.groups.items()
                },
                'sorted_series_names': grouping.sorted_series_names,
                'available_series': tracker.available_series,
                'selected_series': sorted(tracker.selected_series),
                'duration_seconds': round(duration, 2)
            })
        }

    except Exception as e:
        duration = time.time() - start_time

        logger.error(
            f"Lambda execution failed: {str(e)}",
            extra={
                'duration_seconds': round(duration, 2),
                'error_type': type(e).__name__
            },
            exc_info=True
        )

        return {
            'statusCode': 500,
            'body': json.dumps({
                'message': 'Catalog query failed',
                'error': str(e),
                'error_type': type(e).__name__,
                'duration_seconds': round(duration, 2)
            })
        }
