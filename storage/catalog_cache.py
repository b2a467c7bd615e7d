"""Time-bounded local cache for the full event catalog."""
import json
import logging
import threading
import time
from enum import Enum
from typing import Callable, List, Optional, Sequence, Tuple

from botocore.exceptions import ClientError

from processor.constants import CACHE_EXPIRY_HOURS
from processor.models import CachedCatalogSnapshot, EventRecord
from storage.kv_store import KeyValueStore

logger = logging.getLogger(__name__)


class CacheLookup(Enum):
    """Outcome of a cache lookup."""
    FRESH = 'fresh'
    ABSENT = 'absent'
    CORRUPT = 'corrupt'


class EventCatalogCache:
    """
    Stores one catalog snapshot with the time it was captured.

    Snapshots older than the expiry are treated as absent. Corrupt or
    unreadable data is logged and also treated as absent, so callers only
    ever see "records" or "no records".
    """

    CACHE_KEY = 'cached_catalog_events_v2'
    SCHEMA_VERSION = 2
    EXPIRY_SECONDS = CACHE_EXPIRY_HOURS * 3600

    def __init__(self, store: KeyValueStore, clock: Callable[[], float] = time.time):
        """
        Args:
            store: Persistence backend
            clock: Returns the current unix time
        """
        self.store = store
        self.clock = clock
        self._lock = threading.RLock()

    def read(self) -> Optional[List[EventRecord]]:
        """
        Return the cached records, or None on a miss.

        Returns:
            Records in the order they were written, or None when there is
            no snapshot, it has expired, or it cannot be decoded
        """
        state, snapshot = self.lookup()
        if state is not CacheLookup.FRESH:
            return None
        return snapshot.events

    def snapshot(self) -> Optional[CachedCatalogSnapshot]:
        """Return the fresh snapshot including its capture time, or None."""
        state, snapshot = self.lookup()
        return snapshot if state is CacheLookup.FRESH else None

    def lookup(self) -> Tuple[CacheLookup, Optional[CachedCatalogSnapshot]]:
        """
        Look up the snapshot and report why it is or is not usable.

        Returns:
            Tuple of (CacheLookup, snapshot or None)
        """
        with self._lock:
            try:
                captured_at = self.store.get_timestamp(self.CACHE_KEY)
                if captured_at is None:
                    logger.info("No cached catalog snapshot")
                    return CacheLookup.ABSENT, None

                age = self.clock() - captured_at
                if age >= self.EXPIRY_SECONDS:
                    logger.info(f"Cached catalog expired ({int(age)} seconds old)")
                    return CacheLookup.ABSENT, None

                data = self.store.get_bytes(self.CACHE_KEY)
            except (OSError, ClientError) as e:
                logger.warning(f"Failed to read cached catalog: {e}")
                return CacheLookup.CORRUPT, None

            if data is None:
                logger.info("Cached catalog timestamp present without data")
                return CacheLookup.ABSENT, None

            try:
                events = self._deserialize(data)
            except (ValueError, KeyError, TypeError) as e:
                logger.warning(f"Discarding corrupt cached catalog: {e}")
                return CacheLookup.CORRUPT, None

            logger.info(f"Loaded {len(events)} events from cache")
            return CacheLookup.FRESH, CachedCatalogSnapshot(events=events, captured_at=captured_at)

    def write(self, events: Sequence[EventRecord]) -> None:
        """
        Replace the snapshot with events, stamped with the current time.

        Raises:
            OSError, ClientError: If the backend cannot store the data
        """
        payload = self._serialize(events)
        with self._lock:
            self.store.set_bytes(self.CACHE_KEY, payload)
            self.store.set_timestamp(self.CACHE_KEY, self.clock())
        logger.info(f"Cached {len(events)} events")

    def clear(self) -> None:
        with self._lock:
            self.store.delete(self.CACHE_KEY)

    def _serialize(self, events: Sequence[EventRecord]) -> bytes:
        document = {
            'version': self.SCHEMA_VERSION,
            'events': [event.to_dict() for event in events]
        }
        return json.dumps(document).encode('utf-8')

    def _deserialize(self, data: bytes) -> List[EventRecord]:
        # UnicodeDecodeError and JSONDecodeError are both ValueError subclasses
        document = json.loads(data.decode('utf-8'))
        if not isinstance(document, dict):
            raise ValueError("Cached catalog is not an object")

        version = document.get('version')
        if version != self.SCHEMA_VERSION:
            raise ValueError(f"Unsupported cache schema version: {version!r}")

        return [EventRecord.from_dict(item) for item in document['events']]
