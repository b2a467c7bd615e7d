"""Key-value persistence used by the catalog cache."""
import logging
import os
import re
import tempfile
from abc import ABC, abstractmethod
from typing import Optional

logger = logging.getLogger(__name__)


class KeyValueStore(ABC):
    """Interface for byte and timestamp storage keyed by name."""

    @abstractmethod
    def get_bytes(self, key: str) -> Optional[bytes]:
        """Return the bytes stored under key, or None if absent."""
        ...

    @abstractmethod
    def set_bytes(self, key: str, value: bytes) -> None:
        """Store bytes under key, replacing any previous value."""
        ...

    @abstractmethod
    def get_timestamp(self, key: str) -> Optional[float]:
        """Return the unix timestamp stored under key, or None if absent."""
        ...

    @abstractmethod
    def set_timestamp(self, key: str, value: float) -> None:
        """Store a unix timestamp under key."""
        ...

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove key if present."""
        ...


class FileKeyValueStore(KeyValueStore):
    """Local directory store; each key is one file replaced atomically."""

    KEY_PATTERN = re.compile(r'^[A-Za-z0-9_.-]+$')
    TIMESTAMP_SUFFIX = '.ts'

    def __init__(self, directory: str):
        """
        Initialize the store, creating the directory if needed.

        Args:
            directory: Directory holding the cache files
        """
        self.directory = directory
        os.makedirs(directory, exist_ok=True)
        logger.info(f"Initialized FileKeyValueStore in: {directory}")

    def get_bytes(self, key: str) -> Optional[bytes]:
        try:
            with open(self._path(key), 'rb') as f:
                return f.read()
        except FileNotFoundError:
            return None

    def set_bytes(self, key: str, value: bytes) -> None:
        self._atomic_write(self._path(key), value)

    def get_timestamp(self, key: str) -> Optional[float]:
        raw = self.get_bytes(key + self.TIMESTAMP_SUFFIX)
        if raw is None:
            return None
        try:
            return float(raw.decode('ascii'))
        except (UnicodeDecodeError, ValueError):
            logger.warning(f"Ignoring malformed timestamp for key: {key}")
            return None

    def set_timestamp(self, key: str, value: float) -> None:
        self.set_bytes(key + self.TIMESTAMP_SUFFIX, repr(float(value)).encode('ascii'))

    def delete(self, key: str) -> None:
        for path in (self._path(key), self._path(key + self.TIMESTAMP_SUFFIX)):
            try:
                os.remove(path)
            except FileNotFoundError:
                continue

    def _path(self, key: str) -> str:
        if not self.KEY_PATTERN.match(key):
            raise ValueError(f"Invalid cache key: {key!r}")
        return os.path.join(self.directory, key)

    def _atomic_write(self, path: str, value: bytes) -> None:
        fd, tmp_path = tempfile.mkstemp(dir=self.directory, prefix='.tmp-')
        try:
            with os.fdopen(fd, 'wb') as f:
                f.write(value)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, path)
        except Exception:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise
