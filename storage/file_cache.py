"""On-disk JSON cache of the most recently scraped events."""
import json
import logging
import os
import tempfile
from typing import List

from processor.errors import CacheNotFoundError, DecodeError
from processor.models import Event

logger = logging.getLogger(__name__)


def encode_events(events: List[Event]) -> str:
    """Serialize events as a pretty-printed JSON array."""
    return json.dumps([event.to_dict() for event in events], indent=2)


def decode_events(data) -> List[Event]:
    """
    Deserialize a JSON array of events.

    Args:
        data: JSON text or bytes

    Returns:
        List of Event objects in array order

    Raises:
        DecodeError: If the data is not a JSON array of event objects
    """
    try:
        items = json.loads(data)
    except ValueError as e:
        raise DecodeError(f"Malformed events JSON: {e}") from e

    if not isinstance(items, list):
        raise DecodeError('Events JSON must be an array')

    return [Event.from_dict(item) for item in items]


class FileCacheStore:
    """Cache store backed by a single JSON file."""

    def __init__(self, path: str = 'events.json'):
        self.path = path
        logger.info(f"Initialized FileCacheStore at: {path}")

    def load(self) -> List[Event]:
        """
        Load the cached event collection.

        Returns:
            List of Event objects

        Raises:
            CacheNotFoundError: If the cache file does not exist
            DecodeError: If the cache file is unreadable or not a valid event collection
        """
        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                data = f.read()
        except FileNotFoundError as e:
            raise CacheNotFoundError(f"No cache file at {self.path}") from e
        except UnicodeDecodeError as e:
            raise DecodeError(f"Cache file {self.path} is not UTF-8: {e}") from e
        except OSError as e:
            raise DecodeError(f"Cannot read cache file {self.path}: {e}") from e

        events = decode_events(data)
        logger.info(f"Loaded {len(events)} events from {self.path}")
        return events

    def save(self, events: List[Event]) -> None:
        """
        Overwrite the cache file with the given events.

        The file is written to a temporary sibling and renamed into place,
        so a reader never sees a partially written cache.

        Args:
            events: Events to persist

        Raises:
            OSError: If the file could not be written
        """
        directory = os.path.dirname(os.path.abspath(self.path))
        fd, tmp_path = tempfile.mkstemp(
            dir=directory, prefix='.events-', suffix='.tmp'
        )
        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                f.write(encode_events(events))
            os.chmod(tmp_path, 0o644)
            os.replace(tmp_path, self.path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

        logger.info(f"Saved {len(events)} events to {self.path}")
