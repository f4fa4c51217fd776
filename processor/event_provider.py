"""Lock-guarded provider of the current event collection."""
import logging
import threading
from typing import List

from processor.errors import DecodeError, NotFoundError
from processor.models import Event

logger = logging.getLogger(__name__)


class EventProvider:
    """
    Owns the in-memory event collection for the life of the process.

    The first call that finds the collection empty loads it from the cache
    store, or scrapes and persists it if the cache is unusable. Later calls
    return the held collection. The whole check-load-or-scrape sequence runs
    under one lock, so concurrent first callers trigger a single scrape.
    """

    def __init__(self, cache_store, scraper):
        """
        Args:
            cache_store: Object with load() and save(events) methods
            scraper: Object with a fetch_events() method
        """
        self.cache_store = cache_store
        self.scraper = scraper
        self._events: List[Event] = []
        self._lock = threading.Lock()

    def get_events(self) -> List[Event]:
        """
        Return the current event collection, populating it if needed.

        Returns:
            List of Event objects in listing order

        Raises:
            ScrapeError: If the cache is unusable and the scrape fails
        """
        with self._lock:
            if self._events:
                return list(self._events)

            events = self._load_cached()
            if events:
                self._events = events
                return list(self._events)

            # Failure propagates with the collection still empty
            events = self.scraper.fetch_events()
            self._events = events
            self._save(events)
            return list(self._events)

    def _load_cached(self) -> List[Event]:
        try:
            events = self.cache_store.load()
        except NotFoundError:
            logger.info('No cached events found, scraping')
            return []
        except DecodeError as e:
            logger.warning(f"Ignoring unreadable event cache: {e}")
            return []

        logger.info(f"Loaded {len(events)} events from cache")
        return events

    def _save(self, events: List[Event]) -> None:
        try:
            self.cache_store.save(events)
        except OSError as e:
            logger.warning(f"Failed to save events to cache: {e}")
