"""Unit tests for EventProvider."""
import threading
import time
from unittest.mock import Mock

import pytest

from processor.errors import CacheNotFoundError, DecodeError, ListingFetchError
from processor.event_provider import EventProvider
from processor.models import Event
from storage.file_cache import FileCacheStore


def make_event(title, latitude=33.95, longitude=-83.37):
    return Event(
        date='2026-10-17',
        datetime='October 17 @ 8:00 pm',
        category='Music',
        title=title,
        event_link='',
        venue='40 Watt Club',
        address='285 W Washington St, Athens, GA',
        description='',
        latitude=latitude,
        longitude=longitude
    )


@pytest.fixture
def scraped_events():
    return [make_event('Scraped 1'), make_event('Scraped 2')]


@pytest.fixture
def scraper(scraped_events):
    mock_scraper = Mock()
    mock_scraper.fetch_events.return_value = scraped_events
    return mock_scraper


@pytest.fixture
def empty_cache():
    mock_cache = Mock()
    mock_cache.load.side_effect = CacheNotFoundError('No cache file at events.json')
    return mock_cache


class TestEventProvider:
    """Test cases for EventProvider class."""

    def test_missing_cache_scrapes_once(self, empty_cache, scraper, scraped_events):
        """Test a missing cache triggers exactly one scrape and a save."""
        provider = EventProvider(cache_store=empty_cache, scraper=scraper)

        events = provider.get_events()

        assert events == scraped_events
        scraper.fetch_events.assert_called_once()
        empty_cache.save.assert_called_once_with(scraped_events)

    def test_repeated_calls_are_idempotent(self, empty_cache, scraper):
        """Test later calls return the held collection without new work."""
        provider = EventProvider(cache_store=empty_cache, scraper=scraper)

        first = provider.get_events()
        second = provider.get_events()

        assert first == second
        scraper.fetch_events.assert_called_once()
        empty_cache.load.assert_called_once()

    def test_cached_events_are_adopted(self, scraper):
        """Test a non-empty cache is used without scraping."""
        cached = [make_event('Cached')]
        cache = Mock()
        cache.load.return_value = cached
        provider = EventProvider(cache_store=cache, scraper=scraper)

        assert provider.get_events() == cached
        assert provider.get_events() == cached

        cache.load.assert_called_once()
        scraper.fetch_events.assert_not_called()
        cache.save.assert_not_called()

    def test_empty_cache_falls_back_to_scrape(self, scraper, scraped_events):
        """Test an empty cached collection is treated like a miss."""
        cache = Mock()
        cache.load.return_value = []
        provider = EventProvider(cache_store=cache, scraper=scraper)

        assert provider.get_events() == scraped_events
        scraper.fetch_events.assert_called_once()

    def test_corrupt_cache_falls_back_to_scrape(self, scraper, scraped_events):
        """Test an undecodable cache file leads to a fresh scrape."""
        cache = Mock()
        cache.load.side_effect = DecodeError('Malformed events JSON')
        provider = EventProvider(cache_store=cache, scraper=scraper)

        assert provider.get_events() == scraped_events
        scraper.fetch_events.assert_called_once()
        cache.save.assert_called_once_with(scraped_events)

    def test_save_failure_is_not_fatal(self, empty_cache, scraper, scraped_events):
        """Test scraped events are served even if persisting them fails."""
        empty_cache.save.side_effect = OSError('Read-only file system')
        provider = EventProvider(cache_store=empty_cache, scraper=scraper)

        assert provider.get_events() == scraped_events
        assert provider.get_events() == scraped_events
        scraper.fetch_events.assert_called_once()

    def test_scrape_failure_propagates_and_retries(self, empty_cache, scraped_events):
        """Test a failed scrape leaves the provider empty for the next call."""
        scraper = Mock()
        scraper.fetch_events.side_effect = [
            ListingFetchError('Received non-200 status code: 503'),
            scraped_events
        ]
        provider = EventProvider(cache_store=empty_cache, scraper=scraper)

        with pytest.raises(ListingFetchError):
            provider.get_events()
        empty_cache.save.assert_not_called()

        assert provider.get_events() == scraped_events
        assert scraper.fetch_events.call_count == 2
        assert empty_cache.load.call_count == 2

    def test_empty_scrape_is_retried(self, empty_cache):
        """Test an empty scrape result does not stick."""
        scraper = Mock()
        scraper.fetch_events.side_effect = [[], [make_event('Late Addition')]]
        provider = EventProvider(cache_store=empty_cache, scraper=scraper)

        assert provider.get_events() == []
        assert [e.title for e in provider.get_events()] == ['Late Addition']

    def test_returned_list_is_a_copy(self, empty_cache, scraper, scraped_events):
        """Test callers cannot mutate the held collection."""
        provider = EventProvider(cache_store=empty_cache, scraper=scraper)

        events = provider.get_events()
        events.clear()

        assert provider.get_events() == scraped_events

    def test_concurrent_first_calls_scrape_once(self, empty_cache, scraped_events):
        """Test simultaneous first calls share a single scrape."""
        def slow_fetch():
            time.sleep(0.05)
            return list(scraped_events)

        scraper = Mock()
        scraper.fetch_events.side_effect = slow_fetch
        provider = EventProvider(cache_store=empty_cache, scraper=scraper)

        results = []
        barrier = threading.Barrier(8)

        def worker():
            barrier.wait()
            results.append(provider.get_events())

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(results) == 8
        assert all(result == scraped_events for result in results)
        scraper.fetch_events.assert_called_once()
        empty_cache.load.assert_called_once()

    def test_round_trip_through_file_cache(self, tmp_path, scraper, scraped_events):
        """Test a second process loads what the first one scraped."""
        path = str(tmp_path / 'events.json')

        first = EventProvider(cache_store=FileCacheStore(path), scraper=scraper)
        assert first.get_events() == scraped_events

        second_scraper = Mock()
        second = EventProvider(cache_store=FileCacheStore(path), scraper=second_scraper)
        assert second.get_events() == scraped_events
        second_scraper.fetch_events.assert_not_called()

    def test_undecodable_cache_file_falls_back_to_scrape(self, tmp_path, scraper, scraped_events):
        """Test a cache file with invalid UTF-8 is replaced by a fresh scrape."""
        path = tmp_path / 'events.json'
        path.write_bytes(b'[\xff\xfe garbage')
        provider = EventProvider(cache_store=FileCacheStore(str(path)), scraper=scraper)

        assert provider.get_events() == scraped_events
        scraper.fetch_events.assert_called_once()
        assert FileCacheStore(str(path)).load() == scraped_events

    def test_unreadable_cache_path_falls_back_to_scrape(self, tmp_path, scraper, scraped_events):
        """Test a directory at the cache path still serves scraped events."""
        path = tmp_path / 'events.json'
        path.mkdir()
        provider = EventProvider(cache_store=FileCacheStore(str(path)), scraper=scraper)

        assert provider.get_events() == scraped_events
        scraper.fetch_events.assert_called_once()
