"""Calendar scraper for the Flagpole events listing."""
import logging
import time
from datetime import date
from typing import Callable, List, Optional

import requests
from bs4 import BeautifulSoup
from bs4.builder import ParserRejectedMarkup

from config import DEFAULT_LISTING_URL
from processor.errors import ListingFetchError, ParseError
from processor.models import SENTINEL_LATITUDE, SENTINEL_LONGITUDE, Event

logger = logging.getLogger(__name__)

ROW_SELECTOR = '.tribe-common-g-row.tribe-events-calendar-list__event-row'
DATE_SELECTOR = 'time.tribe-events-calendar-list__event-datetime'
FIELD_SELECTORS = {
    'datetime': '.tribe-events-calendar-list__event-datetime',
    'category': '.tribe-events-event-categories a',
    'title': '.tribe-events-calendar-list__event-title',
    'venue': '.tribe-events-calendar-list__event-venue-title',
    'address': '.tribe-events-calendar-list__event-venue-address',
    'description': '.tribe-events-calendar-list__event-description p',
}
LINK_SELECTOR = '.tribe-events-calendar-list__event-title-link'


class FlagpoleCalendarScraper:
    """Scraper for today's events on the Flagpole calendar."""

    def __init__(
        self,
        geocoder,
        listing_url: str = DEFAULT_LISTING_URL,
        timeout: int = 30,
        min_interval: float = 0.1,
        today: Callable[[], date] = date.today
    ):
        """
        Initialize the calendar scraper.

        Args:
            geocoder: Object with a resolve(address) -> (longitude, latitude) method
            listing_url: URL of the events listing page
            timeout: HTTP request timeout in seconds (default: 30)
            min_interval: Minimum seconds between geocoding calls (default: 0.1)
            today: Callable returning the day to keep events for
        """
        self.geocoder = geocoder
        self.listing_url = listing_url
        self.timeout = timeout
        self.min_interval = min_interval
        self.today = today
        self._last_geocode_at: Optional[float] = None

    def fetch_events(self) -> List[Event]:
        """
        Fetch the listing page and extract today's events.

        Returns:
            List of Event objects in listing order

        Raises:
            ListingFetchError: If the listing could not be fetched
            ParseError: If the listing could not be parsed
        """
        logger.info(f"Scraping events from {self.listing_url}")
        html_content = self._fetch_listing_html()
        events = self.parse_events(html_content)
        logger.info(f"Scraped {len(events)} events")
        return events

    def _fetch_listing_html(self) -> str:
        try:
            response = requests.get(self.listing_url, timeout=self.timeout)
        except requests.RequestException as e:
            raise ListingFetchError(f"Failed to fetch events page: {e}") from e

        if response.status_code != 200:
            raise ListingFetchError(
                f"Received non-200 status code: {response.status_code}"
            )
        return response.text

    def parse_events(self, html_content) -> List[Event]:
        """
        Parse today's events out of a listing document.

        Rows without a date attribute for today are skipped. A failed
        geocoding lookup leaves the event in place with sentinel coordinates.

        Args:
            html_content: Listing HTML as text or bytes

        Returns:
            List of Event objects in document order

        Raises:
            ParseError: If the document cannot be parsed as markup
        """
        if not isinstance(html_content, (str, bytes)):
            raise ParseError(
                f"Cannot parse listing of type {type(html_content).__name__}"
            )

        try:
            soup = BeautifulSoup(html_content, 'html.parser')
        except ParserRejectedMarkup as e:
            raise ParseError(f"Failed to parse HTML: {e}") from e

        today_prefix = self.today().strftime('%Y-%m-%d')
        events = []

        for row in soup.select(ROW_SELECTOR):
            try:
                event = self._parse_row(row, today_prefix)
            except Exception as e:
                logger.warning(f"Failed to parse event row: {e}")
                continue
            if event:
                events.append(event)

        return events

    def _parse_row(self, row, today_prefix: str) -> Optional[Event]:
        date_elem = row.select_one(DATE_SELECTOR)
        date_attr = date_elem.get('datetime') if date_elem else None
        if not date_attr or not date_attr.startswith(today_prefix):
            return None

        fields = {
            name: self._text(row, selector)
            for name, selector in FIELD_SELECTORS.items()
        }
        if not fields['title']:
            logger.debug(f"Skipping event row dated {date_attr} without a title")
            return None

        link_elem = row.select_one(LINK_SELECTOR)
        event_link = (link_elem.get('href') or '') if link_elem else ''

        longitude, latitude = self._geocode(fields['address'])

        return Event(
            date=date_attr,
            event_link=event_link,
            latitude=latitude,
            longitude=longitude,
            **fields
        )

    def _text(self, row, selector: str) -> str:
        elem = row.select_one(selector)
        return elem.get_text().strip() if elem else ''

    def _geocode(self, address: str):
        self._wait_for_rate_limit()
        try:
            longitude, latitude = self.geocoder.resolve(address)
            return float(longitude), float(latitude)
        except Exception as e:
            logger.warning(f"Error geocoding address '{address}': {e}")
            return SENTINEL_LONGITUDE, SENTINEL_LATITUDE

    def _wait_for_rate_limit(self) -> None:
        """Sleep so consecutive geocoding calls start min_interval apart."""
        now = time.monotonic()
        if self._last_geocode_at is not None and self.min_interval > 0:
            remaining = self.min_interval - (now - self._last_geocode_at)
            if remaining > 0:
                time.sleep(remaining)
                now = time.monotonic()
        self._last_geocode_at = now
