"""Exception hierarchy for the scrape, geocode and cache pipeline."""
from typing import Optional


class MapthensError(Exception):
    """Base class for all pipeline errors."""


class ConfigurationError(MapthensError):
    """Required configuration (credential, sink location) is missing or invalid."""


class TransportError(MapthensError):
    """A remote call failed before a response was received."""


class UpstreamError(MapthensError):
    """A remote call returned a non-success status."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class DecodeError(MapthensError):
    """A response body or cache file could not be decoded."""


class NotFoundError(MapthensError):
    """A lookup produced no result."""


class CacheNotFoundError(NotFoundError):
    """No persisted event collection exists."""


class ScrapeError(MapthensError):
    """A whole scrape attempt failed."""


class ListingFetchError(ScrapeError):
    """The listing document could not be fetched."""


class ParseError(ScrapeError):
    """The listing document could not be parsed as markup."""
