"""Runtime configuration for the Mapthens events pipeline."""
import os
from dataclasses import dataclass
from datetime import date, datetime
from typing import Mapping, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from processor.errors import ConfigurationError

DEFAULT_LISTING_URL = 'https://flagpole.com/events/'
DEFAULT_GEOCODE_URL = 'https://api.mapbox.com/search/geocode/v6/forward'


@dataclass(frozen=True)
class Settings:
    """Configuration built once at startup and passed to each component."""
    mapbox_access_token: str
    listing_url: str = DEFAULT_LISTING_URL
    geocode_url: str = DEFAULT_GEOCODE_URL
    cache_path: str = 'events.json'
    timeout_seconds: int = 30
    geocode_min_interval: float = 0.1
    log_level: str = 'INFO'
    timezone: str = ''
    s3_bucket: str = ''
    s3_object_key: str = 'events.json'
    aws_region: str = 'us-east-1'

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> 'Settings':
        """
        Read settings from environment variables.

        Args:
            environ: Mapping to read from (default: os.environ)

        Returns:
            Settings object

        Raises:
            ConfigurationError: If MAPBOX_ACCESS_TOKEN is unset or a value is invalid
        """
        if environ is None:
            environ = os.environ

        token = environ.get('MAPBOX_ACCESS_TOKEN', '').strip()
        if not token:
            raise ConfigurationError('MAPBOX_ACCESS_TOKEN not set')

        settings = cls(
            mapbox_access_token=token,
            listing_url=environ.get('LISTING_URL', DEFAULT_LISTING_URL),
            geocode_url=environ.get('GEOCODE_URL', DEFAULT_GEOCODE_URL),
            cache_path=environ.get('CACHE_PATH', 'events.json'),
            timeout_seconds=_parse_number(environ, 'TIMEOUT_SECONDS', '30', int),
            geocode_min_interval=_parse_number(
                environ, 'GEOCODE_MIN_INTERVAL', '0.1', float
            ),
            log_level=environ.get('LOG_LEVEL', 'INFO'),
            timezone=environ.get('TIMEZONE', ''),
            s3_bucket=environ.get('S3_BUCKET', ''),
            s3_object_key=environ.get('S3_OBJECT_KEY', 'events.json'),
            aws_region=environ.get('AWS_REGION', 'us-east-1'),
        )

        if settings.timezone:
            try:
                ZoneInfo(settings.timezone)
            except (ZoneInfoNotFoundError, ValueError) as e:
                raise ConfigurationError(
                    f"Unknown TIMEZONE '{settings.timezone}'"
                ) from e

        return settings

    def today(self) -> date:
        """Current calendar day in the configured timezone, or process-local."""
        if self.timezone:
            return datetime.now(ZoneInfo(self.timezone)).date()
        return date.today()


def _parse_number(environ, name, default, cast):
    raw = environ.get(name, default)
    try:
        value = cast(raw)
    except ValueError as e:
        raise ConfigurationError(f"{name} must be a number, got '{raw}'") from e
    if value < 0:
        raise ConfigurationError(f"{name} must not be negative, got '{raw}'")
    return value
