"""AWS Lambda handlers for the Mapthens events map."""
import json
import logging
import time
from functools import lru_cache
from typing import Dict, Any

from config import Settings
from processor.errors import CacheNotFoundError, ConfigurationError
from processor.event_provider import EventProvider
from scraper.flagpole_calendar import FlagpoleCalendarScraper
from scraper.mapbox_geocoder import MapboxGeocoder
from storage.file_cache import FileCacheStore
from storage.s3_publisher import S3EventPublisher

# LogRecord attributes that are not user-supplied extra fields
_RESERVED_ATTRS = set(vars(logging.LogRecord('', 0, '', 0, '', (), None))) | {'message'}


class JsonFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            'timestamp': self.formatTime(record),
            'level': record.levelname,
            'message': record.getMessage(),
            'logger': record.name
        }

        for key, value in vars(record).items():
            if key not in _RESERVED_ATTRS and not key.startswith('_'):
                log_data[key] = value

        if record.exc_info:
            log_data['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


def setup_logging(log_level: str = 'INFO') -> None:
    """
    Configure the root logger with a single JSON handler.

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


def build_scraper(settings: Settings) -> FlagpoleCalendarScraper:
    geocoder = MapboxGeocoder(
        access_token=settings.mapbox_access_token,
        base_url=settings.geocode_url,
        timeout=settings.timeout_seconds
    )
    return FlagpoleCalendarScraper(
        geocoder=geocoder,
        listing_url=settings.listing_url,
        timeout=settings.timeout_seconds,
        min_interval=settings.geocode_min_interval,
        today=settings.today
    )


@lru_cache(maxsize=None)
def get_application():
    """
    Build the settings and event provider once per Lambda container.

    Returns:
        Tuple of (Settings, EventProvider)

    Raises:
        ConfigurationError: If the environment is incomplete
    """
    settings = Settings.from_env()
    setup_logging(settings.log_level)
    provider = EventProvider(
        cache_store=FileCacheStore(settings.cache_path),
        scraper=build_scraper(settings)
    )
    return settings, provider


def _response(status_code: int, body: Dict[str, Any]) -> Dict[str, Any]:
    return {
        'statusCode': status_code,
        'headers': {
            'Content-Type': 'application/json',
            'Access-Control-Allow-Origin': '*'
        },
        'body': json.dumps(body)
    }


def _request_method(event: Dict[str, Any]) -> str:
    # REST APIs send httpMethod; HTTP APIs (payload v2) nest it in requestContext
    method = event.get('httpMethod')
    if not method:
        http = (event.get('requestContext') or {}).get('http') or {}
        method = http.get('method') or ''
    return str(method).upper()


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    API Gateway handler serving today's events and the Mapbox token.

    Args:
        event: API Gateway proxy event
        context: Lambda context object

    Returns:
        Proxy response with {"events": [...], "mapbox_token": ...}
    """
    logger = logging.getLogger(__name__)

    method = _request_method(event)
    if method != 'GET':
        return _response(405, {'message': 'Method not allowed'})

    try:
        settings, provider = get_application()
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}", exc_info=True)
        return _response(500, {
            'message': f"Server misconfigured: {e}",
            'error_type': type(e).__name__
        })

    start_time = time.time()
    try:
        events = provider.get_events()
    except Exception as e:
        logger.error(
            f"Error fetching events: {e}",
            extra={'error_type': type(e).__name__},
            exc_info=True
        )
        return _response(500, {
            'message': f"Error fetching events: {e}",
            'error_type': type(e).__name__
        })

    logger.info(
        'Served events',
        extra={
            'event_count': len(events),
            'duration_seconds': round(time.time() - start_time, 2)
        }
    )
    return _response(200, {
        'events': [e.to_dict() for e in events],
        'mapbox_token': settings.mapbox_access_token
    })


def scrape_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Scheduled handler that scrapes today's events and uploads them to S3.

    Args:
        event: EventBridge event payload
        context: Lambda context object

    Returns:
        Response dict with statusCode and a summary
    """
    logger = logging.getLogger(__name__)
    start_time = time.time()

    try:
        settings = Settings.from_env()
        setup_logging(settings.log_level)
        publisher = S3EventPublisher(
            bucket=settings.s3_bucket,
            object_key=settings.s3_object_key,
            region=settings.aws_region
        )
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}", exc_info=True)
        return {
            'statusCode': 500,
            'body': json.dumps({
                'message': 'Scrape not configured',
                'error': str(e),
                'error_type': type(e).__name__
            })
        }

    logger.info('Scrape execution started', extra={'bucket': settings.s3_bucket})

    try:
        events = build_scraper(settings).fetch_events()
        key = publisher.publish(events, settings.today())
    except Exception as e:
        duration = time.time() - start_time
        logger.error(
            f"Scrape execution failed: {e}",
            extra={
                'duration_seconds': round(duration, 2),
                'error_type': type(e).__name__
            },
            exc_info=True
        )
        return {
            'statusCode': 500,
            'body': json.dumps({
                'message': 'Scrape failed',
                'error': str(e),
                'error_type': type(e).__name__,
                'duration_seconds': round(duration, 2)
            })
        }

    duration = time.time() - start_time
    unmappable = sum(1 for e in events if not e.is_mappable)
    logger.info(
        'Scrape execution completed successfully',
        extra={
            'duration_seconds': round(duration, 2),
            'events_scraped': len(events),
            'events_unmappable': unmappable,
            'object_key': key
        }
    )
    return {
        'statusCode': 200,
        'body': json.dumps({
            'message': 'Successfully uploaded to s3',
            'statistics': {
                'events_scraped': len(events),
                'events_unmappable': unmappable,
                'object_key': key,
                'duration_seconds': round(duration, 2)
            }
        })
    }


def retrieve_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    API Gateway handler serving the events published to S3 for today.

    Args:
        event: API Gateway proxy event
        context: Lambda context object

    Returns:
        Proxy response with {"events": [...], "mapbox_token": ...}
    """
    logger = logging.getLogger(__name__)

    method = _request_method(event)
    if method != 'GET':
        return _response(405, {'message': 'Method not allowed'})

    try:
        settings = Settings.from_env()
        setup_logging(settings.log_level)
        publisher = S3EventPublisher(
            bucket=settings.s3_bucket,
            object_key=settings.s3_object_key,
            region=settings.aws_region
        )
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}", exc_info=True)
        return _response(500, {
            'message': f"Server misconfigured: {e}",
            'error_type': type(e).__name__
        })

    day = settings.today()
    try:
        events = publisher.fetch(day)
    except CacheNotFoundError as e:
        logger.warning(f"No events published for {day}: {e}")
        return _response(404, {
            'message': f"No events published for {day.isoformat()}",
            'error_type': type(e).__name__
        })
    except Exception as e:
        logger.error(
            f"Error retrieving events: {e}",
            extra={'error_type': type(e).__name__},
            exc_info=True
        )
        return _response(500, {
            'message': f"Error retrieving events: {e}",
            'error_type': type(e).__name__
        })

    logger.info('Served published events', extra={'event_count': len(events)})
    return _response(200, {
        'events': [e.to_dict() for e in events],
        'mapbox_token': settings.mapbox_access_token
    })
