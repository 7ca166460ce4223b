"""AWS Lambda handler for nearby event search."""
import json
import logging
import math
import os
import time
from typing import Any, Dict, Optional

import requests

from geo.spherical import Coordinate
from loader.data_loader import DataLoader, DataLoadError
from processor.event_processor import EventProcessor
from processor.models import (
    ALL_EVENT_TYPES,
    DEFAULT_RADIUS_METERS,
    DEFAULT_TIME_WINDOW_MINUTES,
    DEFAULT_YEAR,
    SearchParams,
)
from processor.sorting import parse_strategy, sort_events
from processor.time_display import parse_timestamp
from storage.favorites_store import FavoritesStore

DEFAULT_PAGE_SIZE = 50


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

    # Remove existing handlers
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())
    root_logger.addHandler(handler)

    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))


def _flag(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ('1', 'true', 'yes')
    return bool(value)


def build_search_params(
    request: Dict[str, Any],
    default_radius: float,
    default_window: int,
    default_year: int
) -> SearchParams:
    """
    Build SearchParams from a request payload.

    Args:
        request: Event payload from the invoker
        default_radius: Radius when the payload has none
        default_window: Time window when the payload has none
        default_year: Year when the payload has none

    Returns:
        SearchParams for one processing pass

    Raises:
        ValueError: If a parameter is present but invalid
    """
    viewer_location = None
    lat, lon = request.get('lat'), request.get('lon')
    if lat is not None and lon is not None:
        lat, lon = float(lat), float(lon)
        # Non-finite positions mean no usable fix
        if math.isfinite(lat) and math.isfinite(lon):
            viewer_location = Coordinate(lat=lat, lon=lon)

    now = None
    if request.get('now'):
        now = parse_timestamp(request['now'])
        if now is None:
            raise ValueError(f"Invalid now: {request['now']}")

    event_types = ALL_EVENT_TYPES
    requested_types = request.get('event_types')
    if isinstance(requested_types, str):
        requested_types = [requested_types]
    if requested_types:
        if not isinstance(requested_types, (list, tuple)):
            raise ValueError(f"Invalid event_types: {requested_types!r}")
        event_types = frozenset(str(abbr).strip() for abbr in requested_types)

    radius = float(request.get('radius', default_radius))
    if not math.isfinite(radius):
        raise ValueError(f"Invalid radius: {radius}")

    return SearchParams(
        viewer_location=viewer_location,
        radius=radius,
        time_window_minutes=int(request.get('window', default_window)),
        year=int(request.get('year', default_year)),
        now=now,
        event_types=event_types,
        active_only=_flag(request.get('active_only', False)),
        upcoming_only=_flag(request.get('upcoming_only', False)),
        favorites_only=_flag(request.get('favorites_only', False))
    )


def _error_response(
    status_code: int,
    message: str,
    error: Exception,
    start_time: float
) -> Dict[str, Any]:
    return {
        'statusCode': status_code,
        'body': json.dumps({
            'message': message,
            'error': str(error),
            'error_type': type(error).__name__,
            'duration_seconds': round(time.time() - start_time, 2)
        })
    }


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Main Lambda handler: one processing pass for a viewer.

    Args:
        event: Request payload (lat, lon, radius, window, sort, ...)
        context: Lambda context object

    Returns:
        Response dict with statusCode and the ranked page of events
    """
    # Read configuration from environment variables
    base_url = os.environ.get('DATA_BASE_URL') or None
    data_dir = os.environ.get('DATA_DIR') or None
    favorites_table = os.environ.get('FAVORITES_TABLE', '')
    log_level = os.environ.get('LOG_LEVEL', 'INFO')
    default_year = int(os.environ.get('EVENT_YEAR', str(DEFAULT_YEAR)))
    default_radius = float(os.environ.get('RADIUS_METERS', str(DEFAULT_RADIUS_METERS)))
    default_window = int(os.environ.get('TIME_WINDOW_MINUTES', str(DEFAULT_TIME_WINDOW_MINUTES)))
    timeout_seconds = int(os.environ.get('TIMEOUT_SECONDS', '30'))

    setup_logging(log_level)
    logger = logging.getLogger(__name__)

    start_time = time.time()
    request = event or {}

    try:
        params = build_search_params(request, default_radius, default_window, default_year)
        strategy = parse_strategy(request.get('sort'))
        limit = int(request.get('limit', DEFAULT_PAGE_SIZE))
        offset = int(request.get('offset', 0))
        if limit < 1 or offset < 0:
            raise ValueError(f"Invalid page: offset={offset}, limit={limit}")
    except (TypeError, ValueError) as e:
        logger.warning(f"Invalid request parameters: {e}")
        return _error_response(400, 'Invalid request parameters', e, start_time)

    logger.info(
        "Lambda execution started",
        extra={
            'year': params.year,
            'radius': params.radius,
            'window': params.time_window_minutes,
            'sort': strategy.value
        }
    )

    try:
        favorites: Optional[FavoritesStore] = None
        if favorites_table:
            favorites = FavoritesStore(table_name=favorites_table)

        loader = DataLoader(base_url=base_url, data_dir=data_dir, timeout=timeout_seconds)
        processor = EventProcessor(loader=loader, favorites=favorites)

        try:
            processed_events = processor.process_events(params)
        except (requests.RequestException, DataLoadError) as e:
            logger.error(
                f"Failed to load event data: {str(e)}",
                extra={'error_type': type(e).__name__},
                exc_info=True
            )
            return _error_response(500, 'Failed to load event data', e, start_time)

        ranked = sort_events(processed_events, strategy)
        page = ranked[offset:offset + limit]
        stats = processor.get_event_stats(processed_events, params.radius)
        duration = time.time() - start_time

        logger.info(
            "Lambda execution completed successfully",
            extra={
                'duration_seconds': round(duration, 2),
                'events_matched': len(processed_events),
                'events_returned': len(page)
            }
        )

        return {
            'statusCode': 200,
            'body': json.dumps({
                'message': 'Events processed successfully',
                'statistics': {
                    'total_events': stats.total_events,
                    'active_events': stats.active_events,
                    'upcoming_events': stats.upcoming_events,
                    'events_by_type': stats.events_by_type,
                    'average_distance': stats.average_distance,
                    'nearby_events': stats.nearby_events,
                    'duration_seconds': round(duration, 2)
                },
                'sort': strategy.value,
                'offset': offset,
                'limit': limit,
                'events': [processed.to_dict() for processed in page]
            })
        }

    except Exception as e:
        logger.error(
            f"Lambda execution failed: {str(e)}",
            extra={
                'duration_seconds': round(time.time() - start_time, 2),
                'error_type': type(e).__name__
            },
            exc_info=True
        )
        return _error_response(500, 'Event processing failed', e, start_time)
