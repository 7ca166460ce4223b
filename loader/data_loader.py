"""Data loader for event, art and camp datasets."""
import json
import logging
import time
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, TypeVar

import requests

from processor.models import ArtRecord, CampRecord, RawEvent

logger = logging.getLogger(__name__)

Record = TypeVar('Record')


class DataLoadError(Exception):
    """Raised when a dataset is missing or cannot be parsed."""


# Last good payload per URL, kept across warm invocations
_LAST_GOOD: Dict[str, List[Any]] = {}


def _require_list(payload: Any, source: str) -> None:
    if not isinstance(payload, list):
        raise DataLoadError(f"Expected a list of records in {source}")


class DataLoader:
    """Loader for the published JSON datasets."""

    BASE_URL = "https://your-domain.com/resources"
    EVENTS_FILE = "event.json"
    ART_FILE = "art.json"
    CAMPS_FILE = "camp.json"

    MAX_RETRIES = 3
    BASE_DELAY = 1  # seconds

    def __init__(
        self,
        base_url: Optional[str] = None,
        data_dir: Optional[str] = None,
        timeout: int = 30,
        cache: Optional[Dict[str, List[Any]]] = None
    ):
        """
        Initialize the data loader.

        Args:
            base_url: URL prefix the dataset files are served from
            data_dir: Local directory to read the dataset files from instead
            timeout: HTTP request timeout in seconds (default: 30)
            cache: Last good payloads by URL, served when a fetch fails
        """
        self.base_url = (base_url or self.BASE_URL).rstrip('/')
        self.data_dir = Path(data_dir) if data_dir else None
        self.timeout = timeout
        self.cache = _LAST_GOOD if cache is None else cache

    def load_events(self, year: int) -> List[RawEvent]:
        """
        Load events for a year.

        Raises:
            requests.RequestException: If all retry attempts fail
            DataLoadError: If the dataset is missing or malformed
        """
        return self._load(self.EVENTS_FILE, year, RawEvent.from_dict)

    def load_art(self, year: int) -> List[ArtRecord]:
        """Load art installations for a year."""
        return self._load(self.ART_FILE, year, ArtRecord.from_dict)

    def load_camps(self, year: int) -> List[CampRecord]:
        """Load camps for a year."""
        return self._load(self.CAMPS_FILE, year, CampRecord.from_dict)

    def _load(
        self,
        filename: str,
        year: int,
        parse: Callable[[Dict[str, Any]], Record]
    ) -> List[Record]:
        if self.data_dir:
            payload = self._read_local(filename)
            _require_list(payload, filename)
        else:
            payload = self._fetch_with_fallback(filename)

        records = [
            parse(item) for item in payload
            if isinstance(item, dict) and item.get('year') == year
        ]
        logger.info(f"Loaded {len(records)} records from {filename} for {year}")
        return records

    def _fetch_with_fallback(self, filename: str) -> List[Any]:
        """
        Fetch a dataset, falling back to the last good copy on failure.

        Raises:
            requests.RequestException: If all retries fail and nothing is cached
            DataLoadError: If the payload is malformed and nothing is cached
        """
        url = f"{self.base_url}/{filename}"
        try:
            payload = self._fetch_json(filename)
            _require_list(payload, url)
        except (requests.RequestException, DataLoadError) as e:
            cached = self.cache.get(url)
            if cached is None:
                raise
            logger.warning(f"Serving last good copy of {url} after error: {e}")
            return cached

        self.cache[url] = payload
        return payload

    def _read_local(self, filename: str) -> Any:
        path = self.data_dir / filename
        if not path.exists():
            error_msg = f"File not found: {path}"
            logger.error(error_msg)
            raise DataLoadError(error_msg)

        try:
            with open(path, encoding='utf-8') as f:
                return json.load(f)
        except json.JSONDecodeError as e:
            raise DataLoadError(f"Invalid JSON in {path}: {e}") from e

    def _fetch_json(self, filename: str) -> Any:
        """
        Fetch a dataset file with retry logic.

        Args:
            filename: Dataset file name under the base URL

        Returns:
            Decoded JSON payload

        Raises:
            requests.RequestException: If all retry attempts fail
            DataLoadError: If the response body is not valid JSON
        """
        url = f"{self.base_url}/{filename}"

        for attempt in range(self.MAX_RETRIES):
            try:
                logger.info(f"Fetching {url} (attempt {attempt + 1}/{self.MAX_RETRIES})")
                response = requests.get(
                    url,
                    headers={'Accept': 'application/json', 'Cache-Control': 'no-cache'},
                    timeout=self.timeout
                )
                response.raise_for_status()
                break

            except requests.RequestException as e:
                if attempt < self.MAX_RETRIES - 1:
                    # Exponential backoff
                    delay = self.BASE_DELAY * (2 ** attempt)
                    logger.warning(
                        f"Request failed (attempt {attempt + 1}/{self.MAX_RETRIES}): {e}. "
                        f"Retrying in {delay} seconds..."
                    )
                    time.sleep(delay)
                else:
                    logger.error(
                        f"All {self.MAX_RETRIES} retry attempts failed. Last error: {e}"
                    )
                    raise

        try:
            return response.json()
        except ValueError as e:
            raise DataLoadError(f"Invalid JSON from {url}: {e}") from e
