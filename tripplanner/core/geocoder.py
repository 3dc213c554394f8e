"""
OpenStreetMap (Nominatim) geocoding with an injectable result cache.

Only successful lookups are cached. A failed lookup (network error, bad
status, empty result) returns None and leaves the cache untouched so a
later call can succeed once the provider recovers.
"""

from __future__ import annotations

import logging
import threading
import time
from collections import OrderedDict
from collections.abc import MutableMapping
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Iterator

import requests

from tripplanner.core.errors import ProviderUnavailable
from tripplanner.core.schemas import Coordinate, GeocodeResult
from tripplanner.core.settings import Settings, get_settings

logger = logging.getLogger(__name__)

TRAILING_PUNCTUATION = ".,;:!?"


def normalize_place_name(name: str) -> str:
    """Trim whitespace, collapse inner runs of spaces and strip trailing punctuation."""
    collapsed = " ".join(name.split())
    return collapsed.rstrip(TRAILING_PUNCTUATION + " ").strip()


def place_key(name: str) -> str:
    """Stable lookup key for a place name (normalized, case-insensitive)."""
    return normalize_place_name(name).casefold()


class LRUCache(MutableMapping):
    """Bounded mapping that evicts the least recently used entry."""

    def __init__(self, maxsize: int = 2048) -> None:
        if maxsize <= 0:
            raise ValueError("maxsize must be positive")
        self.maxsize = maxsize
        self._data: OrderedDict[str, Any] = OrderedDict()
        self._lock = threading.Lock()

    def __getitem__(self, key: str) -> Any:
        with self._lock:
            value = self._data[key]
            self._data.move_to_end(key)
            return value

    def __setitem__(self, key: str, value: Any) -> None:
        with self._lock:
            self._data[key] = value
            self._data.move_to_end(key)
            while len(self._data) > self.maxsize:
                self._data.popitem(last=False)

    def __delitem__(self, key: str) -> None:
        with self._lock:
            del self._data[key]

    def __iter__(self) -> Iterator[str]:
        with self._lock:
            return iter(list(self._data))

    def __len__(self) -> int:
        return len(self._data)


class NominatimProvider:
    """Thin client for the Nominatim search endpoint."""

    def __init__(
        self,
        url: str,
        user_agent: str,
        timeout: float = 10,
        min_interval: float = 1.0,
        session: requests.Session | None = None,
    ) -> None:
        self.url = url
        self.user_agent = user_agent
        self.timeout = timeout
        self.min_interval = min_interval
        self.session = session or requests.Session()
        self._last_request_time = 0.0
        self._rate_lock = threading.Lock()

    def _rate_limit(self) -> None:
        """Keep at least `min_interval` seconds between requests (Nominatim policy)."""
        if self.min_interval <= 0:
            return
        with self._rate_lock:
            elapsed = time.monotonic() - self._last_request_time
            if elapsed < self.min_interval:
                time.sleep(self.min_interval - elapsed)
            self._last_request_time = time.monotonic()

    def search(self, query: str) -> list[dict[str, Any]]:
        """
        Search for a place by free text.

        Returns:
            Raw result dicts (at most one), possibly empty

        Raises:
            ProviderUnavailable: on network failure, timeout, non-2xx status
                or an undecodable body
        """
        self._rate_limit()
        params = {"q": query, "format": "json", "limit": 1, "addressdetails": 1}
        headers = {"User-Agent": self.user_agent}
        try:
            response = self.session.get(
                self.url, params=params, headers=headers, timeout=self.timeout
            )
            response.raise_for_status()
            results = response.json()
        except requests.RequestException as e:
            raise ProviderUnavailable(f"Nominatim request failed for '{query}': {e}") from e
        except ValueError as e:
            raise ProviderUnavailable(f"Nominatim returned invalid JSON for '{query}'") from e

        if not isinstance(results, list):
            raise ProviderUnavailable(f"Unexpected Nominatim payload for '{query}'")
        return results


def _parse_result(raw: dict[str, Any]) -> GeocodeResult | None:
    try:
        coordinate = Coordinate(lat=float(raw["lat"]), lon=float(raw["lon"]))
    except (KeyError, TypeError, ValueError):
        return None

    address = raw.get("address") or {}
    city = (
        address.get("city")
        or address.get("town")
        or address.get("village")
        or address.get("county")
    )
    return GeocodeResult(
        coordinate=coordinate,
        display_name=raw.get("display_name", ""),
        city=city,
        state=address.get("state"),
        country=address.get("country"),
    )


class Geocoder:
    """Resolves place names to coordinates, caching successful lookups."""

    def __init__(
        self,
        provider: Any,
        cache: MutableMapping[str, GeocodeResult] | None = None,
        max_workers: int = 4,
    ) -> None:
        self.provider = provider
        self.cache: MutableMapping[str, GeocodeResult] = cache if cache is not None else {}
        self.max_workers = max(1, max_workers)

    def _lookup(self, query: str) -> GeocodeResult | None:
        key = place_key(query)
        if not key:
            return None

        cached = self.cache.get(key)
        if cached is not None:
            return cached

        try:
            results = self.provider.search(normalize_place_name(query))
        except ProviderUnavailable as e:
            logger.warning(f"Geocoding provider error for '{query}': {e}")
            return None

        if not results:
            logger.info(f"No geocoding results for '{query}'")
            return None

        result = _parse_result(results[0])
        if result is None:
            logger.warning(f"Malformed geocoding result for '{query}': {results[0]!r}")
            return None

        self.cache[key] = result
        return result

    def resolve(self, place_name: str, context: str | None = None) -> GeocodeResult | None:
        """
        Resolve a place name to coordinates.

        Args:
            place_name: Free-text place name (e.g., "Lonavala")
            context: Optional broader area tried first (e.g., "Maharashtra"),
                falling back to the bare name

        Returns:
            GeocodeResult, or None if the place could not be resolved
        """
        if not isinstance(place_name, str) or not normalize_place_name(place_name):
            return None

        queries = []
        if context and normalize_place_name(context):
            queries.append(f"{normalize_place_name(place_name)}, {normalize_place_name(context)}")
        queries.append(place_name)

        for query in queries:
            result = self._lookup(query)
            if result is not None:
                return result
        return None

    def resolve_many(
        self, place_names: list[str], context: str | None = None
    ) -> list[GeocodeResult | None]:
        """Resolve several names concurrently; results follow input order."""
        if not place_names:
            return []
        with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
            return list(pool.map(lambda name: self.resolve(name, context), place_names))


_geocoder: Geocoder | None = None


def build_geocoder(settings: Settings) -> Geocoder:
    provider = NominatimProvider(
        url=settings.nominatim_url,
        user_agent=settings.nominatim_user_agent,
        timeout=settings.geocode_timeout_seconds,
        min_interval=settings.nominatim_min_interval_seconds,
    )
    return Geocoder(
        provider,
        cache=LRUCache(maxsize=settings.geocode_cache_size),
        max_workers=settings.geocode_max_workers,
    )


def get_geocoder() -> Geocoder:
    """Process-wide geocoder, created on first use."""
    global _geocoder
    if _geocoder is None:
        _geocoder = build_geocoder(get_settings())
    return _geocoder
