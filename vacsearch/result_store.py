"""In-memory TTL caches of search results, the reverse index and vacancy details."""

from __future__ import annotations

import hashlib
import json
import logging
import threading
import time
from typing import Any, Callable

from .config import CachesConfig
from .models import SearchParams, SearchVacanciesResult, VacancyDetails, VacancyIndex

logger = logging.getLogger(__name__)

_MISSING = object()
_JSON_ESCAPES = {
    "<": "\\u003c",
    ">": "\\u003e",
    "&": "\\u0026",
    "\u2028": "\\u2028",
    "\u2029": "\\u2029",
}


class Cache:
    """Thread-safe key-value store whose entries expire after a time to live."""

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._lock = threading.Lock()
        self._items: dict[str, tuple[Any, float | None]] = {}

    def set(self, key: str, value: Any, ttl: float) -> None:
        """Store ``value`` for ``ttl`` seconds; a ttl of zero or less never expires."""
        expires = self._clock() + ttl if ttl > 0 else None
        with self._lock:
            self._items[key] = (value, expires)

    def _live(self, key: str) -> Any:
        entry = self._items.get(key)
        if entry is None:
            return _MISSING
        value, expires = entry
        if expires is not None and self._clock() >= expires:
            del self._items[key]
            return _MISSING
        return value

    def get(self, key: str, default: Any = None) -> Any:
        """Return the live value under ``key`` or ``default``."""
        with self._lock:
            value = self._live(key)
        return default if value is _MISSING else value

    def __getitem__(self, key: str) -> Any:
        with self._lock:
            value = self._live(key)
        if value is _MISSING:
            raise KeyError(key)
        return value

    def __contains__(self, key: object) -> bool:
        if not isinstance(key, str):
            return False
        with self._lock:
            return self._live(key) is not _MISSING

    def delete(self, key: str) -> None:
        """Remove ``key`` if present."""
        with self._lock:
            self._items.pop(key, None)

    def cleanup(self) -> int:
        """Drop expired entries and return how many were dropped."""
        now = self._clock()
        with self._lock:
            expired = [
                key
                for key, (_, expires) in self._items.items()
                if expires is not None and now >= expires
            ]
            for key in expired:
                del self._items[key]
        return len(expired)

    def __len__(self) -> int:
        self.cleanup()
        with self._lock:
            return len(self._items)


def search_hash(params: SearchParams) -> str:
    """Return the cache key of a search: 32 hex digits of SHA-256 over its parameters."""
    payload = json.dumps(
        {
            "text": params.text,
            "area": params.country,
            "per_page": params.per_page,
            "page": params.page,
        },
        ensure_ascii=False,
        separators=(",", ":"),
    )
    for char, escape in _JSON_ESCAPES.items():
        payload = payload.replace(char, escape)
    digest = hashlib.sha256(payload.encode("utf-8")).digest()
    return digest[:16].hex()


class SearchResultStore:
    """Caches search results, their reverse index and vacancy details."""

    def __init__(
        self,
        search_cache: Cache,
        vacancy_index: Cache,
        vacancy_details: Cache,
        config: CachesConfig,
    ) -> None:
        self.search_cache = search_cache
        self.vacancy_index = vacancy_index
        self.vacancy_details = vacancy_details
        self.config = config

    def get_search_results(self, params: SearchParams) -> list[SearchVacanciesResult] | None:
        """Return cached results of the search ``params``, or None."""
        logger.info("looking up vacancies in cache")
        cached = self.search_cache.get(search_hash(params), _MISSING)
        if cached is _MISSING:
            logger.info("no cached data found")
            return None
        if not isinstance(cached, list):
            logger.warning("cached search data has an unexpected type %s", type(cached))
            return None
        logger.info("cached data found")
        return cached

    def cache_search_results(
        self, params: SearchParams, results: list[SearchVacanciesResult]
    ) -> None:
        """Cache ``results`` under the hash of ``params`` and index their vacancies."""
        key = search_hash(params)
        self.search_cache.set(key, results, self.config.search_cache.ttl)
        self.build_reverse_index(key, results)
        logger.info("search results cached (key: %s)", key)

    def cache_details(self, vacancy_id: str, details: VacancyDetails) -> None:
        """Cache the details of one vacancy under its ID."""
        self.vacancy_details.set(vacancy_id, details, self.config.vacancy_cache.ttl)
        logger.info("vacancy details cached (key: %s)", vacancy_id)

    def build_reverse_index(
        self, search_hash: str, results: list[SearchVacanciesResult]
    ) -> None:
        """Record, for every vacancy, which search and position it came from."""
        ttl = self.config.vacancy_cache.ttl
        for result in results:
            for position, vacancy in enumerate(result.vacancies):
                self.vacancy_index.set(
                    f"{vacancy.source}_{vacancy.id}",
                    VacancyIndex(
                        search_hash=search_hash,
                        parser_name=result.parser_name,
                        index=position,
                    ),
                    ttl,
                )