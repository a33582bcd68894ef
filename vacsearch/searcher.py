"""Parser health tracking and concurrent searching across parsers."""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, replace
from typing import Iterable, Protocol

from .models import SearchParams, SearchVacanciesResult, Vacancy
from .result_store import search_hash

logger = logging.getLogger(__name__)


class Parser(Protocol):
    """What the pool needs from a parser."""

    name: str

    def search_vacancies(self, params: SearchParams) -> list[Vacancy]: ...


@dataclass
class ParserStatus:
    """Health of one parser."""

    name: str
    healthy: bool = True
    last_error: Exception | None = None
    last_checked: float | None = None
    failures: int = 0


class StatusManager:
    """Tracks whether each parser's last request succeeded."""

    def __init__(self, names: Iterable[str] = ()) -> None:
        self._lock = threading.Lock()
        self._statuses: dict[str, ParserStatus] = {name: ParserStatus(name) for name in names}
        self.stopped = False

    def update_status(self, name: str, success: bool, error: Exception | None) -> None:
        """Record the outcome of a request to parser ``name``."""
        with self._lock:
            status = self._statuses.setdefault(name, ParserStatus(name))
            status.healthy = success
            status.last_error = None if success else error
            status.last_checked = time.time()
            status.failures = 0 if success else status.failures + 1

    def healthy_parsers(self) -> list[str]:
        """Names of the healthy parsers, in registration order."""
        with self._lock:
            return [name for name, status in self._statuses.items() if status.healthy]

    def status(self, name: str) -> ParserStatus | None:
        """A snapshot of the status of ``name``, or None if it is unknown."""
        with self._lock:
            status = self._statuses.get(name)
            return None if status is None else replace(status)

    def is_healthy(self, name: str) -> bool:
        """Whether ``name`` is known and healthy."""
        status = self.status(name)
        return status is not None and status.healthy

    def stop(self) -> None:
        """Mark the manager as stopped."""
        self.stopped = True


class ParserPool:
    """The registered parsers together with their health statuses."""

    def __init__(self, parsers: Iterable[Parser], status_manager: StatusManager | None = None) -> None:
        self.parsers = list(parsers)
        self.status_manager = status_manager

    def names(self) -> list[str]:
        """Names of all registered parsers."""
        return [parser.name for parser in self.parsers]

    def healthy_names(self) -> list[str]:
        """Names of the parsers the status manager considers healthy."""
        if self.status_manager is None:
            return []
        return self.status_manager.healthy_parsers()

    def select_for_search(self) -> list[str]:
        """Healthy parsers, or every parser when none is healthy."""
        healthy = self.healthy_names()
        if healthy:
            logger.info("healthy parsers: %s", healthy)
            return healthy
        names = self.names()
        logger.warning("all parsers are unhealthy, trying all of them: %s", names)
        return names

    def alive_parsers(self, names: Iterable[str]) -> list[Parser]:
        """The parsers whose names appear in ``names``, in that order."""
        return [parser for name in names for parser in self.parsers if parser.name == name]

    def find(self, name: str) -> Parser | None:
        """The parser called ``name``, or None."""
        return next((parser for parser in self.parsers if parser.name == name), None)

    def update_status(self, name: str, success: bool, error: Exception | None) -> None:
        """Record the outcome of a request to ``name``."""
        if self.status_manager is not None:
            self.status_manager.update_status(name, success, error)

    def update_all(self, success: bool) -> None:
        """Record the same outcome for every parser."""
        if self.status_manager is not None:
            for name in self.names():
                self.status_manager.update_status(name, success, None)

    def _search_one(self, parser: Parser, params: SearchParams, key: str) -> SearchVacanciesResult:
        start = time.monotonic()
        error: Exception | None = None
        vacancies: list[Vacancy] = []
        try:
            vacancies = parser.search_vacancies(params)
        except Exception as exc:
            error = exc
        duration = time.monotonic() - start
        self.update_status(parser.name, error is None, error)
        return SearchVacanciesResult(
            vacancies=vacancies,
            parser_name=parser.name,
            search_hash=key,
            error=error,
            duration=duration,
        )

    def search(
        self, params: SearchParams, names: Iterable[str], timeout: float | None = None
    ) -> list[SearchVacanciesResult]:
        """Search with the named parsers at once, waiting at most ``timeout`` seconds.

        Results come in completion order; parsers that miss the deadline get a
        result whose error is a TimeoutError.
        """
        parsers = self.alive_parsers(names)
        if not parsers:
            return []
        key = search_hash(params)
        executor = ThreadPoolExecutor(max_workers=len(parsers), thread_name_prefix="parser-search")
        pending: dict[Future[SearchVacanciesResult], Parser] = {
            executor.submit(self._search_one, parser, params, key): parser for parser in parsers
        }
        deadline = None if timeout is None else time.monotonic() + timeout
        results: list[SearchVacanciesResult] = []
        try:
            while pending:
                remaining = None if deadline is None else max(0.0, deadline - time.monotonic())
                done, _ = wait(pending, timeout=remaining, return_when=FIRST_COMPLETED)
                if not done:
                    break
                for future in done:
                    pending.pop(future)
                    results.append(future.result())
            for parser in pending.values():
                results.append(
                    SearchVacanciesResult(
                        parser_name=parser.name, error=TimeoutError("timeout exceeded")
                    )
                )
        finally:
            executor.shutdown(wait=False)
        return results