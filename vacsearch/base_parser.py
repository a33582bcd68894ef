"""Shared machinery of the vacancy parsers: HTTP, rate limiting, circuit breaking."""

from __future__ import annotations

import enum
import logging
import threading
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Callable, TypeVar

import requests
from requests.adapters import HTTPAdapter

from .config import CircuitBreakerConfig
from .models import SearchParams, Vacancy, VacancyDetails

logger = logging.getLogger(__name__)

T = TypeVar("T")

SEMAPHORE_TIMEOUT = 2.0


class ParserError(Exception):
    """Raised when a parser cannot fetch or decode data."""


class CircuitOpenError(ParserError):
    """Raised when the circuit breaker rejects a call because it is open."""


class TooManyRequestsError(ParserError):
    """Raised when a half-open circuit breaker already has its trial calls."""


class _State(enum.Enum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half-open"


class CircuitBreaker:
    """Stops calling a failing service for a while.

    Closed: calls pass; ``failure_threshold`` failures within ``window_duration``
    open it. Open: calls are rejected until ``reset_timeout`` passes. Half-open:
    up to ``half_open_max_requests`` trial calls at a time; ``success_threshold``
    successes close it, any failure opens it again.
    """

    def __init__(
        self, config: CircuitBreakerConfig, clock: Callable[[], float] = time.monotonic
    ) -> None:
        self._config = config
        self._clock = clock
        self._lock = threading.Lock()
        self._state = _State.CLOSED
        self._failures: deque[float] = deque()
        self._opened_at = 0.0
        self._half_open_in_flight = 0
        self._half_open_successes = 0
        self._generation = 0
        self._total_requests = 0
        self._total_successes = 0
        self._total_failures = 0

    @property
    def state(self) -> str:
        """The current state: "closed", "open" or "half-open"."""
        with self._lock:
            self._refresh()
            return self._state.value

    @property
    def stats(self) -> tuple[int, int, int]:
        """Total executed calls, successes and failures."""
        with self._lock:
            return self._total_requests, self._total_successes, self._total_failures

    def execute(self, operation: Callable[[], T]) -> T:
        """Run ``operation`` under the breaker and return its result."""
        generation, trial = self._before()
        try:
            result = operation()
        except Exception:
            self._after(False, generation, trial)
            raise
        self._after(True, generation, trial)
        return result

    def _refresh(self) -> None:
        if (
            self._state is _State.OPEN
            and self._clock() - self._opened_at >= self._config.reset_timeout
        ):
            self._switch(_State.HALF_OPEN)

    def _switch(self, state: _State) -> None:
        self._state = state
        self._generation += 1
        self._half_open_in_flight = 0
        self._half_open_successes = 0
        self._failures.clear()
        if state is _State.OPEN:
            self._opened_at = self._clock()

    def _before(self) -> tuple[int, bool]:
        with self._lock:
            self._refresh()
            if self._state is _State.OPEN:
                raise CircuitOpenError("circuit breaker is open")
            trial = self._state is _State.HALF_OPEN
            if trial:
                if self._half_open_in_flight >= max(self._config.half_open_max_requests, 1):
                    raise TooManyRequestsError("too many requests in half-open circuit breaker")
                self._half_open_in_flight += 1
            self._total_requests += 1
            return self._generation, trial

    def _after(self, success: bool, generation: int, trial: bool) -> None:
        with self._lock:
            if success:
                self._total_successes += 1
            else:
                self._total_failures += 1
            if generation != self._generation:
                return
            if trial:
                self._half_open_in_flight -= 1
                if not success:
                    self._switch(_State.OPEN)
                    return
                self._half_open_successes += 1
                if self._half_open_successes >= max(self._config.success_threshold, 1):
                    self._switch(_State.CLOSED)
                return
            if success:
                return
            now = self._clock()
            self._failures.append(now)
            window = self._config.window_duration
            if window > 0:
                while self._failures and now - self._failures[0] > window:
                    self._failures.popleft()
            if len(self._failures) >= max(self._config.failure_threshold, 1):
                self._switch(_State.OPEN)


class RateLimiter:
    """Lets calls through no more often than once per ``interval`` seconds."""

    def __init__(self, interval: float, clock: Callable[[], float] = time.monotonic) -> None:
        if interval <= 0:
            raise ParserError(f"invalid rate limit interval {interval!r}: must be positive")
        self.interval = interval
        self._clock = clock
        self._lock = threading.Lock()
        self._next = float("-inf")

    def wait(self, cancel: threading.Event | None = None) -> None:
        """Block until the next slot; raise ParserError if ``cancel`` is set first."""
        if cancel is not None and cancel.is_set():
            raise ParserError("context canceled while waiting for rate limiter")
        with self._lock:
            now = self._clock()
            slot = max(now, self._next)
            self._next = slot + self.interval
        delay = slot - now
        if delay <= 0:
            return
        if cancel is not None:
            if cancel.wait(delay):
                raise ParserError("context canceled while waiting for rate limiter")
        else:
            time.sleep(delay)


@dataclass
class BaseConfig:
    """Settings of one parser instance; durations are in seconds."""

    name: str = ""
    base_url: str = ""
    health_endpoint: str = ""
    api_key: str = ""
    timeout: float = 0.0
    rate_limit: float = 0.0
    max_concurrent: int = 0
    circuit_breaker: CircuitBreakerConfig = field(default_factory=CircuitBreakerConfig)
    max_idle_conns: int = 0
    idle_conn_timeout: float = 0.0
    tls_handshake_timeout: float = 0.0
    response_header_timeout: float = 0.0
    expect_continue_timeout: float = 0.0


@dataclass
class ParserFuncs:
    """The source-specific steps of a request."""

    build_url: Callable[[SearchParams], str] | None = None
    parse: Callable[[bytes], Any] | None = None
    convert: Callable[[Any], list[Vacancy]] | None = None
    convert_details: Callable[[Any], VacancyDetails] | None = None


def _create_session(config: BaseConfig) -> requests.Session:
    session = requests.Session()
    adapter = HTTPAdapter(
        pool_connections=max(config.max_idle_conns, 1),
        pool_maxsize=max(config.max_concurrent, 1),
    )
    session.mount("http://", adapter)
    session.mount("https://", adapter)
    return session


def _join_url(base: str, vacancy_id: str) -> str:
    return f"{base.rstrip('/')}/{vacancy_id}"


def _require(step: Callable[..., T] | None, what: str) -> Callable[..., T]:
    if step is None:
        raise ParserError(f"{what} is not configured")
    return step


class BaseParser:
    """Common request pipeline shared by the source-specific parsers."""

    def __init__(self, config: BaseConfig) -> None:
        self.rate_limiter = RateLimiter(config.rate_limit)
        self.name = config.name
        self.base_url = config.base_url
        self.health_endpoint = config.health_endpoint
        self.api_key = config.api_key
        self.timeout = config.timeout or None
        self.session = _create_session(config)
        self.circuit_breaker = CircuitBreaker(config.circuit_breaker)
        self.max_concurrent = config.max_concurrent
        self._semaphore = threading.BoundedSemaphore(max(config.max_concurrent, 0))

    def search_vacancies(self, params: SearchParams, funcs: ParserFuncs) -> list[Vacancy]:
        """Search vacancies at the source and return them in the common form."""
        try:
            url = _require(funcs.build_url, "URL builder")(params)
        except Exception as exc:
            raise ParserError(f"build URL failed: {exc}") from exc
        parse = funcs.parse
        convert = funcs.convert

        def operation() -> list[Vacancy]:
            logger.info("search URL: %s", url)
            parsed = self._fetch(url, parse)
            try:
                return _require(convert, "converter")(parsed)
            except Exception as exc:
                raise ParserError(f"convert to universal failed: {exc}") from exc

        return self._run(operation)

    def search_vacancy_details(self, vacancy_id: str, funcs: ParserFuncs) -> VacancyDetails:
        """Fetch the details of one vacancy from the source."""
        url = _join_url(self.base_url, vacancy_id)
        parse = funcs.parse
        convert_details = funcs.convert_details

        def operation() -> VacancyDetails:
            parsed = self._fetch(url, parse)
            try:
                return _require(convert_details, "details converter")(parsed)
            except Exception as exc:
                raise ParserError(f"convert of details - failed: {exc}") from exc

        return self._run(operation)

    def _run(self, operation: Callable[[], T]) -> T:
        try:
            return self.circuit_breaker.execute(operation)
        except CircuitOpenError as exc:
            total, successes, failures = self.circuit_breaker.stats
            logger.warning(
                "%s circuit breaker open - totalReq=%d, totalSuccess=%d, totalFailures=%d",
                self.name,
                total,
                successes,
                failures,
            )
            raise ParserError(
                f"{self.name} is temporarily unavailable (circuit breaker open)"
            ) from exc
        except Exception as exc:
            raise ParserError(f"operation failed: {exc}") from exc

    def _fetch(self, url: str, parse: Callable[[bytes], Any] | None) -> Any:
        if not self._semaphore.acquire(timeout=SEMAPHORE_TIMEOUT):
            raise ParserError(f"semaphore timeout: {self.name} API is busy")
        try:
            self.rate_limiter.wait()
            body = self._get(url)
            try:
                return _require(parse, "response parser")(body)
            except Exception as exc:
                raise ParserError(f"parse response failed: {exc}") from exc
        finally:
            self._semaphore.release()

    def _get(self, url: str) -> bytes:
        try:
            response = self.session.get(url, timeout=self.timeout)
        except requests.RequestException as exc:
            raise ParserError(f"HTTP request failed: {exc}") from exc
        with response:
            if response.status_code != 200:
                text = response.content.decode("utf-8", errors="replace")
                if 500 <= response.status_code < 600:
                    raise ParserError(f"API server error {response.status_code}: {text}")
                raise ParserError(f"API returned status {response.status_code}: {text}")
            try:
                return response.content
            except requests.RequestException as exc:
                raise ParserError(f"read response failed: {exc}") from exc