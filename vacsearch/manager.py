"""The parsers manager: a job queue served by workers that search the parsers."""

from __future__ import annotations

import logging
import math
import queue
import threading
import time
from dataclasses import dataclass
from typing import Any, Protocol

from .base_parser import CircuitBreaker
from .config import Config
from .jobs import (
    BaseJob,
    FetchDetailsJob,
    SearchJob,
    new_fetch_details_job,
    new_search_job,
    try_enqueue,
    wait_job_result,
)
from .models import SearchParams, SearchVacanciesResult, Vacancy, VacancyDetails
from .result_handler import SearchOutcomeError, handle_search_result
from .result_store import Cache, SearchResultStore
from .searcher import ParserPool, StatusManager

logger = logging.getLogger(__name__)

ENQUEUE_TIMEOUT = 5.0
RESULT_TIMEOUT = 30.0
SHUTDOWN_TIMEOUT = 10.0
SEMAPHORE_SLOT_TIMEOUT = 0.2
_WORKER_POLL = 0.05


class ManagerError(Exception):
    """Raised when the parsers manager cannot be built or cannot serve a request."""


class ManagedParser(Protocol):
    """What the manager needs from a parser."""

    name: str

    def search_vacancies(self, params: SearchParams) -> list[Vacancy]: ...

    def search_vacancy_details(self, vacancy_id: str) -> VacancyDetails: ...


@dataclass(frozen=True)
class LoadSettings:
    """How many workers, semaphore slots and queue places the manager has."""

    num_of_workers: int
    semaphore_size: int
    queue_size: int
    semaphore_timeout: float


def load_settings(num_cpu_cores: int) -> LoadSettings:
    """Derive the manager's load limits from the number of CPU cores."""
    workers = num_cpu_cores * 2
    semaphore_size = int(math.ceil(0.7 * workers))
    return LoadSettings(
        num_of_workers=workers,
        semaphore_size=semaphore_size,
        queue_size=semaphore_size * 3,
        semaphore_timeout=SEMAPHORE_SLOT_TIMEOUT,
    )


class ParsersManager:
    """Queues search and details jobs and serves them with a pool of workers."""

    def __init__(
        self,
        config: Config,
        num_cpu_cores: int,
        search_cache: Cache | None,
        vacancy_index: Cache | None,
        vacancy_details: Cache | None,
        status_manager: StatusManager | None,
        *parsers: ManagedParser,
    ) -> None:
        settings = load_settings(num_cpu_cores)
        if status_manager is None:
            raise ManagerError("ParsersStatusManager обязателен")
        if not parsers:
            raise ManagerError("нужен хотя бы один парсер")
        if search_cache is None or vacancy_index is None or vacancy_details is None:
            raise ManagerError("кэши обязательны")

        self.config = config
        self.settings = settings
        self.status_manager = status_manager
        self.pool = ParserPool(parsers, status_manager)
        self.store = SearchResultStore(search_cache, vacancy_index, vacancy_details, config.cache)
        self.circuit_breaker = CircuitBreaker(config.manager.circuit_breaker)
        self._semaphore = threading.BoundedSemaphore(max(settings.semaphore_size, 1))
        self._jobs: queue.Queue[BaseJob] = queue.Queue(maxsize=max(settings.queue_size, 1))
        self._stop = threading.Event()
        self._shutdown_done = False
        self._workers = [
            threading.Thread(
                target=self._worker, args=(number,), name=f"search-worker-{number}", daemon=True
            )
            for number in range(settings.num_of_workers)
        ]
        for worker in self._workers:
            worker.start()

    def __enter__(self) -> ParsersManager:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.shutdown()

    def parser_names(self) -> list[str]:
        """Names of the registered parsers."""
        return self.pool.names()

    def search_vacancies(self, params: SearchParams) -> list[SearchVacanciesResult]:
        """Queue a search over every available parser and wait for its results."""
        job = new_search_job(params)
        self._enqueue(job)
        return wait_job_result(job, RESULT_TIMEOUT, list)

    def fetch_vacancy_details(self, vacancy_id: str, source: str) -> VacancyDetails:
        """Queue a request for the details of one vacancy and wait for them."""
        job = new_fetch_details_job(source, vacancy_id)
        self._enqueue(job)
        return wait_job_result(job, RESULT_TIMEOUT, VacancyDetails)

    def shutdown(self) -> bool:
        """Stop the workers; return whether all of them stopped in time."""
        if self._shutdown_done:
            return all(not worker.is_alive() for worker in self._workers)
        logger.info("initiating shutdown")
        self._stop.set()
        deadline = time.monotonic() + SHUTDOWN_TIMEOUT
        for worker in self._workers:
            worker.join(max(0.0, deadline - time.monotonic()))
        stopped = all(not worker.is_alive() for worker in self._workers)
        self.status_manager.stop()
        self._shutdown_done = True
        if stopped:
            logger.info("all workers stopped gracefully")
        else:
            logger.warning("shutdown timeout, some workers may still be running")
        return stopped

    def _enqueue(self, job: BaseJob) -> None:
        if self._stop.is_set():
            raise ManagerError("❌ Менеджер парсеров остановлен")
        if not try_enqueue(self._jobs, job, ENQUEUE_TIMEOUT, self._stop):
            raise ManagerError("❌ Джоба не была добавлена в очередь")

    def _worker(self, number: int) -> None:
        while not self._stop.is_set():
            try:
                job = self._jobs.get(timeout=_WORKER_POLL)
            except queue.Empty:
                continue
            logger.debug("worker #%d took a job from the queue", number)
            if isinstance(job, SearchJob):
                self._process_search_job(job)
            elif isinstance(job, FetchDetailsJob):
                self._process_details_job(job)

    def _semaphore_timeout_error(self) -> ManagerError:
        return ManagerError(
            "❌ Таймаут ожидания свободного слота глобального семафора менеджера парсеров"
        )

    def _process_search_job(self, job: SearchJob) -> None:
        if not self._semaphore.acquire(timeout=self.settings.semaphore_timeout):
            job.complete(None, self._semaphore_timeout_error())
            return
        try:
            results: list[SearchVacanciesResult] = []
            error: Exception | None = None
            try:
                results = self.circuit_breaker.execute(lambda: self._execute_search(job.params))
            except Exception as exc:
                error = exc
            try:
                outcome = handle_search_result(results, error, job.params, self.store)
            except SearchOutcomeError as exc:
                data, failure = exc.results, exc
            else:
                data, failure = outcome, None
        finally:
            self._semaphore.release()
        job.complete(data, failure)

    def _process_details_job(self, job: FetchDetailsJob) -> None:
        if not self._semaphore.acquire(timeout=self.settings.semaphore_timeout):
            job.complete(None, self._semaphore_timeout_error())
            return
        try:
            try:
                details = self.circuit_breaker.execute(
                    lambda: self._search_vacancy_details(job.vacancy_id, job.source)
                )
            except Exception as exc:
                data, failure = None, exc
            else:
                data, failure = details, None
        finally:
            self._semaphore.release()
        job.complete(data, failure)

    def _execute_search(self, params: SearchParams) -> list[SearchVacanciesResult]:
        cached = self.store.get_search_results(params)
        if cached is not None:
            return cached
        names = self.pool.select_for_search()
        if not names:
            raise ManagerError("❌ Нет доступных парсеров для поиска")
        results = self.pool.search(params, names, self.config.api.conc_search_timeout)
        successful = [result for result in results if result.error is None and result.vacancies]
        if successful:
            self.store.cache_search_results(params, successful)
        return results

    def _search_vacancy_details(self, vacancy_id: str, source: str) -> VacancyDetails:
        cached = self.store.vacancy_details.get(vacancy_id)
        if cached is not None:
            if not isinstance(cached, VacancyDetails):
                raise ManagerError(
                    "⚠️  Type assertion для кэшированных данных деталей вакансии -  не удался"
                )
            return cached
        parser = self.pool.find(source) if self.status_manager.is_healthy(source) else None
        if parser is None:
            raise ManagerError(f"parser {source!r} is not available")
        details = parser.search_vacancy_details(vacancy_id)
        self.store.cache_details(vacancy_id, details)
        return details