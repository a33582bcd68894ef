"""Queued jobs of the parsers manager and helpers to enqueue and await them."""

from __future__ import annotations

import logging
import queue
import threading
import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from .models import SearchParams

logger = logging.getLogger(__name__)

_ENQUEUE_PAUSE = 0.05
_RESULT_POLL = 0.05


class JobError(Exception):
    """Raised when a job cannot be queued or its result cannot be obtained."""


@dataclass
class JobOutput:
    """What a finished job reports."""

    success: bool
    data: Any = None
    error: Exception | None = None


@dataclass
class BaseJob:
    """A unit of work taken from the queue by one worker."""

    id: str = ""
    created_at: datetime | None = None
    results: queue.Queue[JobOutput] = field(
        default_factory=lambda: queue.Queue(maxsize=1), repr=False, compare=False
    )
    _lock: threading.Lock = field(
        default_factory=threading.Lock, init=False, repr=False, compare=False
    )
    _completed: bool = field(default=False, init=False, repr=False, compare=False)

    def complete(self, data: Any, error: Exception | None) -> None:
        """Publish the job's outcome; only the first call has any effect."""
        with self._lock:
            if self._completed:
                return
            self._completed = True
        output = JobOutput(success=error is None, data=data, error=error)
        try:
            self.results.put_nowait(output)
        except queue.Full:
            logger.warning("job %s: result slot is already taken", self.id)


@dataclass
class SearchJob(BaseJob):
    """A job that searches vacancies in every available parser."""

    params: SearchParams = field(default_factory=SearchParams)


@dataclass
class FetchDetailsJob(BaseJob):
    """A job that fetches the details of one vacancy from one source."""

    source: str = ""
    vacancy_id: str = ""


def _new_id() -> str:
    return str(uuid.uuid4())


def new_search_job(params: SearchParams) -> SearchJob:
    """Create a search job for ``params``."""
    return SearchJob(id=_new_id(), created_at=datetime.now(), params=params)


def new_fetch_details_job(source: str, vacancy_id: str) -> FetchDetailsJob:
    """Create a job fetching the details of ``vacancy_id`` from ``source``."""
    return FetchDetailsJob(
        id=_new_id(), created_at=datetime.now(), source=source, vacancy_id=vacancy_id
    )


def try_enqueue(
    job_queue: queue.Queue[Any],
    job: BaseJob,
    timeout: float,
    cancel: threading.Event | None = None,
) -> bool:
    """Put ``job`` on ``job_queue``, retrying while it is full.

    Returns False once ``timeout`` seconds have passed or ``cancel`` is set.
    """
    start = time.monotonic()
    while True:
        try:
            job_queue.put_nowait(job)
            return True
        except queue.Full:
            pass
        if time.monotonic() - start > timeout:
            return False
        if cancel is not None:
            if cancel.wait(_ENQUEUE_PAUSE):
                return False
        else:
            time.sleep(_ENQUEUE_PAUSE)


def wait_job_result(
    job: BaseJob,
    timeout: float,
    expected_type: type | tuple[type, ...],
    cancel: threading.Event | None = None,
) -> Any:
    """Wait for ``job`` to finish and return its data.

    The job's own error is raised as is; a timeout, a cancellation or data of
    an unexpected type raise JobError.
    """
    deadline = time.monotonic() + timeout
    while True:
        remaining = deadline - time.monotonic()
        try:
            output = job.results.get(timeout=max(0.0, min(remaining, _RESULT_POLL)))
            break
        except queue.Empty:
            pass
        if cancel is not None and cancel.is_set():
            raise JobError("context canceled")
        if time.monotonic() >= deadline:
            raise JobError("таймаут выполнения поиска")
    if output.error is not None:
        raise output.error
    if not isinstance(output.data, expected_type):
        raise JobError("неверный тип результата")
    return output.data