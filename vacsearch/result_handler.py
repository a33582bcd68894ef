"""Classifying failed searches and falling back to cached results."""

from __future__ import annotations

from .base_parser import CircuitOpenError, TooManyRequestsError
from .models import SearchParams, SearchVacanciesResult
from .result_store import SearchResultStore


class SearchOutcomeError(Exception):
    """A search failed; ``results`` holds whatever could still be obtained."""

    def __init__(self, message: str, results: list[SearchVacanciesResult]) -> None:
        super().__init__(message)
        self.results = results


def is_circuit_breaker_error(error: BaseException) -> bool:
    """Whether ``error`` or any error it was raised from comes from a circuit breaker."""
    seen: set[int] = set()
    current: BaseException | None = error
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        if isinstance(current, (CircuitOpenError, TooManyRequestsError)):
            return True
        current = current.__cause__ or current.__context__
    return "circuit breaker" in str(error)


def handle_search_result(
    results: list[SearchVacanciesResult],
    error: Exception | None,
    params: SearchParams,
    store: SearchResultStore,
) -> list[SearchVacanciesResult]:
    """Return ``results`` if the search succeeded, otherwise raise SearchOutcomeError.

    With partial results the error carries them; with none it carries cached
    results of the same search if there are any.
    """
    if error is None:
        return results
    if results:
        if is_circuit_breaker_error(error):
            message = f"частичные результаты (Parser manager circuit breaker): {error}"
        else:
            message = str(error)
        raise SearchOutcomeError(message, results) from error
    cached = store.get_search_results(params)
    if cached is not None:
        raise SearchOutcomeError(f"данные из кэша: {error}", cached) from error
    raise SearchOutcomeError(
        f"Не удалось найти данные в кэше, ошибка: : {error}", []
    ) from error