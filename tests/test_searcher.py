import threading

import pytest

from vacsearch.models import SearchParams, Vacancy
from vacsearch.result_store import search_hash
from vacsearch.searcher import ParserPool, StatusManager


class FakeParser:
    def __init__(self, name, vacancies=(), error=None, gate=None):
        self.name = name
        self.vacancies = list(vacancies)
        self.error = error
        self.gate = gate
        self.calls = 0

    def search_vacancies(self, params):
        self.calls += 1
        if self.gate is not None:
            self.gate.wait(5)
        if self.error is not None:
            raise self.error
        return self.vacancies


@pytest.fixture
def pool():
    parsers = [
        FakeParser("HH.ru", [Vacancy(id="1", source="HH.ru")]),
        FakeParser("SuperJob.ru", [Vacancy(id="2", source="SuperJob.ru")]),
    ]
    return ParserPool(parsers, StatusManager(p.name for p in parsers))


def test_names_and_find(pool):
    assert pool.names() == ["HH.ru", "SuperJob.ru"]
    assert pool.find("SuperJob.ru") is pool.parsers[1]
    assert pool.find("missing") is None


def test_alive_parsers_follow_requested_order(pool):
    alive = pool.alive_parsers(["SuperJob.ru", "unknown", "HH.ru"])
    assert [p.name for p in alive] == ["SuperJob.ru", "HH.ru"]


def test_select_prefers_healthy(pool):
    assert pool.select_for_search() == ["HH.ru", "SuperJob.ru"]
    pool.update_status("HH.ru", False, RuntimeError("down"))
    assert pool.select_for_search() == ["SuperJob.ru"]


def test_select_falls_back_to_all(pool):
    pool.update_all(False)
    assert pool.healthy_names() == []
    assert pool.select_for_search() == ["HH.ru", "SuperJob.ru"]


def test_without_status_manager_nothing_is_healthy():
    pool = ParserPool([FakeParser("HH.ru")])
    assert pool.healthy_names() == []
    assert pool.select_for_search() == ["HH.ru"]


def test_search_collects_every_parser(pool):
    params = SearchParams(text="go")
    results = pool.search(params, pool.names(), timeout=5)
    by_name = {r.parser_name: r for r in results}
    assert set(by_name) == {"HH.ru", "SuperJob.ru"}
    assert by_name["HH.ru"].vacancies == pool.parsers[0].vacancies
    assert all(r.search_hash == search_hash(params) for r in results)
    assert all(r.error is None and r.duration >= 0 for r in results)


def test_search_error_marks_parser_unhealthy():
    failure = RuntimeError("boom")
    parsers = [FakeParser("HH.ru", error=failure), FakeParser("SuperJob.ru")]
    status = StatusManager(p.name for p in parsers)
    pool = ParserPool(parsers, status)
    results = pool.search(SearchParams(), pool.names(), timeout=5)
    by_name = {r.parser_name: r for r in results}
    assert by_name["HH.ru"].error is failure
    assert by_name["HH.ru"].vacancies == []
    assert status.healthy_parsers() == ["SuperJob.ru"]
    assert status.status("HH.ru").last_error is failure


def test_search_timeout_reports_slow_parser():
    gate = threading.Event()
    parsers = [FakeParser("HH.ru", gate=gate), FakeParser("SuperJob.ru")]
    pool = ParserPool(parsers, StatusManager(p.name for p in parsers))
    try:
        results = pool.search(SearchParams(), pool.names(), timeout=0.2)
    finally:
        gate.set()
    by_name = {r.parser_name: r for r in results}
    assert isinstance(by_name["HH.ru"].error, TimeoutError)
    assert str(by_name["HH.ru"].error) == "timeout exceeded"
    assert by_name["SuperJob.ru"].error is None


def test_search_only_uses_named_parsers(pool):
    results = pool.search(SearchParams(), ["SuperJob.ru"], timeout=5)
    assert [r.parser_name for r in results] == ["SuperJob.ru"]
    assert pool.parsers[0].calls == 0


def test_status_manager_recovers_after_success():
    status = StatusManager(["HH.ru"])
    status.update_status("HH.ru", False, RuntimeError("x"))
    assert not status.is_healthy("HH.ru")
    status.update_status("HH.ru", True, None)
    assert status.is_healthy("HH.ru")
    assert status.status("HH.ru").failures == 0
    assert status.status("other") is None