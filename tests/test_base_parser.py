import dataclasses
import json
import threading
import time

import pytest
import responses

from vacsearch.base_parser import (
    BaseConfig,
    BaseParser,
    CircuitBreaker,
    CircuitOpenError,
    ParserError,
    ParserFuncs,
    RateLimiter,
    TooManyRequestsError,
)
from vacsearch.config import CircuitBreakerConfig
from vacsearch.models import SearchParams, Vacancy, VacancyDetails

URL = "https://api.example.com/vacancies"


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


def breaker_config(**overrides):
    base = CircuitBreakerConfig(
        failure_threshold=2,
        success_threshold=2,
        half_open_max_requests=1,
        reset_timeout=10.0,
        window_duration=10.0,
    )
    return dataclasses.replace(base, **overrides)


def fail():
    raise ValueError("down")


def make_parser(**overrides):
    config = BaseConfig(
        name="Test",
        base_url=URL,
        timeout=5.0,
        rate_limit=0.001,
        max_concurrent=2,
        circuit_breaker=breaker_config(reset_timeout=60.0, window_duration=60.0),
    )
    return BaseParser(dataclasses.replace(config, **overrides))


FUNCS = ParserFuncs(
    build_url=lambda params: URL,
    parse=json.loads,
    convert=lambda data: [Vacancy(id=str(item["id"]), job=item["name"]) for item in data["items"]],
    convert_details=lambda data: VacancyDetails(id=data["id"], name=data["name"]),
)


def test_breaker_opens_after_threshold():
    clock = FakeClock()
    breaker = CircuitBreaker(breaker_config(), clock=clock)
    for _ in range(2):
        with pytest.raises(ValueError):
            breaker.execute(fail)
    calls = []
    with pytest.raises(CircuitOpenError):
        breaker.execute(lambda: calls.append(1))
    assert calls == []
    assert breaker.state == "open"
    assert breaker.stats == (2, 0, 2)


def test_breaker_forgets_failures_outside_window():
    clock = FakeClock()
    breaker = CircuitBreaker(breaker_config(), clock=clock)
    with pytest.raises(ValueError):
        breaker.execute(fail)
    clock.now = 20.0
    with pytest.raises(ValueError):
        breaker.execute(fail)
    assert breaker.state == "closed"
    assert breaker.execute(lambda: "ok") == "ok"


def test_breaker_half_open_then_closes():
    clock = FakeClock()
    breaker = CircuitBreaker(breaker_config(), clock=clock)
    for _ in range(2):
        with pytest.raises(ValueError):
            breaker.execute(fail)
    clock.now = 10.0
    assert breaker.state == "half-open"
    assert breaker.execute(lambda: 1) == 1
    assert breaker.state == "half-open"
    breaker.execute(lambda: 2)
    assert breaker.state == "closed"


def test_breaker_half_open_failure_reopens():
    clock = FakeClock()
    breaker = CircuitBreaker(breaker_config(), clock=clock)
    for _ in range(2):
        with pytest.raises(ValueError):
            breaker.execute(fail)
    clock.now = 10.0
    with pytest.raises(ValueError):
        breaker.execute(fail)
    assert breaker.state == "open"


def test_breaker_half_open_limits_trials():
    clock = FakeClock()
    breaker = CircuitBreaker(breaker_config(), clock=clock)
    for _ in range(2):
        with pytest.raises(ValueError):
            breaker.execute(fail)
    clock.now = 10.0

    def nested():
        breaker.execute(lambda: None)

    with pytest.raises(TooManyRequestsError):
        breaker.execute(nested)


def test_rate_limiter_rejects_non_positive_interval():
    with pytest.raises(ParserError):
        RateLimiter(0)


def test_rate_limiter_second_call_must_wait():
    limiter = RateLimiter(10.0)
    limiter.wait()
    cancel = threading.Event()
    cancel.set()
    with pytest.raises(ParserError, match="context canceled"):
        limiter.wait(cancel)


def test_rate_limiter_cancel():
    limiter = RateLimiter(10.0)
    limiter.wait()
    cancel = threading.Event()
    threading.Timer(0.05, cancel.set).start()
    start = time.monotonic()
    with pytest.raises(ParserError, match="context canceled"):
        limiter.wait(cancel)
    assert time.monotonic() - start < 5.0


def test_parser_requires_valid_rate_limit():
    with pytest.raises(ParserError):
        make_parser(rate_limit=0.0)


def test_search_vacancies_success():
    parser = make_parser()
    payload = {"items": [{"id": 1, "name": "Dev"}, {"id": 2, "name": "QA"}]}
    with responses.RequestsMock() as rsps:
        rsps.add(responses.GET, URL, json=payload, status=200)
        result = parser.search_vacancies(SearchParams(text="python"), FUNCS)
    assert result == [Vacancy(id="1", job="Dev"), Vacancy(id="2", job="QA")]
    assert parser.circuit_breaker.stats == (1, 1, 0)


def test_search_vacancies_server_error():
    parser = make_parser()
    with responses.RequestsMock() as rsps:
        rsps.add(responses.GET, URL, body="oops", status=500)
        with pytest.raises(ParserError) as info:
            parser.search_vacancies(SearchParams(), FUNCS)
    assert str(info.value) == "operation failed: API server error 500: oops"


def test_search_vacancies_client_error():
    parser = make_parser()
    with responses.RequestsMock() as rsps:
        rsps.add(responses.GET, URL, body="missing", status=404)
        with pytest.raises(ParserError, match="API returned status 404: missing"):
            parser.search_vacancies(SearchParams(), FUNCS)


def test_search_vacancies_build_url_failure():
    parser = make_parser()

    def broken(params):
        raise ValueError("no url")

    with pytest.raises(ParserError, match="build URL failed: no url"):
        parser.search_vacancies(SearchParams(), dataclasses.replace(FUNCS, build_url=broken))


def test_search_vacancies_parse_failure():
    parser = make_parser()
    with responses.RequestsMock() as rsps:
        rsps.add(responses.GET, URL, body="not json", status=200)
        with pytest.raises(ParserError, match="operation failed: parse response failed"):
            parser.search_vacancies(SearchParams(), FUNCS)


def test_search_vacancies_convert_failure():
    parser = make_parser()
    with responses.RequestsMock() as rsps:
        rsps.add(responses.GET, URL, json={"other": []}, status=200)
        with pytest.raises(ParserError, match="convert to universal failed"):
            parser.search_vacancies(SearchParams(), FUNCS)


def test_search_vacancies_circuit_open():
    parser = make_parser()
    with responses.RequestsMock() as rsps:
        rsps.add(responses.GET, URL, body="oops", status=503)
        for _ in range(2):
            with pytest.raises(ParserError, match="API server error 503"):
                parser.search_vacancies(SearchParams(), FUNCS)
        with pytest.raises(ParserError) as info:
            parser.search_vacancies(SearchParams(), FUNCS)
        assert len(rsps.calls) == 2
    assert str(info.value) == "Test is temporarily unavailable (circuit breaker open)"
    assert isinstance(info.value.__cause__, CircuitOpenError)


def test_search_vacancy_details_uses_id_in_url():
    parser = make_parser(base_url=URL + "/")
    with responses.RequestsMock() as rsps:
        rsps.add(responses.GET, URL + "/42", json={"id": "42", "name": "Dev"}, status=200)
        details = parser.search_vacancy_details("42", FUNCS)
    assert details == VacancyDetails(id="42", name="Dev")


def test_search_vacancy_details_error():
    parser = make_parser()
    with responses.RequestsMock() as rsps:
        rsps.add(responses.GET, URL + "/7", body="gone", status=410)
        with pytest.raises(ParserError, match="API returned status 410: gone"):
            parser.search_vacancy_details("7", FUNCS)


def test_semaphore_busy():
    parser = make_parser(max_concurrent=0)
    with pytest.raises(ParserError, match="semaphore timeout: Test API is busy"):
        parser.search_vacancies(SearchParams(), FUNCS)