import io
from datetime import datetime

import pytest

from vacsearch.cli import (
    clean_html,
    format_date,
    format_multi_search_results,
    format_vacancy_details,
    full_vacancy_details,
    multi_search,
    read_composite_id,
    read_search_params,
)
from vacsearch.models import (
    Area,
    Employer,
    Salary,
    SearchParams,
    SearchVacanciesResult,
    Vacancy,
    VacancyDetails,
)


class FakeManager:
    def __init__(self, results=None, details=None):
        self.results = results
        self.details = details
        self.calls = []

    def search_vacancies(self, params):
        self.calls.append(("search", params))
        return self.results

    def fetch_vacancy_details(self, vacancy_id, source):
        self.calls.append(("details", vacancy_id, source))
        return self.details


def _vacancy(number):
    return Vacancy(
        id=str(number), job=f"job{number}", company="Acme", salary="100", url=f"u{number}"
    )


def test_clean_html_strips_unknown_tags():
    assert clean_html("<b>bold</b>") == "bold"


def test_clean_html_turns_breaks_into_newlines():
    assert clean_html("a<br>b") == "a\nb"


def test_clean_html_turns_list_items_into_bullets():
    assert clean_html("<li>item") == "• item"


def test_clean_html_trims_whitespace():
    assert clean_html("  plain  ") == "plain"


def test_format_date():
    assert format_date(datetime(2024, 3, 5, 9, 7)) == "05.03.2024 09:07"


def test_format_vacancy_details_without_salary():
    text = format_vacancy_details(Vacancy(job="Dev", company="Acme"))
    assert "💰 Зарплата: Salary is nil" in text
    assert "🏢 Dev" in text
    assert "💼 Работодатель: Acme" in text
    assert "📝 Описание:" not in text


def test_format_vacancy_details_truncates_description():
    text = format_vacancy_details(Vacancy(salary="100", description="x" * 2000))
    assert "x" * 1500 + "..." in text
    assert "x" * 1501 not in text
    assert "💰 Зарплата: 100" in text


def test_format_vacancy_details_cleans_description():
    text = format_vacancy_details(Vacancy(description="<b>hello</b>"))
    assert "📝 Описание:\nhello\n" in text


def test_format_multi_search_results_limits_and_counts():
    results = [
        SearchVacanciesResult(vacancies=[_vacancy(n) for n in range(1, 5)], parser_name="HH.ru"),
        SearchVacanciesResult(parser_name="SuperJob.ru", error=RuntimeError("boom")),
    ]
    text = format_multi_search_results(results, 2)
    assert "📊 HH.ru:" in text
    assert "   ✅ Найдено: 4 вакансий" in text
    assert "      1. job1 - 100, company:Acme, URL:[ u1 ], ID:1" in text
    assert "job3" not in text
    assert "      ... и ещё 2" in text
    assert "   ❌ Ошибка: boom" in text
    assert "🎯 Всего найдено: 4 вакансий" in text


def test_format_multi_search_results_no_tail_when_all_shown():
    results = [SearchVacanciesResult(vacancies=[_vacancy(1)], parser_name="HH.ru")]
    text = format_multi_search_results(results, 20)
    assert "и ещё" not in text
    assert "🎯 Всего найдено: 1 вакансий" in text


def test_read_search_params_reads_text_and_count():
    out = io.StringIO()
    params = read_search_params(["python\n", "5\n"], out)
    assert params == SearchParams(text="python", per_page=5)
    assert "Введите поисковый запрос: " in out.getvalue()


@pytest.mark.parametrize("count", ["abc", "-3", "0", ""])
def test_read_search_params_defaults_count(count):
    params = read_search_params(["go", count], io.StringIO())
    assert params.per_page == 20
    assert params.text == "go"


def test_read_search_params_on_empty_input():
    params = read_search_params([], io.StringIO())
    assert params == SearchParams(per_page=20)


def test_read_composite_id_returns_source_and_id():
    out = io.StringIO()
    assert read_composite_id([" 42 ", "HH.ru\n"], out) == ("HH.ru", "42")
    assert "Введите источник (HH.ru/SuperJob.ru): " in out.getvalue()


def test_read_composite_id_fails_on_eof():
    with pytest.raises(ValueError, match="Проблема со сканированием"):
        read_composite_id([], io.StringIO())


def test_read_composite_id_rejects_empty_id():
    with pytest.raises(ValueError, match="не может быть пустым"):
        read_composite_id(["   ", "HH.ru"], io.StringIO())


def test_read_composite_id_fails_without_source():
    with pytest.raises(ValueError, match="неверное имя сервиса"):
        read_composite_id(["42"], io.StringIO())


def test_multi_search_prints_results():
    results = [SearchVacanciesResult(vacancies=[_vacancy(1)], parser_name="HH.ru")]
    manager = FakeManager(results=results)
    out = io.StringIO()
    assert multi_search(manager, ["java", "3"], out) is results
    assert manager.calls == [("search", SearchParams(text="java", per_page=3))]
    assert "📊 HH.ru:" in out.getvalue()


def test_multi_search_raises_on_empty_results():
    with pytest.raises(LookupError, match="поиск не дал результатов"):
        multi_search(FakeManager(results=[]), ["java"], io.StringIO())


def test_multi_search_raises_on_missing_results():
    with pytest.raises(LookupError, match="ошибка данных"):
        multi_search(FakeManager(results=None), ["java"], io.StringIO())


def test_full_vacancy_details_builds_vacancy():
    details = VacancyDetails(
        employer=Employer(id="e", name="Acme"),
        location=Area(id="a", name="Moscow"),
        salary=Salary(from_=1000, to=2000, currency="RUR"),
        description="<p>Great job",
        name="Dev",
        id="42",
        url="u42",
    )
    manager = FakeManager(details=details)
    out = io.StringIO()
    vacancy = full_vacancy_details(manager, ["42", "HH.ru"], out)
    assert manager.calls == [("details", "42", "HH.ru")]
    assert vacancy.salary == "1000"
    assert vacancy.company == "Acme"
    assert vacancy.location == "Moscow"
    assert vacancy.job == "Dev"
    assert "📍 Местоположение: Moscow" in out.getvalue()
    assert "Great job" in out.getvalue()


def test_full_vacancy_details_propagates_input_error():
    manager = FakeManager()
    with pytest.raises(ValueError):
        full_vacancy_details(manager, [""], io.StringIO())
    assert manager.calls == []