"""Console front end of the parsers manager: prompts, readers and report formatting."""

from __future__ import annotations

from datetime import datetime
from typing import IO, Iterable, Iterator, Protocol

from .models import SearchParams, SearchVacanciesResult, Vacancy, VacancyDetails

RULE = "=" * 50
DEFAULT_PER_PAGE = 20
MAX_DESCRIPTION = 1500


class SearchManager(Protocol):
    """What the console commands need from the parsers manager."""

    def search_vacancies(self, params: SearchParams) -> list[SearchVacanciesResult]: ...

    def fetch_vacancy_details(self, vacancy_id: str, source: str) -> VacancyDetails: ...


def clean_html(text: str) -> str:
    """Turn paragraph, line-break and list tags into text and drop all other tags."""
    text = text.replace("<p>", "\n").replace("<br>", "\n").replace("<li>", "• ")
    kept: list[str] = []
    in_tag = False
    for char in text:
        if char == "<":
            in_tag = True
        elif char == ">":
            in_tag = False
        elif not in_tag:
            kept.append(char)
    return "".join(kept).strip()


def format_date(moment: datetime) -> str:
    """Format ``moment`` as DD.MM.YYYY HH:MM."""
    return moment.strftime("%d.%m.%Y %H:%M")


def format_vacancy_details(vacancy: Vacancy) -> str:
    """Render one vacancy as a console card."""
    salary = "Salary is nil" if vacancy.salary is None else vacancy.salary
    lines = [
        "",
        RULE,
        f"🏢 {vacancy.job}",
        RULE,
        f"💼 Работодатель: {vacancy.company}",
        f"💰 Зарплата: {salary}",
        f"📍 Местоположение: {vacancy.location}",
        f"🔗 Ссылка: {vacancy.url}",
        f"🆔 ID: {vacancy.id}",
    ]
    description = vacancy.description
    if len(description) > MAX_DESCRIPTION:
        description = description[:MAX_DESCRIPTION] + "..."
    if description:
        lines += ["", "📝 Описание:", clean_html(description)]
    lines.append(RULE)
    return "\n".join(lines) + "\n"


def _format_duration(seconds: float) -> str:
    if seconds < 1:
        return f"{seconds * 1000:.3f}ms"
    return f"{seconds:.3f}s"


def format_multi_search_results(
    results: Iterable[SearchVacanciesResult], results_per_page: int
) -> str:
    """Render the results of a multi-parser search, at most ``results_per_page`` each."""
    lines: list[str] = []
    total = 0
    for result in results:
        lines.append(f"\n📊 {result.parser_name}:")
        lines.append(f"   ⏱️  Время: {_format_duration(result.duration)}")
        if result.error is not None:
            lines.append(f"   ❌ Ошибка: {result.error}")
            continue
        found = len(result.vacancies)
        lines.append(f"   ✅ Найдено: {found} вакансий")
        total += found
        for number, vacancy in enumerate(result.vacancies[: max(results_per_page, 0)], start=1):
            salary = vacancy.salary if vacancy.salary is not None else ""
            lines.append(
                f"      {number}. {vacancy.job} - {salary}, company:{vacancy.company}, "
                f"URL:[ {vacancy.url} ], ID:{vacancy.id}"
            )
        if found > results_per_page:
            lines.append(f"      ... и ещё {found - results_per_page}")
    lines.append(f"\n🎯 Всего найдено: {total} вакансий")
    return "\n".join(lines) + "\n"


def _next_line(lines: Iterator[str]) -> str | None:
    line = next(lines, None)
    return None if line is None else line.strip()


def read_search_params(lines: Iterable[str], out: IO[str]) -> SearchParams:
    """Prompt on ``out`` and read a search query and a per-source count from ``lines``."""
    source = iter(lines)
    out.write("\n🌐 Мульти-поиск вакансий\n")
    params = SearchParams()

    out.write("Введите поисковый запрос: ")
    text = _next_line(source)
    if text is not None:
        params.text = text

    out.write("Количество вакансий на источник (max 50): ")
    count = _next_line(source)
    if count:
        try:
            value = int(count)
        except ValueError:
            value = 0
        if value > 0:
            params.per_page = value

    if params.per_page == 0:
        params.per_page = DEFAULT_PER_PAGE
    return params


def read_composite_id(lines: Iterable[str], out: IO[str]) -> tuple[str, str]:
    """Prompt on ``out`` and read a vacancy ID and its source; return (source, vacancy_id)."""
    source_lines = iter(lines)
    out.write("Введите ID вакансии: ")
    vacancy_id = _next_line(source_lines)
    if vacancy_id is None:
        raise ValueError("❌ Проблема со сканированием ввода")
    if not vacancy_id:
        raise ValueError("❌ ID вакансии не может быть пустым")

    out.write("Введите источник (HH.ru/SuperJob.ru): ")
    source = _next_line(source_lines)
    if source is None:
        raise ValueError("❌ ввели неверное имя сервиса")
    return source, vacancy_id


def multi_search(
    manager: SearchManager, lines: Iterable[str], out: IO[str]
) -> list[SearchVacanciesResult]:
    """Read search parameters, search every parser and print the report."""
    params = read_search_params(lines, out)
    results = manager.search_vacancies(params)
    if results is None:
        raise LookupError("ошибка данных")
    if not results:
        raise LookupError("поиск не дал результатов")
    out.write(format_multi_search_results(results, params.per_page))
    return results


def full_vacancy_details(manager: SearchManager, lines: Iterable[str], out: IO[str]) -> Vacancy:
    """Read a vacancy ID and source, fetch its details and print them."""
    source, vacancy_id = read_composite_id(lines, out)
    details = manager.fetch_vacancy_details(vacancy_id, source)
    vacancy = Vacancy(
        id=details.id,
        job=details.name,
        company=details.employer.name,
        salary=str(details.salary.from_),
        location=details.location.name,
        url=details.url,
        description=details.description,
    )
    out.write(format_vacancy_details(vacancy))
    return vacancy