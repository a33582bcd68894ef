"""Domain models shared by the parsers and the parsers manager."""

from __future__ import annotations

import queue
from dataclasses import dataclass, field
from datetime import datetime


@dataclass
class SearchParams:
    """Parameters of a vacancy search."""

    text: str = ""
    country: str = ""
    per_page: int = 0
    page: int = 0


@dataclass
class Vacancy:
    """A vacancy in the source-independent form."""

    id: str = ""
    job: str = ""
    company: str = ""
    salary: str | None = None
    currency: str = ""
    location: str = ""
    experience: str = ""
    schedule: str = ""
    url: str = ""
    source: str = ""
    description: str = ""
    published_at: datetime | None = None


@dataclass
class SearchVacanciesResult:
    """What one parser returned for a search; duration is in seconds."""

    vacancies: list[Vacancy] = field(default_factory=list)
    parser_name: str = ""
    search_hash: str = ""
    error: Exception | None = None
    duration: float = 0.0


@dataclass
class Employer:
    """An employer."""

    id: str = ""
    name: str = ""


@dataclass
class Area:
    """A location."""

    id: str = ""
    name: str = ""


@dataclass
class Salary:
    """A salary range."""

    from_: int = 0
    to: int = 0
    currency: str = ""
    gross: bool = False


@dataclass
class VacancyDetails:
    """Full details of one vacancy."""

    employer: Employer = field(default_factory=Employer)
    location: Area = field(default_factory=Area)
    salary: Salary = field(default_factory=Salary)
    description: str = ""
    name: str = ""
    id: str = ""
    url: str = ""


@dataclass
class VacancyIndex:
    """Where a vacancy sits inside a cached search result."""

    search_hash: str = ""
    parser_name: str = ""
    index: int = 0
    created_at: datetime | None = None


@dataclass
class JobSearchVacanciesResult:
    """Outcome of a vacancy list search job."""

    results: list[SearchVacanciesResult] = field(default_factory=list)
    error: Exception | None = None


@dataclass
class SearchVacanciesJob:
    """A queued vacancy list search."""

    id: str = ""
    params: SearchParams = field(default_factory=SearchParams)
    results: queue.Queue[JobSearchVacanciesResult] = field(
        default_factory=lambda: queue.Queue(maxsize=1)
    )
    created_at: datetime | None = None


@dataclass
class JobSearchVacancyDetailsResult:
    """Outcome of a vacancy details job."""

    result: VacancyDetails = field(default_factory=VacancyDetails)
    error: Exception | None = None


@dataclass
class SearchVacancyDetailsJob:
    """A queued request for one vacancy's details."""

    id: str = ""
    vacancy_id: str = ""
    parser_name: str = ""
    results: queue.Queue[JobSearchVacancyDetailsResult] = field(
        default_factory=lambda: queue.Queue(maxsize=1)
    )