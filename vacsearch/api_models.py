"""Response models of the HH.ru and SuperJob vacancy APIs."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable

SalaryFormatter = Callable[[int, int, str], str]

NOT_SPECIFIED = "не указана"


def _mapping(data: Any, what: str) -> dict[str, Any]:
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"cannot decode {what} from {type(data).__name__}")
    return data


def _text(data: dict[str, Any], key: str) -> str:
    value = data.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValueError(f"field {key!r}: expected a string, got {type(value).__name__}")
    return value


def _integer(data: dict[str, Any], key: str) -> int:
    value = data.get(key)
    if value is None:
        return 0
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"field {key!r}: expected an integer, got {type(value).__name__}")
    return value


def _flag(data: dict[str, Any], key: str) -> bool:
    value = data.get(key)
    if value is None:
        return False
    if not isinstance(value, bool):
        raise ValueError(f"field {key!r}: expected a boolean, got {type(value).__name__}")
    return value


def _format_range(low: int, high: int, currency: str, format_salary: SalaryFormatter) -> str:
    if low == 0 and high == 0:
        return NOT_SPECIFIED
    if low > 0 and high > 0:
        return format_salary(low, high, currency)
    if low > 0:
        return format_salary(low, 0, currency)
    return format_salary(0, high, currency)


@dataclass
class HHSalary:
    """Salary range in an HH.ru response."""

    from_: int = 0
    to: int = 0
    currency: str = ""
    gross: bool = False


@dataclass
class HHEmployer:
    """Employer in an HH.ru response."""

    id: str = ""
    name: str = ""


@dataclass
class HHArea:
    """Location in an HH.ru response."""

    id: str = ""
    name: str = ""


def _salary(data: Any) -> HHSalary:
    raw = _mapping(data, "salary")
    return HHSalary(
        from_=_integer(raw, "from"),
        to=_integer(raw, "to"),
        currency=_text(raw, "currency"),
        gross=_flag(raw, "gross"),
    )


def _employer(data: Any) -> HHEmployer:
    raw = _mapping(data, "employer")
    return HHEmployer(id=_text(raw, "id"), name=_text(raw, "name"))


def _area(data: Any) -> HHArea:
    raw = _mapping(data, "area")
    return HHArea(id=_text(raw, "id"), name=_text(raw, "name"))


def _list(data: dict[str, Any], key: str) -> list[Any]:
    value = data.get(key)
    if value is None:
        return []
    if not isinstance(value, list):
        raise ValueError(f"field {key!r}: expected a list, got {type(value).__name__}")
    return value


@dataclass
class HHVacancy:
    """A vacancy as returned by HH.ru."""

    id: str = ""
    name: str = ""
    salary: HHSalary = field(default_factory=HHSalary)
    employer: HHEmployer = field(default_factory=HHEmployer)
    area: HHArea = field(default_factory=HHArea)
    url: str = ""
    description: str = ""

    @classmethod
    def from_dict(cls, data: Any) -> HHVacancy:
        """Decode a vacancy from parsed JSON."""
        raw = _mapping(data, "vacancy")
        return cls(
            id=_text(raw, "id"),
            name=_text(raw, "name"),
            salary=_salary(raw.get("salary")),
            employer=_employer(raw.get("employer")),
            area=_area(raw.get("area")),
            url=_text(raw, "url"),
            description=_text(raw, "description"),
        )

    def salary_string(self, format_salary: SalaryFormatter) -> str:
        """Describe the salary range using ``format_salary(from, to, currency)``."""
        return _format_range(self.salary.from_, self.salary.to, self.salary.currency, format_salary)


@dataclass
class SearchResponse:
    """HH.ru vacancy search response."""

    items: list[HHVacancy] = field(default_factory=list)
    found: int = 0
    pages: int = 0

    @classmethod
    def from_dict(cls, data: Any) -> SearchResponse:
        """Decode a search response from parsed JSON."""
        raw = _mapping(data, "search response")
        return cls(
            items=[HHVacancy.from_dict(item) for item in _list(raw, "items")],
            found=_integer(raw, "found"),
            pages=_integer(raw, "pages"),
        )


@dataclass
class SearchDetails:
    """Vacancy details response."""

    employer: HHEmployer = field(default_factory=HHEmployer)
    area: HHArea = field(default_factory=HHArea)
    salary: HHSalary = field(default_factory=HHSalary)
    description: str = ""
    name: str = ""
    id: str = ""
    url: str = ""

    @classmethod
    def from_dict(cls, data: Any) -> SearchDetails:
        """Decode vacancy details from parsed JSON; the URL is ``alternate_url``."""
        raw = _mapping(data, "vacancy details")
        return cls(
            employer=_employer(raw.get("employer")),
            area=_area(raw.get("area")),
            salary=_salary(raw.get("salary")),
            description=_text(raw, "description"),
            name=_text(raw, "name"),
            id=_text(raw, "id"),
            url=_text(raw, "alternate_url"),
        )


@dataclass
class SJTown:
    """Town in a SuperJob response."""

    title: str = ""


@dataclass
class SJVacancy:
    """A vacancy as returned by SuperJob."""

    id: int = 0
    profession: str = ""
    firm_name: str = ""
    payment_from: int = 0
    payment_to: int = 0
    currency: str = ""
    town: SJTown = field(default_factory=SJTown)
    link: str = ""
    vacancy_rich_text: str = ""

    @classmethod
    def from_dict(cls, data: Any) -> SJVacancy:
        """Decode a vacancy from parsed JSON."""
        raw = _mapping(data, "vacancy")
        town = _mapping(raw.get("town"), "town")
        return cls(
            id=_integer(raw, "id"),
            profession=_text(raw, "profession"),
            firm_name=_text(raw, "firm_name"),
            payment_from=_integer(raw, "payment_from"),
            payment_to=_integer(raw, "payment_to"),
            currency=_text(raw, "currency"),
            town=SJTown(title=_text(town, "title")),
            link=_text(raw, "link"),
            vacancy_rich_text=_text(raw, "vacancyRichText"),
        )

    def salary_string(self, format_salary: SalaryFormatter) -> str:
        """Describe the payment range using ``format_salary(from, to, currency)``."""
        return _format_range(self.payment_from, self.payment_to, self.currency, format_salary)


@dataclass
class SuperJobResponse:
    """SuperJob vacancy search response."""

    items: list[SJVacancy] = field(default_factory=list)
    total: int = 0

    @classmethod
    def from_dict(cls, data: Any) -> SuperJobResponse:
        """Decode a search response from parsed JSON; vacancies are under ``objects``."""
        raw = _mapping(data, "search response")
        return cls(
            items=[SJVacancy.from_dict(item) for item in _list(raw, "objects")],
            total=_integer(raw, "total"),
        )