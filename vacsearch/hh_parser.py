"""Parser of the HH.ru vacancy API."""

from __future__ import annotations

import json
import logging
from typing import Any
from urllib.parse import parse_qs, urlencode, urlsplit, urlunsplit

import requests

from .api_models import HHVacancy, SalaryFormatter, SearchDetails, SearchResponse
from .base_parser import BaseConfig, BaseParser, ParserError, ParserFuncs
from .config import ParserInstanceConfig, default_parsers_config
from .models import Area, Employer, Salary, SearchParams, Vacancy, VacancyDetails

logger = logging.getLogger(__name__)

HH_NAME = "HH.ru"
DEFAULT_PER_PAGE = 20
MAX_PER_PAGE = 100

COUNTRY_CODES = {
    "Россия": 113,
    "Украина": 5,
    "Беларусь": 16,
    "Казахстан": 40,
    "Азербайджан": 97,
    "Армения": 4,
    "Грузия": 28,
    "Кыргызтан": 115,
    "Таджикистан": 1396,
    "Туркменистан": 100,
    "Узбекистан": 99,
    "Молдова": 11,
}


def _format_salary(low: int, high: int, currency: str) -> str:
    parts = []
    if low > 0:
        parts.append(f"от {low}")
    if high > 0:
        parts.append(f"до {high}")
    if currency:
        parts.append(currency)
    return " ".join(parts)


def _with_query(base_url: str, updates: dict[str, str]) -> str:
    """Return ``base_url`` with ``updates`` set in its query, keys sorted."""
    scheme, netloc, path, query, fragment = urlsplit(base_url)
    values = parse_qs(query, keep_blank_values=True)
    for key, value in updates.items():
        values[key] = [value]
    encoded = urlencode(sorted(values.items()), doseq=True)
    return urlunsplit((scheme, netloc, path, encoded, fragment))


def _base_config(name: str, cfg: ParserInstanceConfig, api_key: str = "") -> BaseConfig:
    return BaseConfig(
        name=name,
        base_url=cfg.base_url,
        health_endpoint=cfg.health_endpoint,
        api_key=api_key,
        timeout=cfg.timeout,
        rate_limit=cfg.rate_limit,
        max_concurrent=cfg.max_concurrent,
        circuit_breaker=cfg.circuit_breaker,
        max_idle_conns=cfg.max_idle_conns,
        idle_conn_timeout=cfg.idle_conn_timeout,
        tls_handshake_timeout=cfg.tls_handshake_timeout,
        response_header_timeout=cfg.response_header_timeout,
        expect_continue_timeout=cfg.expect_continue_timeout,
    )


def _decode_json(body: bytes) -> Any:
    return json.loads(body)


class HHParser(BaseParser):
    """Searches vacancies on HH.ru."""

    def __init__(
        self,
        config: ParserInstanceConfig | None = None,
        format_salary: SalaryFormatter | None = None,
    ) -> None:
        if config is None:
            config = default_parsers_config().hh
        if config is None:
            raise ParserError(f"no configuration for parser {HH_NAME}")
        try:
            super().__init__(_base_config(HH_NAME, config))
        except ParserError as exc:
            raise ParserError(
                f"ошибка в конфигурации rate limiter для парсера {HH_NAME}"
            ) from exc
        self.format_salary = format_salary or _format_salary

    def search_vacancies(self, params: SearchParams) -> list[Vacancy]:  # type: ignore[override]
        """Search the vacancy list."""
        return super().search_vacancies(
            params,
            ParserFuncs(
                build_url=self.build_url,
                parse=self.parse_search_response,
                convert=self.convert_to_universal,
            ),
        )

    def search_vacancy_details(self, vacancy_id: str) -> VacancyDetails:  # type: ignore[override]
        """Fetch the details of one vacancy."""
        logger.info("vacancy ID to look up: %s", vacancy_id)
        return super().search_vacancy_details(
            vacancy_id,
            ParserFuncs(
                parse=self.parse_details_response,
                convert_details=self.convert_details,
            ),
        )

    def build_url(self, params: SearchParams) -> str:
        """Build the search URL for ``params``."""
        updates: dict[str, str] = {}
        if params.text:
            updates["text"] = params.text
        if params.country:
            updates["area"] = str(COUNTRY_CODES.get(params.country, 0))
        per_page = params.per_page
        if per_page <= 0 or per_page > MAX_PER_PAGE:
            per_page = DEFAULT_PER_PAGE
        updates["per_page"] = str(per_page)
        if params.page > 0:
            updates["page"] = str(params.page)
        return _with_query(self.base_url, updates)

    def parse_search_response(self, body: bytes) -> SearchResponse:
        """Decode a search response body."""
        try:
            return SearchResponse.from_dict(_decode_json(body))
        except ValueError as exc:
            raise ParserError(
                f"[Parser name: {self.name}] parse reaponse body - failed: {exc}"
            ) from exc

    def parse_details_response(self, body: bytes) -> SearchDetails:
        """Decode a vacancy details response body."""
        try:
            return SearchDetails.from_dict(_decode_json(body))
        except ValueError as exc:
            raise ParserError(
                f"[Parser name: {self.name}] parse reaponse body - failed: {exc}"
            ) from exc

    def convert_to_universal(self, response: Any) -> list[Vacancy]:
        """Turn a search response into vacancies in the common form."""
        if response is None:
            raise ParserError(f"[{self.name}] searchResponse is nil")
        if not isinstance(response, SearchResponse):
            logger.debug("[Parser name: %s] type details: %s", self.name, type(response))
            raise ParserError(f"[Parser name: {self.name}], wrong data type in the response body")
        if not response.items and response.found > 0:
            raise ParserError(
                "Need to change querry request, not enought information for search"
            )
        return [
            Vacancy(
                id=item.id,
                job=item.name,
                company=item.employer.name,
                currency=item.salary.currency,
                salary=item.salary_string(self.format_salary),
                location=item.area.name,
                url=item.url,
                source=self.name,
                description=item.description,
            )
            for item in response.items
        ]

    def convert_details(self, response: Any) -> VacancyDetails:
        """Turn a details response into vacancy details."""
        if response is None:
            raise ParserError(f"[{self.name}] searchResponse is nil")
        if not isinstance(response, SearchDetails):
            logger.debug("[Parser name: %s] type details: %s", self.name, type(response))
            raise ParserError(f"[Parser name: {self.name}], wrong data type in the response body")
        return VacancyDetails(
            employer=Employer(id=response.employer.id, name=response.employer.name),
            location=Area(id=response.area.id, name=response.area.name),
            salary=Salary(
                from_=response.salary.from_,
                to=response.salary.to,
                currency=response.salary.currency,
                gross=response.salary.gross,
            ),
            description=response.description,
            name=response.name,
            id=response.id,
            url=response.url,
        )

    def get_vacancy_by_id(self, vacancy_id: str) -> HHVacancy:
        """Fetch one vacancy directly, bypassing the breaker and limiter."""
        if not vacancy_id:
            raise ParserError("vacancy ID cannot be empty")
        url = f"{self.base_url}/{vacancy_id}"
        try:
            response = self.session.get(url, timeout=self.timeout)
        except requests.RequestException as exc:
            raise ParserError(f"HTTP request failed: {exc}") from exc
        with response:
            if response.status_code != 200:
                raise ParserError(f"API returned status {response.status_code}")
            body = response.content
        try:
            return HHVacancy.from_dict(_decode_json(body))
        except ValueError as exc:
            raise ParserError(f"parse HH-JSON failed: {exc}") from exc