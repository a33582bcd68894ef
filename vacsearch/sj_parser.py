"""Parser of the SuperJob vacancy API."""

from __future__ import annotations

import json
import logging
from typing import Any

import requests

from .api_models import SalaryFormatter, SearchDetails, SJVacancy, SuperJobResponse
from .base_parser import BaseParser, ParserError, ParserFuncs
from .config import ParserInstanceConfig, default_parsers_config
from .hh_parser import _base_config, _format_salary, _with_query
from .models import SearchParams, Vacancy, VacancyDetails

logger = logging.getLogger(__name__)

SJ_NAME = "SuperJob.ru"

AREA_NAMES = {
    "1": "Москва",
    "2": "Санкт-Петербург",
}


class SJParser(BaseParser):
    """Searches vacancies on SuperJob."""

    def __init__(
        self,
        config: ParserInstanceConfig | None = None,
        format_salary: SalaryFormatter | None = None,
    ) -> None:
        if config is None:
            config = default_parsers_config().superjob
        if config is None:
            raise ParserError(f"no configuration for parser {SJ_NAME}")
        try:
            super().__init__(_base_config(SJ_NAME, config, api_key=config.api_key))
        except ParserError as exc:
            raise ParserError(
                f"ошибка в конфигурации rate limiter для парсера {SJ_NAME}"
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
        return super().search_vacancy_details(
            vacancy_id,
            ParserFuncs(
                parse=self.parse_details_response,
                convert_details=self.convert_details,
            ),
        )

    def build_url(self, params: SearchParams) -> str:
        """Build the search URL for ``params``; pages are zero-based here."""
        updates: dict[str, str] = {}
        if params.text:
            updates["keyword"] = params.text
        if params.country:
            updates["country"] = self.convert_area(params.country)
        if params.page > 0:
            updates["page"] = str(params.page - 1)
        return _with_query(self.base_url, updates)

    def parse_search_response(self, body: bytes) -> SuperJobResponse:
        """Decode a search response body."""
        try:
            return SuperJobResponse.from_dict(json.loads(body))
        except ValueError as exc:
            raise ParserError(
                f"[Parser name: {self.name}] parse reaponse body - failed: {exc}"
            ) from exc

    def parse_details_response(self, body: bytes) -> SearchDetails:
        """Decode a vacancy details response body."""
        try:
            return SearchDetails.from_dict(json.loads(body))
        except ValueError as exc:
            raise ParserError(
                f"[Parser name: {self.name}] parse reaponse body - failed: {exc}"
            ) from exc

    def convert_details(self, response: Any) -> VacancyDetails:
        """Turn a details response into vacancy details; only the description is kept."""
        if response is None:
            raise ParserError(f"[{self.name}] searchResponse is nil")
        if not isinstance(response, SearchDetails):
            logger.debug("[Parser name: %s] type details: %s", self.name, type(response))
            raise ParserError(f"[Parser name: {self.name}], wrong data type in the response body")
        return VacancyDetails(description=response.description)

    def convert_to_universal(self, response: Any) -> list[Vacancy]:
        """Turn a search response into vacancies in the common form."""
        if not isinstance(response, SuperJobResponse):
            logger.debug("[Parser name: %s] type details: %s", self.name, type(response))
            raise ParserError(f"[Parser name: {self.name}], wrong data type in the response body")
        return [
            Vacancy(
                id=str(item.id),
                job=item.profession,
                company=item.firm_name,
                currency=item.currency,
                salary=item.salary_string(self.format_salary),
                location=item.town.title,
                url=item.link,
                source=self.name,
                description=item.vacancy_rich_text,
            )
            for item in response.items
        ]

    def convert_area(self, area: str) -> str:
        """Map an HH.ru region code to a SuperJob town name; unknown codes give ""."""
        return AREA_NAMES.get(area, "")

    def get_vacancy_by_id(self, vacancy_id: str) -> SJVacancy:
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
            return SJVacancy.from_dict(json.loads(body))
        except ValueError as exc:
            raise ParserError(f"parse SJ-JSON failed: {exc}") from exc