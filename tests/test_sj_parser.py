import json
import re
from urllib.parse import parse_qs, urlsplit

import pytest
import responses

from vacsearch.api_models import SearchDetails, SJVacancy, SuperJobResponse
from vacsearch.base_parser import ParserError
from vacsearch.config import default_parsers_config
from vacsearch.models import SearchParams
from vacsearch.sj_parser import SJParser

BASE = "https://api.example.com/2.0/vacancies"


def _fmt(low, high, currency):
    return f"{low}-{high} {currency}"


def _parser(format_salary=_fmt):
    cfg = default_parsers_config().superjob
    cfg.base_url = BASE
    cfg.rate_limit = 0.001
    cfg.api_key = "placeholder"
    return SJParser(cfg, format_salary=format_salary)


def _query(url):
    return parse_qs(urlsplit(url).query)


SEARCH_BODY = {
    "objects": [
        {
            "id": 77,
            "profession": "Backend developer",
            "firm_name": "Acme",
            "payment_from": 300,
            "payment_to": 400,
            "currency": "rub",
            "town": {"title": "Москва"},
            "link": "https://example.com/sj/77",
            "vacancyRichText": "<p>text</p>",
        }
    ],
    "total": 1,
}


def test_default_config_is_used():
    parser = SJParser()
    assert parser.name == "SuperJob.ru"
    assert parser.base_url == "https://api.superjob.ru/2.0/vacancies/"


def test_api_key_is_kept():
    assert _parser().api_key == "placeholder"


def test_invalid_rate_limit_raises():
    cfg = default_parsers_config().superjob
    cfg.rate_limit = -1
    with pytest.raises(ParserError, match="SuperJob.ru"):
        SJParser(cfg)


def test_convert_area():
    parser = _parser()
    assert parser.convert_area("1") == "Москва"
    assert parser.convert_area("2") == "Санкт-Петербург"
    assert parser.convert_area("Россия") == ""


def test_build_url_params():
    url = _parser().build_url(SearchParams(text="python", country="2", page=3))
    query = _query(url)
    assert query["keyword"] == ["python"]
    assert query["country"] == ["Санкт-Петербург"]
    assert query["page"] == ["2"]


def test_build_url_without_params_has_no_query():
    assert _parser().build_url(SearchParams()) == BASE


def test_parse_and_convert():
    parser = _parser()
    response = parser.parse_search_response(json.dumps(SEARCH_BODY).encode())
    assert isinstance(response, SuperJobResponse)
    vacancies = parser.convert_to_universal(response)
    assert len(vacancies) == 1
    vacancy = vacancies[0]
    assert vacancy.id == "77"
    assert vacancy.job == "Backend developer"
    assert vacancy.company == "Acme"
    assert vacancy.salary == "300-400 rub"
    assert vacancy.location == "Москва"
    assert vacancy.url == "https://example.com/sj/77"
    assert vacancy.source == "SuperJob.ru"
    assert vacancy.description == "<p>text</p>"


def test_convert_unspecified_salary_with_default_formatter():
    parser = _parser(format_salary=None)
    vacancies = parser.convert_to_universal(SuperJobResponse.from_dict({"objects": [{"id": 1}]}))
    assert vacancies[0].salary == "не указана"


def test_convert_errors():
    parser = _parser()
    with pytest.raises(ParserError, match="wrong data type"):
        parser.convert_to_universal(None)
    with pytest.raises(ParserError, match="wrong data type"):
        parser.convert_to_universal(SEARCH_BODY)
    with pytest.raises(ParserError, match="parse reaponse body"):
        parser.parse_search_response(b"[broken")


def test_convert_details_keeps_only_description():
    details = SearchDetails(name="Dev", id="5", description="full text")
    result = _parser().convert_details(details)
    assert result.description == "full text"
    assert result.name == ""
    assert result.id == ""
    with pytest.raises(ParserError, match="is nil"):
        _parser().convert_details(None)


def test_search_vacancies_over_http():
    parser = _parser()
    with responses.RequestsMock() as rsps:
        rsps.add(responses.GET, re.compile(re.escape(BASE) + r".*"), json=SEARCH_BODY)
        vacancies = parser.search_vacancies(SearchParams(text="dev", page=1))
        assert _query(rsps.calls[0].request.url)["page"] == ["0"]
    assert [v.id for v in vacancies] == ["77"]


def test_search_vacancy_details_over_http():
    parser = _parser()
    with responses.RequestsMock() as rsps:
        rsps.add(responses.GET, BASE + "/77", json={"description": "about", "name": "x"})
        details = parser.search_vacancy_details("77")
    assert details.description == "about"


def test_search_client_error_raises():
    parser = _parser()
    with responses.RequestsMock() as rsps:
        rsps.add(responses.GET, re.compile(re.escape(BASE) + r".*"), status=403, body="denied")
        with pytest.raises(ParserError, match="API returned status 403"):
            parser.search_vacancies(SearchParams(text="x"))


def test_get_vacancy_by_id():
    parser = _parser()
    with pytest.raises(ParserError, match="cannot be empty"):
        parser.get_vacancy_by_id("")
    with responses.RequestsMock() as rsps:
        rsps.add(responses.GET, BASE + "/77", json=SEARCH_BODY["objects"][0])
        rsps.add(responses.GET, BASE + "/78", status=500)
        rsps.add(responses.GET, BASE + "/79", body="nope")
        vacancy = parser.get_vacancy_by_id("77")
        with pytest.raises(ParserError, match="API returned status 500"):
            parser.get_vacancy_by_id("78")
        with pytest.raises(ParserError, match="parse SJ-JSON failed"):
            parser.get_vacancy_by_id("79")
    assert isinstance(vacancy, SJVacancy)
    assert vacancy.id == 77
    assert vacancy.town.title == "Москва"