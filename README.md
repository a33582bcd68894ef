# vacsearch

`vacsearch` searches job vacancies on HH.ru and SuperJob at once and turns
the answers into one common shape (`vacsearch.models.Vacancy` and
`vacsearch.models.VacancyDetails`).

## What is in it

| Module | Contents |
| --- | --- |
| `vacsearch.config` | `Config` and its parts, the `default_*_config()` factories, `load_yaml_config`, `load_config`, `ConfigError` |
| `vacsearch.models` | `SearchParams`, `Vacancy`, `SearchVacanciesResult`, `VacancyDetails`, `Employer`, `Area`, `Salary`, `VacancyIndex` and job records |
| `vacsearch.api_models` | decoders of the boards' JSON: `SearchResponse`, `HHVacancy`, `SearchDetails`, `SuperJobResponse`, `SJVacancy` |
| `vacsearch.base_parser` | `BaseParser`, `CircuitBreaker`, `RateLimiter`, `ParserError`, `CircuitOpenError`, `TooManyRequestsError` |
| `vacsearch.hh_parser` | `HHParser` (name `"HH.ru"`) |
| `vacsearch.sj_parser` | `SJParser` (name `"SuperJob.ru"`) |
| `vacsearch.parser_factory` | `ParserFactory`, `ParserType`, `FactoryError` |
| `vacsearch.result_store` | `Cache` (TTL key-value store), `SearchResultStore`, `search_hash` |
| `vacsearch.searcher` | `StatusManager` (parser health), `ParserPool` (concurrent search with a timeout) |
| `vacsearch.result_handler` | `handle_search_result`, `is_circuit_breaker_error`, `SearchOutcomeError` |
| `vacsearch.jobs` | `SearchJob`, `FetchDetailsJob`, `try_enqueue`, `wait_job_result`, `JobError` |
| `vacsearch.manager` | `ParsersManager`, `load_settings`, `ManagerError` |
| `vacsearch.cli` | console prompts and report formatting |

## Configuration

`load_config(env_path=".env")` loads the `.env` file at `env_path` (a missing
file raises `ConfigError`) and then reads these variables:

| Variable | Meaning |
| --- | --- |
| `CONC_SEARCH_TIMEOUT` | timeout, in whole seconds, of one concurrent search over all parsers (required, an integer) |
| `CACHES_CONFIG_ADDRESS_STRING` | path to a YAML file with cache settings |
| `PARSERS_CONFIG_ADDRESS_STRING` | path to a YAML file with parser settings and parser-manager settings |
| `HEALTH_CHECK_CONFIG_ADDRESS_STRING` | path to a YAML file with health-check settings |

An empty path, or a path to a file that does not exist, means the defaults
are used. A file that exists but cannot be read or decoded raises
`ConfigError`. Each file is laid over the defaults of
`default_cache_config()`, `default_parsers_config()`,
`default_parsers_manager_config()` or `default_health_check_config()`, so it
only needs the keys it changes; unknown keys are ignored.
`load_yaml_config(path, factory)` does the same for one file.

Durations are given as numbers of seconds or in the `1h2m3.5s` notation. A
parsers file looks like this:

```yaml
hh:
  enabled: true
  base_url: https://api.hh.ru/vacancies
  timeout: 30s
  rate_limit: 2s
  max_concurrent: 10
superjob:
  base_url: https://api.superjob.ru/2.0/vacancies/
  api_key: placeholder
max_concurrent_parsers: 4
circuit_breaker:
  failure_threshold: 5
  reset_timeout: 10s
```

The top-level `circuit_breaker`, `max_concurrent_parsers` and
`health_check_interval` keys belong to the parsers manager; `hh` and
`superjob` configure the two parsers.

## Searching with the parsers

```python
from vacsearch.config import default_parsers_config
from vacsearch.hh_parser import HHParser
from vacsearch.models import SearchParams
from vacsearch.parser_factory import ParserFactory, ParserType
from vacsearch.sj_parser import SJParser

parsers_config = default_parsers_config()

factory = ParserFactory()
factory.register(ParserType.HH, parsers_config.hh, HHParser)
factory.register(ParserType.SJ, parsers_config.superjob, SJParser)
parsers = factory.create_enabled([ParserType.HH, ParserType.SJ])

params = SearchParams(text="python developer", country="Россия", per_page=20)
for parser in parsers:
    for vacancy in parser.search_vacancies(params):
        print(vacancy.job, vacancy.salary, vacancy.company, vacancy.url)
```

- `HHParser.build_url` accepts `per_page` from 1 to 100 (anything else becomes
  20) and maps country names such as "Россия" or "Казахстан" to HH.ru area
  codes.
- `SJParser.build_url` counts pages from zero, so `page=1` requests SuperJob
  page 0; its country comes from `convert_area`, which knows only the codes
  "1" (Москва) and "2" (Санкт-Петербург).
- Every request goes through the parser's concurrency limit, rate limiter and
  `CircuitBreaker`. Failures raise `ParserError`; while the breaker is open the
  message says the source is temporarily unavailable.
- `search_vacancy_details(vacancy_id)` fetches one vacancy; the SuperJob parser
  keeps only its description.
- Both parsers take an optional `format_salary(from, to, currency)` callable;
  by default a range is written as `от 100000 до 200000 RUR`, and an empty
  range as `не указана`.

## The parsers manager

```python
import os

from vacsearch.config import default_parsers_config, load_config
from vacsearch.hh_parser import HHParser
from vacsearch.manager import ParsersManager
from vacsearch.models import SearchParams
from vacsearch.result_store import Cache
from vacsearch.searcher import StatusManager

config = load_config(".env")
parsers = [HHParser(config.parsers.hh)]
status = StatusManager(parser.name for parser in parsers)

with ParsersManager(
    config, os.cpu_count() or 1, Cache(), Cache(), Cache(), status, *parsers
) as manager:
    results = manager.search_vacancies(SearchParams(text="python"))
    details = manager.fetch_vacancy_details(results[0].vacancies[0].id, "HH.ru")
```

- The manager starts `2 × cores` worker threads (see `load_settings`) that
  take jobs from a bounded queue and run them behind a global semaphore and
  circuit breaker.
- `search_vacancies(params)` first looks in the search cache. Otherwise it
  queries every healthy parser concurrently (every parser if none is healthy)
  within `CONC_SEARCH_TIMEOUT`. It returns one `SearchVacanciesResult` per
  parser, and caches the successful results along with a reverse index.
- If a search fails, `SearchOutcomeError` is raised; its `results` hold any
  partial results, or cached results of the same search.
- `fetch_vacancy_details(vacancy_id, source)` uses the details cache, then the
  parser named `source`, which must be known to the `StatusManager` and
  healthy.
- A job that cannot be queued raises `ManagerError`; one that does not finish
  within 30 seconds raises `JobError`. `shutdown()` stops the workers and is
  also called on leaving the `with` block.

## Console helpers

`vacsearch.cli.multi_search(manager, lines, out)` and
`full_vacancy_details(manager, lines, out)` read their answers from an
iterable of lines (for example `sys.stdin`) and write prompts and reports to
a text stream. `clean_html`, `format_vacancy_details`,
`format_multi_search_results` and `format_date` produce the text on their own.

## What it does not do

- There is no HTTP server and no installed command: the package is a library,
  and the console helpers must be driven from your own code.
- `HealthCheckConfig` is loaded, but nothing runs periodic health checks.
  Parser health changes only with the outcome of real searches.
- Caches live in process memory only; nothing is stored on disk.