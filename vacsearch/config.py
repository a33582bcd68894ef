"""Service configuration: built-in defaults, YAML overrides and .env loading."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass, field, fields, is_dataclass
from pathlib import Path
from typing import Any, Callable, TypeVar

import yaml
from dotenv import load_dotenv

T = TypeVar("T")

_DURATION = "duration"

_UNITS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "μs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}
_PART = r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|μs|ms|s|m|h)"
_PART_RE = re.compile(_PART)
_DURATION_RE = re.compile(rf"([+-]?)((?:{_PART})+)")
_INTEGER_RE = re.compile(r"[+-]?\d+")


class ConfigError(Exception):
    """Raised when configuration cannot be read or decoded."""


def _parse_duration(value: Any) -> float:
    """Return a duration in seconds; strings use the "1h2m3.5s" notation."""
    if isinstance(value, bool):
        raise ConfigError(f"invalid duration {value!r}")
    if isinstance(value, (int, float)):
        return float(value)
    if not isinstance(value, str):
        raise ConfigError(f"invalid duration {value!r}")
    text = value.strip()
    if text in ("0", "+0", "-0"):
        return 0.0
    match = _DURATION_RE.fullmatch(text)
    if match is None:
        raise ConfigError(f"invalid duration {value!r}")
    total = sum(float(number) * _UNITS[unit] for number, unit in _PART_RE.findall(match.group(2)))
    return -total if match.group(1) == "-" else total


def _setting(key: str | None, kind: Any, *, optional: bool = False) -> Any:
    """Declare a YAML-backed field; a key of None means the field's own name."""
    metadata = {"yaml": key, "kind": kind, "optional": optional}
    if is_dataclass(kind):
        if optional:
            return field(default=None, metadata=metadata)
        return field(default_factory=kind, metadata=metadata)
    return field(default=_zero(kind), metadata=metadata)


def _zero(kind: Any) -> Any:
    if kind is _DURATION:
        return 0.0
    return kind()


def _convert(current: Any, value: Any, kind: Any, optional: bool, path: str) -> Any:
    if value is None:
        return None if optional else _zero(kind)
    if is_dataclass(kind):
        node = current if current is not None else kind()
        _merge(node, value, path)
        return node
    if kind is _DURATION:
        try:
            return _parse_duration(value)
        except ConfigError as exc:
            raise ConfigError(f"{path}: {exc}") from exc
    if kind is bool:
        if isinstance(value, bool):
            return value
    elif kind is int:
        if isinstance(value, int) and not isinstance(value, bool):
            return value
    elif kind is str:
        if isinstance(value, str):
            return value
        if isinstance(value, bool):
            return "true" if value else "false"
        if isinstance(value, (int, float)):
            return str(value)
    raise ConfigError(f"{path}: cannot decode {value!r} as {getattr(kind, '__name__', kind)}")


def _merge(target: Any, data: Any, path: str) -> None:
    if not isinstance(data, dict):
        where = path or "document"
        raise ConfigError(f"{where}: expected a mapping, got {type(data).__name__}")
    for item in fields(target):
        if "kind" not in item.metadata:
            continue
        key = item.metadata.get("yaml") or item.name
        if key not in data:
            continue
        child_path = f"{path}.{key}" if path else key
        value = _convert(
            getattr(target, item.name),
            data[key],
            item.metadata["kind"],
            item.metadata["optional"],
            child_path,
        )
        setattr(target, item.name, value)


@dataclass
class CircuitBreakerConfig:
    """Thresholds and timings of a circuit breaker."""

    failure_threshold: int = _setting("failure_threshold", int)
    success_threshold: int = _setting("success_threshold", int)
    half_open_max_requests: int = _setting("half_open_max_requests", int)
    reset_timeout: float = _setting("reset_timeout", _DURATION)
    window_duration: float = _setting("window_duration", _DURATION)


@dataclass
class SearchCacheConfig:
    """Lifetime and cleanup interval of the search cache, in seconds."""

    ttl: float = _setting("searchcachettl", _DURATION)
    cleanup: float = _setting("searchcachecleanup", _DURATION)


@dataclass
class VacancyCacheConfig:
    """Lifetime and cleanup interval of the reverse index cache, in seconds."""

    ttl: float = _setting("vacancycachettl", _DURATION)
    cleanup: float = _setting("vacancycachecleanup", _DURATION)


@dataclass
class VacancyDetailsCacheConfig:
    """Lifetime and cleanup interval of the vacancy details cache, in seconds."""

    ttl: float = _setting("vacdetcachettl", _DURATION)
    cleanup: float = _setting("vacdetcachecleanup", _DURATION)


@dataclass
class CachesConfig:
    """Settings of the sharded in-memory caches."""

    num_of_shards: int = _setting("numofshards", int)
    search_cache: SearchCacheConfig = _setting("searchcacheconfig", SearchCacheConfig)
    vacancy_cache: VacancyCacheConfig = _setting("vacancycacheconfig", VacancyCacheConfig)
    vacancy_details_cache: VacancyDetailsCacheConfig = _setting(
        "vacancydetailscacheconfig", VacancyDetailsCacheConfig
    )
    max_memory_usage_mb: int = _setting("maxmemoryusagemb", int)


@dataclass
class HealthCheckClientConfig:
    """HTTP client settings for health checks."""

    timeout: float = _setting("timeout", _DURATION)
    max_idle_conns: int = _setting("max_idle_conns", int)
    idle_conn_timeout: float = _setting("idle_conn_timeout", _DURATION)
    tls_handshake_timeout: float = _setting("tls_handshake_timeout", _DURATION)
    expect_continue_timeout: float = _setting("expect_continue_timeout", _DURATION)
    max_conns_per_host: int = _setting("max_conns_per_host", int)


@dataclass
class HealthCheckConfig:
    """Timings of the health checks of the sources the parsers query."""

    request_timeout: float = _setting("request_timeout", _DURATION)
    initialization_timeout: float = _setting("initialization_timeout", _DURATION)
    check_interval: float = _setting("check_interval", _DURATION)
    http_client: HealthCheckClientConfig = _setting("http_client", HealthCheckClientConfig)


@dataclass
class ParserManagerConfig:
    """Settings of the parsers manager."""

    max_concurrent_parsers: int = _setting("max_concurrent_parsers", int)
    circuit_breaker: CircuitBreakerConfig = _setting("circuit_breaker", CircuitBreakerConfig)
    health_check_interval: float = _setting("health_check_interval", _DURATION)


@dataclass
class ParserInstanceConfig:
    """Settings of one parser."""

    enabled: bool = _setting("enabled", bool)
    base_url: str = _setting("base_url", str)
    health_endpoint: str = _setting("health_endpoint", str)
    api_key: str = _setting(None, str)
    timeout: float = _setting("timeout", _DURATION)
    rate_limit: float = _setting("rate_limit", _DURATION)
    max_concurrent: int = _setting("max_concurrent", int)
    circuit_breaker: CircuitBreakerConfig = _setting("circuit_breaker", CircuitBreakerConfig)
    max_idle_conns: int = _setting("max_idle_conns", int)
    idle_conn_timeout: float = _setting("idle_conn_timeout", _DURATION)
    tls_handshake_timeout: float = _setting("tls_handshake_timeout", _DURATION)
    response_header_timeout: float = _setting("response_header_timeout", _DURATION)
    expect_continue_timeout: float = _setting("expect_continue_timeout", _DURATION)


@dataclass
class ParsersConfig:
    """Settings of every known parser; None means not configured."""

    hh: ParserInstanceConfig | None = _setting("hh", ParserInstanceConfig, optional=True)
    superjob: ParserInstanceConfig | None = _setting(
        "superjob", ParserInstanceConfig, optional=True
    )


@dataclass
class APIConfig:
    """Settings of the search API."""

    conc_search_timeout: float = 0.0
    server_port: str = ""


def default_cache_config() -> CachesConfig:
    """Return the default cache settings."""
    return CachesConfig(
        num_of_shards=7,
        search_cache=SearchCacheConfig(ttl=60.0, cleanup=30.0),
        vacancy_cache=VacancyCacheConfig(ttl=60.0, cleanup=30.0),
        vacancy_details_cache=VacancyDetailsCacheConfig(ttl=60.0, cleanup=30.0),
    )


def default_health_check_config() -> HealthCheckConfig:
    """Return the default health check settings."""
    return HealthCheckConfig(
        request_timeout=5.0,
        initialization_timeout=10.0,
        check_interval=15.0,
        http_client=HealthCheckClientConfig(
            timeout=5.0,
            max_idle_conns=10,
            idle_conn_timeout=30.0,
            tls_handshake_timeout=3.0,
            expect_continue_timeout=1.0,
            max_conns_per_host=2,
        ),
    )


def _default_circuit_breaker() -> CircuitBreakerConfig:
    return CircuitBreakerConfig(
        failure_threshold=5,
        success_threshold=3,
        half_open_max_requests=2,
        reset_timeout=10.0,
        window_duration=10.0,
    )


def default_parsers_manager_config() -> ParserManagerConfig:
    """Return the default parsers manager settings."""
    return ParserManagerConfig(circuit_breaker=_default_circuit_breaker())


def _default_parser(base_url: str) -> ParserInstanceConfig:
    return ParserInstanceConfig(
        enabled=True,
        base_url=base_url,
        timeout=30.0,
        rate_limit=2.0,
        max_concurrent=10,
        circuit_breaker=_default_circuit_breaker(),
        max_idle_conns=5,
        idle_conn_timeout=90.0,
        tls_handshake_timeout=10.0,
        response_header_timeout=5.0,
        expect_continue_timeout=1.0,
    )


def default_parsers_config() -> ParsersConfig:
    """Return the default settings of the HH.ru and SuperJob parsers."""
    return ParsersConfig(
        hh=_default_parser("https://api.hh.ru/vacancies"),
        superjob=_default_parser("https://api.superjob.ru/2.0/vacancies/"),
    )


@dataclass
class Config:
    """The whole service configuration."""

    api: APIConfig = field(default_factory=APIConfig)
    cache: CachesConfig = field(default_factory=default_cache_config)
    parsers: ParsersConfig = field(default_factory=default_parsers_config)
    manager: ParserManagerConfig = field(default_factory=default_parsers_manager_config)
    health_check: HealthCheckConfig = field(default_factory=default_health_check_config)


def load_yaml_config(path: str | os.PathLike[str] | None, factory: Callable[[], T]) -> T:
    """Build defaults with ``factory`` and overlay the YAML file at ``path``.

    An empty path or a missing file yields the defaults; a file that cannot be
    read or decoded raises ConfigError.
    """
    config = factory()
    if not path:
        return config
    file_path = Path(path)
    try:
        file_path.stat()
    except FileNotFoundError:
        return config
    except OSError:
        pass
    try:
        text = file_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"cannot read {file_path}: {exc}") from exc
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"cannot parse {file_path}: {exc}") from exc
    if data is None:
        return config
    _merge(config, data, "")
    return config


def _load(env_path: str | os.PathLike[str]) -> Config:
    if not Path(env_path).is_file():
        raise ConfigError(f"open {env_path}: no such file")
    load_dotenv(env_path)

    raw_timeout = os.getenv("CONC_SEARCH_TIMEOUT", "")
    if not _INTEGER_RE.fullmatch(raw_timeout):
        raise ConfigError(f"invalid CONC_SEARCH_TIMEOUT value {raw_timeout!r}")

    parsers_path = os.getenv("PARSERS_CONFIG_ADDRESS_STRING", "")
    return Config(
        api=APIConfig(conc_search_timeout=float(int(raw_timeout))),
        cache=load_yaml_config(os.getenv("CACHES_CONFIG_ADDRESS_STRING", ""), default_cache_config),
        parsers=load_yaml_config(parsers_path, default_parsers_config),
        manager=load_yaml_config(parsers_path, default_parsers_manager_config),
        health_check=load_yaml_config(
            os.getenv("HEALTH_CHECK_CONFIG_ADDRESS_STRING", ""), default_health_check_config
        ),
    )


def load_config(env_path: str | os.PathLike[str] = ".env") -> Config:
    """Load the .env file at ``env_path`` and the YAML files it points to."""
    try:
        return _load(env_path)
    except ConfigError as exc:
        raise ConfigError(f"Error during loading config: {exc}") from exc