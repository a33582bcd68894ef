"""Registry that builds parsers from registered constructors and configs."""

from __future__ import annotations

import enum
import threading
from typing import Any, Callable

from .config import ParserInstanceConfig

ParserConstructor = Callable[[ParserInstanceConfig | None], Any]


class FactoryError(Exception):
    """Raised when a parser cannot be built by the factory."""


class ParserType(str, enum.Enum):
    """Known parser kinds."""

    HH = "hh"
    SJ = "superjob"


def _key(parser_type: ParserType | str) -> str:
    if isinstance(parser_type, ParserType):
        return parser_type.value
    return str(parser_type)


class ParserFactory:
    """Builds parsers from the constructors and configs registered for their types."""

    def __init__(self) -> None:
        self._constructors: dict[str, ParserConstructor] = {}
        self._configs: dict[str, ParserInstanceConfig | None] = {}
        self._lock = threading.RLock()

    def register(
        self,
        parser_type: ParserType | str,
        config: ParserInstanceConfig | None,
        constructor: ParserConstructor,
    ) -> None:
        """Register ``constructor`` and ``config`` for ``parser_type``."""
        key = _key(parser_type)
        with self._lock:
            self._constructors[key] = constructor
            self._configs[key] = config

    def create(self, parser_type: ParserType | str) -> Any:
        """Build the parser registered for ``parser_type``."""
        key = _key(parser_type)
        with self._lock:
            constructor = self._constructors.get(key)
            has_config = key in self._configs
            config = self._configs.get(key)
        if constructor is None:
            raise FactoryError(f"parser type not registered: {key}")
        if not has_config:
            raise FactoryError(f"config not found for parser: {key}")
        return constructor(config)

    def create_enabled(self, enabled: list[ParserType | str]) -> list[Any]:
        """Build every parser in ``enabled``; any failure fails the whole call."""
        if not enabled:
            raise FactoryError("no enabled parsers specified")
        parsers = []
        for parser_type in enabled:
            try:
                parsers.append(self.create(parser_type))
            except Exception as exc:
                raise FactoryError(
                    f"failed to create parser {_key(parser_type)}: {exc}"
                ) from exc
        return parsers