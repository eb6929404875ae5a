"""Dictionary describing which headers make up which object types."""
from __future__ import annotations

import copy
import json
import re
from collections.abc import Mapping, MutableMapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, cast

from .errors import ConfigurationError, UnknownHeaderError
from .processors import Processor, Trimmed, build_processor

DEFAULT_RECORD_SEPARATOR = r"^_+$"
OPTIONS_KEY = "options"
META_KEY = "_meta"


@dataclass(frozen=True)
class OwnershipRule:
    """Nest records of a type under the top-level record sharing ``match_on``."""

    match_on: str
    as_field: str


@dataclass
class TypeDefinition:
    name: str
    fields: dict[str, str] = field(default_factory=dict)
    processors: dict[str, Processor] = field(default_factory=dict)
    belongs_to: OwnershipRule | None = None

    @property
    def headers(self) -> list[str]:
        return list(self.processors)


def load_dictionary(path: Path) -> dict[str, Any]:
    with path.open("r", encoding="utf-8") as fh:
        try:
            data = json.load(fh)
        except json.JSONDecodeError as exc:
            raise ConfigurationError(f"Dictionary {path} is not valid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigurationError(f"Dictionary {path} must hold a JSON object")
    return cast(dict[str, Any], data)


def _parse_ownership(type_name: str, raw: Any) -> OwnershipRule | None:
    if not raw:
        return None
    if not isinstance(raw, Mapping):
        raise ConfigurationError(f"'belongs_to' of {type_name} must be a mapping")
    # "by" is accepted as an older spelling of "match_on".
    match_on = raw.get("match_on") or raw.get("by")
    as_field = raw.get("as")
    if not match_on or not as_field:
        raise ConfigurationError(
            f"'belongs_to' of {type_name} needs both 'match_on' and 'as'"
        )
    return OwnershipRule(match_on=str(match_on), as_field=str(as_field))


def _section(type_name: str, raw: Mapping[str, Any], key: str) -> Mapping[str, Any]:
    section = raw.get(key) or {}
    if not isinstance(section, Mapping):
        raise ConfigurationError(f"'{key}' of {type_name} must be a mapping")
    return section


def _parse_type(type_name: str, raw: Any) -> TypeDefinition:
    if not isinstance(raw, Mapping):
        raise ConfigurationError(f"Definition of {type_name} must be a mapping")
    definition = TypeDefinition(name=type_name)
    fields = _section(type_name, raw, "fields")
    by_header = _section(type_name, raw, "fields_by_header")
    for field_name, header in fields.items():
        if not isinstance(header, str) or not header:
            raise ConfigurationError(
                f"Header for field '{field_name}' in {type_name} must be a non-empty string"
            )
        definition.fields[field_name] = header
        definition.processors.setdefault(header, Trimmed(field=field_name))
    for header, field_def in by_header.items():
        if not header:
            raise ConfigurationError(f"Empty header in 'fields_by_header' of {type_name}")
        if not isinstance(field_def, Mapping):
            raise ConfigurationError(
                f"Field definition for header {header!r} in {type_name} must be a mapping"
            )
        options = {key: value for key, value in field_def.items() if key != "type"}
        processor = build_processor(field_def.get("type"), options)
        definition.processors.setdefault(header, processor)
    definition.belongs_to = _parse_ownership(type_name, raw.get("belongs_to"))
    return definition


class FieldDictionary:
    """Lookups over a validated dictionary.

    Every processor is built here, so configuration errors surface when the
    dictionary is loaded rather than halfway through a parse. The instance is
    read-only afterwards and can be shared between parses.
    """

    def __init__(self, data: Mapping[str, Any]) -> None:
        if not isinstance(data, Mapping):
            raise ConfigurationError("Dictionary must be a mapping of type names")
        self.data = copy.deepcopy(dict(data))
        options = self.data.get(OPTIONS_KEY) or {}
        if not isinstance(options, Mapping):
            raise ConfigurationError("Dictionary 'options' must be a mapping")
        self.options: dict[str, Any] = dict(options)
        self.types: dict[str, TypeDefinition] = {
            type_name: _parse_type(type_name, raw)
            for type_name, raw in self.data.items()
            if type_name != OPTIONS_KEY
        }
        self._record_separator = self._compile_separator()

    def _compile_separator(self) -> re.Pattern[str]:
        pattern = self.options.get("record_separator") or DEFAULT_RECORD_SEPARATOR
        if not isinstance(pattern, str):
            raise ConfigurationError(f"record_separator must be a string, got {pattern!r}")
        try:
            return re.compile(pattern)
        except re.error as exc:
            raise ConfigurationError(f"Invalid record_separator {pattern!r}: {exc}") from exc

    @property
    def type_names(self) -> list[str]:
        return list(self.types)

    @property
    def record_separator(self) -> re.Pattern[str]:
        return self._record_separator

    def all_headers(self) -> list[str]:
        headers: list[str] = []
        for definition in self.types.values():
            headers.extend(definition.headers)
        return headers

    def types_for_header(self, header: str) -> list[str]:
        return [
            type_name
            for type_name, definition in self.types.items()
            if header in definition.processors
        ]

    def duplicate_headers(self) -> dict[str, list[str]]:
        duplicates: dict[str, list[str]] = {}
        for header in dict.fromkeys(self.all_headers()):
            owners = self.types_for_header(header)
            if len(owners) > 1:
                duplicates[header] = owners
        return duplicates

    def process(
        self, target: MutableMapping[str, Any], type_name: str, header: str, value: Any
    ) -> None:
        """Turn a raw header/value pair into fields on ``target``."""
        if header == META_KEY:
            target[META_KEY] = value
            return
        definition = self.types.get(type_name)
        processor = definition.processors.get(header) if definition else None
        if processor is None:
            raise UnknownHeaderError(type_name, header)
        processor.apply(target, header, value)

    def owner_of(self, type_name: str) -> OwnershipRule | None:
        definition = self.types.get(type_name)
        return definition.belongs_to if definition else None
