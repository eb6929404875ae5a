"""Field processors turning a raw header/value capture into record fields."""
from __future__ import annotations

import re
from collections.abc import Mapping, MutableMapping
from dataclasses import dataclass
from typing import Any, ClassVar

from .errors import ConfigurationError, MalformedTableError, RequiredOptionError, UnknownProcessorError

CONTACT_LINE_RE = re.compile(r"^Contact ")
CONTACT_NAME_RE = re.compile(r"^Contact Name\b\s*(.*)$")
TELEPHONE_RE = re.compile(r"^Telephone\b\s*(.*)$")
SECONDARY_LOCATION_RE = re.compile(r"^Secondary Location")
LINE_BREAK_RE = re.compile(r"\r?\n")


def split_lines(value: str) -> list[str]:
    """Split ``value`` on newlines, dropping the newline characters."""
    return LINE_BREAK_RE.split(value)


def required_option(kind: str, options: Mapping[str, Any], name: str) -> Any:
    value = options.get(name)
    if value is None or value == "":
        raise RequiredOptionError(kind, name)
    return value


@dataclass(frozen=True)
class Trimmed:
    """A basic value, kept as a string with surrounding whitespace removed."""

    kind: ClassVar[str] = "trimmed"

    field: str

    @classmethod
    def from_options(cls, options: Mapping[str, Any]) -> Trimmed:
        return cls(field=str(required_option(cls.kind, options, "field")))

    def apply(self, record: MutableMapping[str, Any], header: str, value: str) -> None:
        record[self.field] = value.strip()


@dataclass(frozen=True)
class FieldFollowedByTable:
    """A normal field followed by a table printed one cell per line.

    The table starts with a header row and every row is printed in column
    order. With the leading value of the normal field included::

        Community Ensemble
        Name
        Age
        Sarah
        33
        David
        31

    ``num_columns=2`` turns the lines above into ``"Community Ensemble"`` and
    ``[{"Name": "Sarah", "Age": "33"}, {"Name": "David", "Age": "31"}]``.
    """

    kind: ClassVar[str] = "field_followed_by_table"

    field_name: str
    table_name: str
    num_columns: int

    @classmethod
    def from_options(cls, options: Mapping[str, Any]) -> FieldFollowedByTable:
        raw_columns = required_option(cls.kind, options, "num_columns")
        try:
            num_columns = int(raw_columns)
        except (TypeError, ValueError) as exc:
            raise ConfigurationError(
                f"Processor '{cls.kind}' option 'num_columns' must be an integer, got {raw_columns!r}"
            ) from exc
        if num_columns <= 0:
            raise ConfigurationError(
                f"Processor '{cls.kind}' option 'num_columns' must be positive, got {num_columns}"
            )
        return cls(
            field_name=str(required_option(cls.kind, options, "field_name")),
            table_name=str(required_option(cls.kind, options, "table_name")),
            num_columns=num_columns,
        )

    def apply(self, record: MutableMapping[str, Any], header: str, value: str) -> None:
        lines = split_lines(value)
        start = 0
        while start < len(lines) and not lines[start].strip():
            start += 1
        record[self.field_name] = lines[start].strip() if start < len(lines) else ""

        table_lines = [line.strip() for line in lines[start + 1 :]]
        table_lines = [line for line in table_lines if line]
        if len(table_lines) % self.num_columns != 0:
            raise MalformedTableError(header, len(table_lines), self.num_columns)
        columns = table_lines[: self.num_columns]
        num_rows = len(table_lines) // self.num_columns - 1
        rows: list[dict[str, str]] = []
        for index in range(1, num_rows + 1):
            cells = table_lines[index * self.num_columns : (index + 1) * self.num_columns]
            rows.append(dict(zip(columns, cells)))
        record[self.table_name] = rows


@dataclass(frozen=True)
class PrimarySecondaryLocation:
    """Primary/Secondary Location text together with its contacts."""

    kind: ClassVar[str] = "primary_secondary_location"

    location_field: str
    contacts_field: str

    @classmethod
    def from_options(cls, options: Mapping[str, Any]) -> PrimarySecondaryLocation:
        return cls(
            location_field=str(required_option(cls.kind, options, "location_field")),
            contacts_field=str(required_option(cls.kind, options, "contacts_field")),
        )

    def apply(self, record: MutableMapping[str, Any], header: str, value: str) -> None:
        lines = split_lines(value)
        contact_index = next(
            (index for index, line in enumerate(lines) if CONTACT_LINE_RE.match(line.strip())),
            len(lines),
        )
        label_index = next(
            (index for index, line in enumerate(lines) if SECONDARY_LOCATION_RE.match(line.strip())),
            -1,
        )
        location_lines = lines[label_index + 1 : contact_index]
        contact_lines = [line.strip() for line in lines[contact_index:] if line.strip()]
        record[self.contacts_field] = parse_contacts(contact_lines)
        record[self.location_field] = "\n".join(location_lines).strip()


def parse_contacts(lines: list[str]) -> list[dict[str, str | None]]:
    contacts: list[dict[str, str | None]] = []
    current: dict[str, str | None] | None = None

    def flush() -> None:
        if current and (current["name"] or current["phone"]):
            contacts.append(current)

    for line in lines:
        name_match = CONTACT_NAME_RE.match(line)
        if name_match:
            flush()
            current = {"name": name_match.group(1).strip() or None, "phone": None}
            continue
        phone_match = TELEPHONE_RE.match(line)
        if phone_match:
            phone = phone_match.group(1).strip() or None
            if current is None or current["phone"] is not None:
                flush()
                current = {"name": None, "phone": phone}
            else:
                current["phone"] = phone
            continue
        # Any other line closes the block in progress.
        flush()
        current = None
    flush()
    return contacts


Processor = Trimmed | FieldFollowedByTable | PrimarySecondaryLocation

PROCESSOR_TYPES: dict[str, type[Processor]] = {
    Trimmed.kind: Trimmed,
    FieldFollowedByTable.kind: FieldFollowedByTable,
    PrimarySecondaryLocation.kind: PrimarySecondaryLocation,
}


def build_processor(kind: str, options: Mapping[str, Any]) -> Processor:
    processor_type = PROCESSOR_TYPES.get(kind) if isinstance(kind, str) else None
    if processor_type is None:
        raise UnknownProcessorError(kind)
    return processor_type.from_options(options)
