"""Exceptions raised while loading dictionaries and parsing reports."""
from __future__ import annotations


class OrderReaderError(Exception):
    """Base class for every error raised by the order reader."""


class ConfigurationError(OrderReaderError):
    """The dictionary cannot be used to build a parser."""


class RequiredOptionError(ConfigurationError):
    def __init__(self, kind: str, option_name: str) -> None:
        super().__init__(f"Processor '{kind}' requires option '{option_name}'")
        self.kind = kind
        self.option_name = option_name


class UnknownProcessorError(ConfigurationError):
    def __init__(self, kind: object) -> None:
        super().__init__(f"Unknown field processor type: {kind!r}")
        self.kind = kind


class ClassificationError(OrderReaderError):
    """A raw record matches no object type, or more than one."""


class MalformedTableError(OrderReaderError):
    def __init__(self, header: str, line_count: int, num_columns: int) -> None:
        super().__init__(
            f"Table {header} has {line_count} lines which can't cleanly divide "
            f"{num_columns} columns"
        )
        self.header = header
        self.line_count = line_count
        self.num_columns = num_columns


class UnknownHeaderError(OrderReaderError, KeyError):
    def __init__(self, type_name: str, header: str) -> None:
        super().__init__(f"No processor found in dictionary for header {header!r} in {type_name}")
        self.type_name = type_name
        self.header = header

    def __str__(self) -> str:
        return str(self.args[0])


class UnsupportedSourceError(OrderReaderError):
    """The report file has a suffix no extractor handles."""


class ExtractionError(OrderReaderError):
    """No usable text could be read out of a report file."""

    def __init__(self, message: str, meta: dict[str, object] | None = None) -> None:
        super().__init__(message)
        self.meta = meta
