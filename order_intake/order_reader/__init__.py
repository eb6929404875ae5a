"""Dictionary-driven reader for fixed-format order reports."""
from __future__ import annotations

from .dictionary import DEFAULT_RECORD_SEPARATOR, FieldDictionary, load_dictionary
from .errors import (
    ClassificationError,
    ConfigurationError,
    ExtractionError,
    MalformedTableError,
    OrderReaderError,
    RequiredOptionError,
    UnknownHeaderError,
    UnknownProcessorError,
    UnsupportedSourceError,
)
from .parser import OrderParser

__all__ = [
    "DEFAULT_RECORD_SEPARATOR",
    "FieldDictionary",
    "OrderParser",
    "load_dictionary",
    "OrderReaderError",
    "ConfigurationError",
    "RequiredOptionError",
    "UnknownProcessorError",
    "ClassificationError",
    "MalformedTableError",
    "UnknownHeaderError",
    "UnsupportedSourceError",
    "ExtractionError",
]
