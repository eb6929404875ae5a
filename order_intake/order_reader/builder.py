"""Raw header/value capture for a single record."""
from __future__ import annotations

from typing import Any

from .dictionary import META_KEY


class ObjectBuilder:
    """I store raw header/value pairs extracted from the input source."""

    def __init__(self) -> None:
        self.object: dict[str, Any] = {}

    def store(self, header: str, value: str) -> None:
        if header in self.object:
            self.warn("ignored_text", f"Repeated value for '{header}', '{self.object[header]}'")
        self.object[header] = value

    def warn(self, warn_type: str, message: str) -> None:
        meta = self.object.setdefault(META_KEY, {})
        meta.setdefault(warn_type, []).append(message)

    @property
    def is_empty(self) -> bool:
        return not any(key != META_KEY for key in self.object)
