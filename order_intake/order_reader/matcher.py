"""Header matching: one alternation built from every known header."""
from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass


@dataclass(frozen=True)
class StringRegion:
    value: str
    is_match: bool


def build_header_pattern(headers: Iterable[str]) -> re.Pattern[str] | None:
    names = sorted({header for header in headers if header}, key=len, reverse=True)
    if not names:
        return None
    return re.compile("|".join(re.escape(name) for name in names))


def split_by_matches(pattern: re.Pattern[str] | None, text: str) -> list[StringRegion]:
    """Split ``text`` into alternating unmatched and matched regions.

    The regions cover ``text`` without gaps. A string without matches comes
    back as a single unmatched region, even when it is empty.
    """
    results: list[StringRegion] = []
    cursor = 0
    if pattern is not None:
        for match in pattern.finditer(text):
            if cursor != match.start():
                results.append(StringRegion(text[cursor : match.start()], False))
            results.append(StringRegion(match.group(0), True))
            cursor = match.end()
    if cursor != len(text) or not results:
        results.append(StringRegion(text[cursor:], False))
    return results


class HeaderMatcher:
    def __init__(self, headers: Iterable[str]) -> None:
        self.pattern = build_header_pattern(headers)

    def split(self, line: str) -> list[StringRegion]:
        return split_by_matches(self.pattern, line)

    def headers_in(self, text: str) -> set[str]:
        """Distinct headers occurring anywhere in ``text``."""
        if self.pattern is None:
            return set()
        return {match.group(0) for match in self.pattern.finditer(text)}
