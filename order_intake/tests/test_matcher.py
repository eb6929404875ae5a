from __future__ import annotations

from order_intake.order_reader.builder import ObjectBuilder
from order_intake.order_reader.matcher import (
    HeaderMatcher,
    StringRegion,
    build_header_pattern,
    split_by_matches,
)


def regions(matcher: HeaderMatcher, line: str) -> list[tuple[str, bool]]:
    return [(region.value, region.is_match) for region in matcher.split(line)]


def test_split_covers_the_whole_line() -> None:
    matcher = HeaderMatcher(["Foo:", "Bar:"])
    assert regions(matcher, "x Foo: 1 Bar:") == [
        ("x ", False),
        ("Foo:", True),
        (" 1 ", False),
        ("Bar:", True),
    ]
    assert regions(matcher, "Foo:Bar:") == [("Foo:", True), ("Bar:", True)]


def test_line_without_matches_is_one_region() -> None:
    matcher = HeaderMatcher(["Foo:"])
    assert matcher.split("hello") == [StringRegion("hello", False)]
    assert matcher.split("") == [StringRegion("", False)]


def test_headers_are_matched_literally() -> None:
    matcher = HeaderMatcher(["Request #:", "Cost (USD):"])
    assert regions(matcher, "Request #: 7 Cost (USD): 9") == [
        ("Request #:", True),
        (" 7 ", False),
        ("Cost (USD):", True),
        (" 9", False),
    ]
    assert regions(matcher, "Request 1: x") == [("Request 1: x", False)]


def test_longer_header_wins_over_its_prefix() -> None:
    matcher = HeaderMatcher(["Due", "Due Date:"])
    assert regions(matcher, "Due Date: today") == [("Due Date:", True), (" today", False)]


def test_headers_in_lists_distinct_headers() -> None:
    matcher = HeaderMatcher(["Foo:", "Bar:"])
    assert matcher.headers_in("Foo: 1\nFoo: 2 Bar: 3") == {"Foo:", "Bar:"}
    assert HeaderMatcher([]).headers_in("Foo: 1") == set()


def test_no_headers_builds_no_pattern() -> None:
    assert build_header_pattern([]) is None
    assert build_header_pattern([""]) is None
    assert split_by_matches(None, "Foo: 1") == [StringRegion("Foo: 1", False)]


def test_object_builder_tracks_warnings_and_emptiness() -> None:
    builder = ObjectBuilder()
    assert builder.is_empty
    builder.warn("ignored_text", "Ignored header: 'x'")
    assert builder.is_empty
    builder.store("Foo:", " 1")
    builder.store("Foo:", " 2")
    assert not builder.is_empty
    assert builder.object == {
        "Foo:": " 2",
        "_meta": {"ignored_text": ["Ignored header: 'x'", "Repeated value for 'Foo:', ' 1'"]},
    }
