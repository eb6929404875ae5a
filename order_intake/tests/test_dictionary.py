from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest

from order_intake.order_reader import (
    DEFAULT_RECORD_SEPARATOR,
    ConfigurationError,
    FieldDictionary,
    RequiredOptionError,
    UnknownHeaderError,
    UnknownProcessorError,
    load_dictionary,
)
from order_intake.order_reader.defaults import ORDER_DICTIONARY
from order_intake.order_reader.dictionary import OwnershipRule

DICTIONARY: dict[str, Any] = {
    "options": {"record_separator": "^===+$"},
    "Request": {
        "fields": {"request_no": "Request:", "notes": "Notes:"},
        "fields_by_header": {
            "Crew:": {
                "type": "field_followed_by_table",
                "field_name": "crew",
                "table_name": "members",
                "num_columns": 2,
            }
        },
    },
    "Item": {
        "fields": {"request_no": "Item for:", "notes": "Notes:"},
        "belongs_to": {"match_on": "request_no", "as": "items"},
    },
}


def test_all_headers_covers_fields_and_fields_by_header() -> None:
    dictionary = FieldDictionary(DICTIONARY)
    assert dictionary.all_headers() == ["Request:", "Notes:", "Crew:", "Item for:", "Notes:"]
    assert dictionary.type_names == ["Request", "Item"]


def test_types_for_header() -> None:
    dictionary = FieldDictionary(DICTIONARY)
    assert dictionary.types_for_header("Crew:") == ["Request"]
    assert dictionary.types_for_header("Notes:") == ["Request", "Item"]
    assert dictionary.types_for_header("Missing:") == []
    assert dictionary.types_for_header("_meta") == []


def test_duplicate_headers() -> None:
    assert FieldDictionary(DICTIONARY).duplicate_headers() == {"Notes:": ["Request", "Item"]}
    assert FieldDictionary(ORDER_DICTIONARY).duplicate_headers() == {
        "Cost Center:": ["OrderOwner", "Order"]
    }


def test_process_dispatches_by_header() -> None:
    dictionary = FieldDictionary(DICTIONARY)
    record: dict[str, Any] = {}
    dictionary.process(record, "Request", "Request:", " 42 ")
    dictionary.process(record, "Request", "Crew:", "Day\nName\nRole\nAda\nLead")
    dictionary.process(record, "Request", "_meta", {"ignored_text": ["x"]})
    assert record == {
        "request_no": "42",
        "crew": "Day",
        "members": [{"Name": "Ada", "Role": "Lead"}],
        "_meta": {"ignored_text": ["x"]},
    }


def test_process_rejects_header_of_another_type() -> None:
    dictionary = FieldDictionary(DICTIONARY)
    with pytest.raises(UnknownHeaderError) as excinfo:
        dictionary.process({}, "Item", "Crew:", "x")
    assert isinstance(excinfo.value, KeyError)
    assert "Crew:" in str(excinfo.value)


def test_owner_of() -> None:
    dictionary = FieldDictionary(DICTIONARY)
    assert dictionary.owner_of("Request") is None
    assert dictionary.owner_of("Item") == OwnershipRule(match_on="request_no", as_field="items")


def test_record_separator_resolution() -> None:
    assert FieldDictionary(DICTIONARY).record_separator.pattern == "^===+$"
    default = FieldDictionary({"Order": {"fields": {"foo": "Foo:"}}}).record_separator
    assert default.pattern == DEFAULT_RECORD_SEPARATOR
    assert default.search("_____")
    assert not default.search("__ __")


def test_dictionary_input_is_not_mutated() -> None:
    data = {"Order": {"fields": {"foo": "Foo:"}}}
    FieldDictionary(data)
    assert data == {"Order": {"fields": {"foo": "Foo:"}}}


def test_processor_options_are_validated_on_load() -> None:
    with pytest.raises(RequiredOptionError, match="num_columns"):
        FieldDictionary(
            {
                "Order": {
                    "fields_by_header": {
                        "Table:": {
                            "type": "field_followed_by_table",
                            "field_name": "a",
                            "table_name": "b",
                        }
                    }
                }
            }
        )
    with pytest.raises(UnknownProcessorError):
        FieldDictionary({"Order": {"fields_by_header": {"Table:": {"field": "a"}}}})


@pytest.mark.parametrize(
    "data",
    [
        {"Order": {"fields": {"foo": ""}}},
        {"Order": {"fields": {"foo": 3}}},
        {"Order": ["Foo:"]},
        {"Order": {"fields": {"foo": "Foo:"}, "belongs_to": {"as": "orders"}}},
        {"Order": {"fields": {"foo": "Foo:"}}, "options": {"record_separator": "("}},
        {"Order": {"fields_by_header": {"Foo:": "trimmed"}}},
        {"Order": {"fields": ["Foo:"]}},
        {"Order": {"fields_by_header": ["Foo:"]}},
        {"Order": {"fields": {"foo": "Foo:"}}, "options": {"record_separator": 5}},
    ],
)
def test_invalid_dictionaries(data: dict[str, Any]) -> None:
    with pytest.raises(ConfigurationError):
        FieldDictionary(data)


def test_load_dictionary(tmp_path: Path) -> None:
    path = tmp_path / "dictionary.json"
    path.write_text(json.dumps(DICTIONARY), encoding="utf-8")
    assert load_dictionary(path) == DICTIONARY

    path.write_text("[1, 2]", encoding="utf-8")
    with pytest.raises(ConfigurationError):
        load_dictionary(path)

    path.write_text("{not json", encoding="utf-8")
    with pytest.raises(ConfigurationError, match="not valid JSON"):
        load_dictionary(path)
