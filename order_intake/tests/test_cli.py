from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest
from pypdf import PdfWriter

from order_intake.scripts import convert_orders

DICTIONARY = {
    "Order": {"fields": {"foo": "Foo:"}},
    "Suborder": {
        "fields": {"foo": "foo:", "bar": "bar:"},
        "belongs_to": {"match_on": "foo", "as": "suborders"},
    },
    "Other": {"fields": {"baz": "Baz:"}},
}


@pytest.fixture()
def dictionary_path(tmp_path: Path) -> Path:
    path = tmp_path / "dictionary.json"
    path.write_text(json.dumps(DICTIONARY), encoding="utf-8")
    return path


@pytest.fixture(autouse=True)
def no_dictionary_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("ORDER_READER_DICTIONARY", raising=False)


def test_convert_prints_json(
    tmp_path: Path, dictionary_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    report = tmp_path / "report.txt"
    report.write_text("Foo: 1\n___\nfoo: 1\nbar: hello\n", encoding="utf-8")
    convert_orders.main(["convert", str(report), "--dictionary", str(dictionary_path)])
    out = capsys.readouterr().out
    assert json.loads(out) == [{"foo": "1", "suborders": [{"foo": "1", "bar": "hello"}]}]


def test_convert_writes_output_file(
    tmp_path: Path, dictionary_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    report = tmp_path / "report.txt"
    report.write_text("Foo: 7\n", encoding="utf-8")
    output = tmp_path / "out" / "report.json"
    monkeypatch.setenv("ORDER_READER_DICTIONARY", str(dictionary_path))
    convert_orders.main(["convert", str(report), "--output", str(output)])
    assert json.loads(output.read_text(encoding="utf-8")) == [{"foo": "7"}]


def test_convert_uses_built_in_dictionary(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    report = tmp_path / "report.txt"
    report.write_text("Request # : 55\nPriority: Low\n", encoding="utf-8")
    convert_orders.main(["convert", str(report)])
    assert json.loads(capsys.readouterr().out) == [{"request_no": "55", "priority": "Low"}]


def test_convert_reports_parse_errors(tmp_path: Path, dictionary_path: Path) -> None:
    report = tmp_path / "report.txt"
    report.write_text("Foo: 1\nBaz: 2\n", encoding="utf-8")
    with pytest.raises(SystemExit, match="two or more types"):
        convert_orders.main(["convert", str(report), "--dictionary", str(dictionary_path)])


def test_batch_writes_records_and_scan_report(tmp_path: Path, dictionary_path: Path) -> None:
    target = tmp_path / "reports"
    target.mkdir()
    (target / "one.txt").write_text("Foo: 1\n___\nFoo: 2\n", encoding="utf-8")
    (target / "two.txt").write_text("Foo: 3\nBaz: 4\n", encoding="utf-8")
    out_dir = tmp_path / "converted"

    convert_orders.main(
        ["batch", str(target), "--dictionary", str(dictionary_path), "--out-dir", str(out_dir)]
    )

    lines = (out_dir / "records.jsonl").read_text(encoding="utf-8").splitlines()
    assert [json.loads(line) for line in lines] == [
        {"file": "one.txt", "records": [{"foo": "1"}, {"foo": "2"}]}
    ]
    report = json.loads((out_dir / "scan_report.json").read_text(encoding="utf-8"))
    assert report["counts"] == {"files": 2, "records": 2, "errors": 1}
    assert report["files"]["one.txt"]["status"] == "converted"
    assert report["files"]["two.txt"]["status"] == "error"


def test_check_lists_types_and_duplicate_headers(
    capsys: pytest.CaptureFixture[str], caplog: pytest.LogCaptureFixture
) -> None:
    with caplog.at_level(logging.WARNING):
        convert_orders.main(["check"])
    out = capsys.readouterr().out
    assert "OrderOwner" in out
    assert "orders by request_no" in out
    assert "Record separator: ^_+$" in out
    assert "'Cost Center:' is declared by OrderOwner, Order" in caplog.text


def test_check_rejects_invalid_dictionary(tmp_path: Path) -> None:
    path = tmp_path / "broken.json"
    path.write_text(
        json.dumps({"Order": {"fields_by_header": {"Foo:": {"type": "mystery"}}}}),
        encoding="utf-8",
    )
    with pytest.raises(SystemExit, match="Invalid dictionary"):
        convert_orders.main(["check", "--dictionary", str(path)])


def test_missing_dictionary_file(tmp_path: Path) -> None:
    with pytest.raises(SystemExit, match="Dictionary not found"):
        convert_orders.main(["check", "--dictionary", str(tmp_path / "nope.json")])


def test_no_command_prints_help(capsys: pytest.CaptureFixture[str]) -> None:
    convert_orders.main([])
    assert "convert" in capsys.readouterr().out


@pytest.mark.parametrize(
    "content",
    [
        "{not json",
        json.dumps({"Order": {"fields": ["Foo:"]}}),
        json.dumps({"Order": {"fields": {"foo": "Foo:"}}, "options": {"record_separator": 5}}),
    ],
)
def test_malformed_dictionary_files_are_reported(tmp_path: Path, content: str) -> None:
    path = tmp_path / "broken.json"
    path.write_text(content, encoding="utf-8")
    with pytest.raises(SystemExit, match="Invalid dictionary"):
        convert_orders.main(["check", "--dictionary", str(path)])


def test_convert_replaces_invalid_utf8(
    tmp_path: Path, dictionary_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    report = tmp_path / "report.txt"
    report.write_bytes(b"Foo: caf\xe9\n")
    convert_orders.main(["convert", str(report), "--dictionary", str(dictionary_path)])
    assert json.loads(capsys.readouterr().out) == [{"foo": "caf\ufffd"}]


def test_convert_reports_pdf_without_text(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    report = tmp_path / "scanned.pdf"
    writer = PdfWriter()
    writer.add_blank_page(width=200, height=200)
    with report.open("wb") as fh:
        writer.write(fh)
    monkeypatch.setenv("ORDER_READER_PDF_BACKENDS", "pypdf")
    with pytest.raises(SystemExit, match="No text extracted from scanned.pdf"):
        convert_orders.main(["convert", str(report)])
