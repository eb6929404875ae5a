#!/usr/bin/env python3
"""CLI entrypoint for converting order reports to JSON."""
from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import Any

from order_intake.order_reader import (
    ConfigurationError,
    FieldDictionary,
    OrderParser,
    OrderReaderError,
    load_dictionary,
    sources,
)
from order_intake.order_reader.defaults import ORDER_DICTIONARY

logger = logging.getLogger("order_intake.order_reader.cli")


def configure_logging(verbose: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="[%(levelname)s] %(message)s",
    )


def resolve_dictionary(path: str | None) -> dict[str, Any]:
    """Dictionary from ``path``, then $ORDER_READER_DICTIONARY, then the built-in one."""
    chosen = path or os.environ.get("ORDER_READER_DICTIONARY")
    if not chosen:
        logger.debug("Using built-in order dictionary")
        return ORDER_DICTIONARY
    resolved = Path(chosen).expanduser().resolve()
    if not resolved.exists():
        raise SystemExit(f"Dictionary not found: {resolved}")
    logger.debug("Loading dictionary %s", resolved)
    return load_dictionary(resolved)


def build_order_parser(path: str | None) -> OrderParser:
    try:
        return OrderParser(resolve_dictionary(path))
    except ConfigurationError as exc:
        raise SystemExit(f"Invalid dictionary: {exc}") from exc


def command_convert(args: argparse.Namespace) -> None:
    report = Path(args.report).expanduser().resolve()
    if not report.exists():
        raise SystemExit(f"Report not found: {report}")
    order_parser = build_order_parser(args.dictionary)
    try:
        text, extraction = sources.read_report_text(
            report, source_settings(args), order_parser.matcher
        )
        if extraction is not None:
            logger.debug(
                "Extracted %d characters with %s (%d order headers)",
                extraction.chars,
                extraction.backend,
                extraction.header_hits,
            )
            for warning in extraction.warnings:
                logger.warning("%s: %s", report.name, warning)
        records = order_parser.parse(text)
    except OrderReaderError as exc:
        raise SystemExit(f"Error: {exc}") from exc
    payload = json.dumps(records, ensure_ascii=False)
    if args.output:
        output = Path(args.output).expanduser()
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(payload + "\n", encoding="utf-8")
        logger.info("Wrote %d records to %s", len(records), output)
    else:
        print(payload)


def command_batch(args: argparse.Namespace) -> None:
    target = Path(args.target).expanduser().resolve()
    if not target.is_dir():
        raise SystemExit(f"Target directory not found: {target}")
    out_dir = Path(args.out_dir).expanduser().resolve() if args.out_dir else target / "_converted"
    order_parser = build_order_parser(args.dictionary)
    logger.info("Converting reports under %s", target)
    results = sources.convert_directory(order_parser, target, source_settings(args))
    write_jsonl(
        out_dir / "records.jsonl",
        (
            {"file": result.file, "records": result.records}
            for result in results.values()
            if result.status == "converted"
        ),
    )
    write_scan_report(out_dir / "scan_report.json", target, results)
    failed = sum(1 for result in results.values() if result.status == "error")
    logger.info(
        "Converted %d files (%d failed) into %s",
        len(results) - failed,
        failed,
        out_dir,
    )


def command_check(args: argparse.Namespace) -> None:
    try:
        dictionary = FieldDictionary(resolve_dictionary(args.dictionary))
    except ConfigurationError as exc:
        raise SystemExit(f"Invalid dictionary: {exc}") from exc
    print("Type".ljust(30), "Headers".ljust(8), "Belongs to")
    print("-" * 60)
    for type_name, definition in dictionary.types.items():
        owner = definition.belongs_to
        owner_text = f"{owner.as_field} by {owner.match_on}" if owner else "-"
        print(type_name.ljust(30), str(len(definition.headers)).ljust(8), owner_text)
    for header, owners in dictionary.duplicate_headers().items():
        logger.warning("Header %r is declared by %s", header, ", ".join(owners))
    print("\nRecord separator:", dictionary.record_separator.pattern)


def write_jsonl(path: Path, items: Iterable[Mapping[str, Any]]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as fh:
        for item in items:
            fh.write(json.dumps(item, ensure_ascii=False))
            fh.write("\n")


def write_scan_report(
    path: Path, target: Path, results: Mapping[str, sources.ConversionResult]
) -> None:
    report = {
        "target": str(target),
        "files": {file: result.to_dict() for file, result in results.items()},
        "counts": {
            "files": len(results),
            "records": sum(result.record_count for result in results.values()),
            "errors": sum(1 for result in results.values() if result.status == "error"),
        },
    }
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as fh:
        json.dump(report, fh, indent=2)


def parse_backend_list(value: str | None) -> list[str] | None:
    if not value:
        return None
    parts = [entry.strip() for entry in value.split(",") if entry.strip()]
    return parts or None


def source_settings(args: argparse.Namespace) -> sources.SourceSettings:
    return sources.SourceSettings.resolve(parse_backend_list(args.pdf_backends), args.min_pdf_chars)


def add_source_options(subparser: argparse.ArgumentParser) -> None:
    subparser.add_argument(
        "--pdf-backends",
        help="Comma-separated PDF extraction backend order (overrides ORDER_READER_PDF_BACKENDS)",
    )
    subparser.add_argument(
        "--min-pdf-chars",
        type=int,
        help="Minimum characters expected from a PDF (overrides ORDER_READER_MIN_PDF_CHARS)",
    )


def build_parser() -> argparse.ArgumentParser:
    parser_obj = argparse.ArgumentParser(description="Convert order reports to JSON")
    parser_obj.add_argument("--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser_obj.add_subparsers(dest="command")

    dictionary_help = "Dictionary JSON file (defaults to $ORDER_READER_DICTIONARY or the built-in one)"

    convert_parser = subparsers.add_parser("convert", help="Convert a single report")
    convert_parser.add_argument("report", help="Report file (.txt, .pdf, .docx, .html)")
    convert_parser.add_argument("--dictionary", help=dictionary_help)
    convert_parser.add_argument("--output", help="Write JSON here instead of stdout")
    add_source_options(convert_parser)
    convert_parser.set_defaults(func=command_convert)

    batch_parser = subparsers.add_parser("batch", help="Convert every report in a directory")
    batch_parser.add_argument("target", help="Directory holding reports")
    batch_parser.add_argument("--dictionary", help=dictionary_help)
    batch_parser.add_argument("--out-dir", help="Output directory (defaults to TARGET/_converted)")
    add_source_options(batch_parser)
    batch_parser.set_defaults(func=command_batch)

    check_parser = subparsers.add_parser("check", help="Validate a dictionary")
    check_parser.add_argument("--dictionary", help=dictionary_help)
    check_parser.set_defaults(func=command_check)

    return parser_obj


def main(argv: list[str] | None = None) -> None:
    parser_obj = build_parser()
    args = parser_obj.parse_args(argv)
    if not getattr(args, "command", None):
        parser_obj.print_help()
        return
    configure_logging(args.verbose)
    args.func(args)


if __name__ == "__main__":
    main(sys.argv[1:])
