"""Report sources: turn exported order report files into text for the parser."""
from __future__ import annotations

import logging
import os
import tempfile
from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass, field
from hashlib import sha256
from pathlib import Path
from typing import Any

from bs4 import BeautifulSoup
from docx import Document
from pdfminer.high_level import extract_text as pdfminer_extract_text
from pypdf import PdfReader

from .errors import ExtractionError, OrderReaderError, UnsupportedSourceError
from .matcher import HeaderMatcher
from .parser import OrderParser

logger = logging.getLogger(__name__)

DEFAULT_PDF_BACKENDS = ("pypdf", "pdfminer", "pikepdf+pypdf", "pikepdf+pdfminer")
DEFAULT_MIN_PDF_CHARS = 1
REPAIR_PREFIX = "pikepdf+"

SUPPORTED_EXTENSIONS = {".txt", ".pdf", ".docx", ".html", ".htm"}

HTML_BLOCK_TAGS = ["p", "div", "br", "tr", "li", "h1", "h2", "h3", "h4", "h5", "h6"]


def _env_int(name: str, default: int) -> int:
    value = os.environ.get(name)
    if not value:
        return default
    try:
        return int(value)
    except ValueError:
        logger.warning("Ignoring invalid %s=%r", name, value)
        return default


@dataclass(frozen=True)
class SourceSettings:
    """How report files are read; explicit values win over the environment."""

    pdf_backends: tuple[str, ...] = DEFAULT_PDF_BACKENDS
    min_pdf_chars: int = DEFAULT_MIN_PDF_CHARS

    @classmethod
    def resolve(
        cls,
        pdf_backends: Iterable[str] | None = None,
        min_pdf_chars: int | None = None,
    ) -> SourceSettings:
        if not pdf_backends:
            pdf_backends = os.environ.get("ORDER_READER_PDF_BACKENDS", "").split(",")
        backends = tuple(dict.fromkeys(name.strip() for name in pdf_backends if name.strip()))
        if min_pdf_chars is None:
            min_pdf_chars = _env_int("ORDER_READER_MIN_PDF_CHARS", DEFAULT_MIN_PDF_CHARS)
        return cls(
            pdf_backends=backends or DEFAULT_PDF_BACKENDS,
            min_pdf_chars=max(min_pdf_chars, 0),
        )


@dataclass
class PdfExtraction:
    """The text chosen for a PDF report and how it was obtained.

    ``header_hits`` counts the distinct dictionary headers found in ``text``;
    it ranks backend output ahead of raw length.
    """

    text: str = ""
    backend: str = "none"
    byte_size: int = 0
    header_hits: int = 0
    repaired: bool = False
    warnings: list[str] = field(default_factory=list)
    error: str | None = None

    @property
    def chars(self) -> int:
        return len(self.text)

    def to_dict(self) -> dict[str, Any]:
        return {
            "backend": self.backend,
            "bytes": self.byte_size,
            "chars": self.chars,
            "header_hits": self.header_hits,
            "repaired": self.repaired,
            "warnings": self.warnings,
            "error": self.error,
        }


def _pypdf_pages(path: Path) -> list[str]:
    try:
        reader = PdfReader(str(path))
    except Exception as exc:  # pragma: no cover - upstream errors vary
        raise ExtractionError(f"pypdf could not open {path.name}: {exc}") from exc
    pages: list[str] = []
    for page_number, page in enumerate(reader.pages, start=1):
        try:
            pages.append(page.extract_text() or "")
        except Exception as exc:  # pragma: no cover - depends on document
            logger.warning("pypdf skipped page %d of %s: %s", page_number, path.name, exc)
    return pages


def _pdfminer_pages(path: Path) -> list[str]:
    try:
        text = pdfminer_extract_text(str(path))
    except Exception as exc:  # pragma: no cover - upstream errors vary
        raise ExtractionError(f"pdfminer could not read {path.name}: {exc}") from exc
    return (text or "").split("\f")


PDF_BACKENDS: dict[str, Callable[[Path], list[str]]] = {
    "pypdf": _pypdf_pages,
    "pdfminer": _pdfminer_pages,
}


def _repair_pdf(source: Path, temp_dir: Path) -> Path:
    try:
        from pikepdf import Pdf  # type: ignore[attr-defined]
    except ImportError as exc:  # pragma: no cover - optional dependency
        raise ExtractionError("pikepdf is not installed") from exc

    repaired_path = temp_dir / "repaired.pdf"
    try:
        with Pdf.open(str(source)) as pdf:
            pdf.save(str(repaired_path))
    except Exception as exc:  # pragma: no cover - upstream errors vary
        raise ExtractionError(str(exc)) from exc
    return repaired_path


def extract_pdf_text(
    pdf_path: Path,
    settings: SourceSettings | None = None,
    matcher: HeaderMatcher | None = None,
) -> PdfExtraction:
    """Run the configured backends over ``pdf_path`` and keep the best text.

    Output containing more distinct order headers wins; length breaks ties.
    Backends stop once the text is long enough and, when a ``matcher`` is
    given, carries at least one header. ``pikepdf+`` backends read a copy
    rewritten by pikepdf, which fixes most broken cross-reference tables.
    """
    settings = settings or SourceSettings.resolve()
    best = PdfExtraction(byte_size=pdf_path.stat().st_size)
    warnings: list[str] = []
    last_error: str | None = None

    with tempfile.TemporaryDirectory(prefix="order_pdf_") as tmp_dir:
        repaired_path: Path | None = None
        repair_error: str | None = None

        for name in settings.pdf_backends:
            base_name = name.removeprefix(REPAIR_PREFIX)
            use_repair = base_name != name
            extract = PDF_BACKENDS.get(base_name)
            if extract is None:
                last_error = f"unknown backend: {name}"
                warnings.append(last_error)
                continue

            target = pdf_path
            if use_repair:
                if repaired_path is None and repair_error is None:
                    try:
                        repaired_path = _repair_pdf(pdf_path, Path(tmp_dir))
                    except ExtractionError as exc:
                        repair_error = str(exc)
                        logger.debug("pikepdf repair failed for %s: %s", pdf_path, exc)
                if repaired_path is None:
                    last_error = f"pikepdf repair failed: {repair_error}"
                    warnings.append(f"{name}: {last_error}")
                    continue
                target = repaired_path

            try:
                text = "\n".join(extract(target))
            except ExtractionError as exc:
                last_error = str(exc)
                warnings.append(f"{name}: {exc}")
                logger.debug("PDF backend %s failed for %s: %s", name, pdf_path, exc)
                continue
            if not text.strip():
                warnings.append(f"{name}: extracted text empty")
                continue

            hits = len(matcher.headers_in(text)) if matcher else 0
            logger.debug("%s: %d chars, %d order headers from %s", name, len(text), hits, pdf_path)
            if (hits, len(text)) > (best.header_hits, best.chars):
                best.text = text
                best.backend = name
                best.header_hits = hits
                best.repaired = use_repair
            if best.chars >= settings.min_pdf_chars and (matcher is None or best.header_hits):
                break

    if not best.text:
        best.warnings = list(dict.fromkeys(warnings)) or ["no backend produced text"]
        best.error = last_error or "no backend produced text"
        return best
    if best.chars < settings.min_pdf_chars:
        best.warnings.append(
            f"best text shorter than min_chars ({best.chars} < {settings.min_pdf_chars})"
        )
    if matcher is not None and not best.header_hits:
        best.warnings.append("no order headers found in extracted text")
    return best


def extract_html_text(markup: str) -> str:
    soup = BeautifulSoup(markup, "lxml")
    for tag in soup(["script", "style"]):
        tag.decompose()
    for tag in soup.find_all(HTML_BLOCK_TAGS):
        tag.insert_after("\n")
    lines = [line.rstrip() for line in soup.get_text().splitlines()]
    return "\n".join(lines).strip("\n")


def extract_docx_text(path: Path) -> str:
    document = Document(str(path))
    return "\n".join(paragraph.text for paragraph in document.paragraphs)


def read_report_text(
    path: Path,
    settings: SourceSettings | None = None,
    matcher: HeaderMatcher | None = None,
) -> tuple[str, PdfExtraction | None]:
    """Return the text of a report file and, for PDFs, how it was extracted.

    A PDF no backend could read raises ExtractionError carrying the
    extraction metadata.
    """
    suffix = path.suffix.lower()
    if suffix == ".txt":
        return path.read_bytes().decode("utf-8", errors="replace"), None
    if suffix in {".html", ".htm"}:
        return extract_html_text(path.read_text(encoding="utf-8", errors="ignore")), None
    if suffix == ".docx":
        return extract_docx_text(path), None
    if suffix == ".pdf":
        extraction = extract_pdf_text(path, settings, matcher)
        if not extraction.text:
            raise ExtractionError(
                f"No text extracted from {path.name}: {extraction.error}",
                meta=extraction.to_dict(),
            )
        return extraction.text, extraction
    raise UnsupportedSourceError(f"Unsupported report type: {path.name}")


def iter_supported_files(root: Path) -> Iterator[Path]:
    for path in sorted(root.rglob("*")):
        if path.is_file() and path.suffix.lower() in SUPPORTED_EXTENSIONS:
            yield path


@dataclass
class ConversionResult:
    """Outcome of converting a single report file."""

    file: str
    sha256: str
    record_count: int = 0
    status: str = "pending"
    error: str | None = None
    records: list[dict[str, Any]] = field(default_factory=list)
    source_meta: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, object]:
        data: dict[str, object] = {
            "file": self.file,
            "sha256": self.sha256,
            "record_count": self.record_count,
            "status": self.status,
            "error": self.error,
        }
        if self.source_meta is not None:
            data["source_meta"] = self.source_meta
        return data


def convert_file(
    order_parser: OrderParser,
    path: Path,
    base_path: Path | None = None,
    settings: SourceSettings | None = None,
) -> ConversionResult:
    rel_file = path.relative_to(base_path).as_posix() if base_path else path.name
    result = ConversionResult(file=rel_file, sha256=sha256(path.read_bytes()).hexdigest())
    try:
        text, extraction = read_report_text(path, settings, order_parser.matcher)
        if extraction is not None:
            result.source_meta = extraction.to_dict()
        result.records = order_parser.parse(text)
    except OrderReaderError as exc:
        logger.error("Failed to convert %s: %s", rel_file, exc)
        if isinstance(exc, ExtractionError):
            result.source_meta = exc.meta
        result.status = "error"
        result.error = str(exc)
        return result
    result.record_count = len(result.records)
    result.status = "converted"
    return result


def convert_directory(
    order_parser: OrderParser,
    target_dir: Path,
    settings: SourceSettings | None = None,
) -> dict[str, ConversionResult]:
    settings = settings or SourceSettings.resolve()
    results: dict[str, ConversionResult] = {}
    for file_path in iter_supported_files(target_dir):
        try:
            result = convert_file(order_parser, file_path, target_dir, settings)
        except Exception as exc:  # pragma: no cover - disk and decoder errors
            logger.exception("Failed to read %s", file_path)
            rel_file = file_path.relative_to(target_dir).as_posix()
            result = ConversionResult(file=rel_file, sha256="", status="error", error=str(exc))
        results[result.file] = result
    return results
