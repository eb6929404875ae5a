"""Line scanner and the OrderParser facade."""
from __future__ import annotations

import asyncio
import codecs
import logging
import re
from collections.abc import AsyncIterable, AsyncIterator, Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from typing import IO, Any

from .builder import ObjectBuilder
from .cook import cook_object
from .dictionary import FieldDictionary
from .matcher import HeaderMatcher

logger = logging.getLogger(__name__)

READ_CHUNK_SIZE = 64 * 1024
LINE_BREAK_RE = re.compile(r"\r\n|\r|\n")

Source = str | bytes | bytearray | IO[str] | IO[bytes] | Iterable[str] | Iterable[bytes]


class LineSplitter:
    """Reassemble lines from arbitrarily chunked text.

    ``\\n``, ``\\r\\n`` and a lone ``\\r`` all end a line. A trailing line
    break does not produce an extra empty line.
    """

    def __init__(self) -> None:
        self._buffer = ""
        self._decoder: codecs.IncrementalDecoder | None = None

    def feed(self, chunk: str | bytes | bytearray) -> list[str]:
        if isinstance(chunk, (bytes, bytearray)):
            if self._decoder is None:
                self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
            chunk = self._decoder.decode(bytes(chunk))
        buffered = self._buffer + chunk
        # A trailing "\r" may be the first half of "\r\n".
        held = "\r" if buffered.endswith("\r") else ""
        if held:
            buffered = buffered[:-1]
        lines = LINE_BREAK_RE.split(buffered)
        self._buffer = lines.pop() + held
        return lines

    def close(self) -> list[str]:
        if self._decoder is not None:
            self._buffer += self._decoder.decode(b"", final=True)
        remainder, self._buffer = self._buffer, ""
        lines = LINE_BREAK_RE.split(remainder)
        if lines[-1] == "":
            lines.pop()
        return lines


def _iter_chunks(source: Source) -> Iterator[str | bytes]:
    if isinstance(source, (str, bytes, bytearray)):
        yield source
        return
    read = getattr(source, "read", None)
    if callable(read):
        while True:
            chunk = read(READ_CHUNK_SIZE)
            if not chunk:
                return
            yield chunk
    yield from source


def iter_lines(source: Source) -> Iterator[str]:
    splitter = LineSplitter()
    for chunk in _iter_chunks(source):
        yield from splitter.feed(chunk)
    yield from splitter.close()


async def aiter_lines(source: AsyncIterable[str | bytes]) -> AsyncIterator[str]:
    splitter = LineSplitter()
    async for chunk in source:
        for line in splitter.feed(chunk):
            yield line
    for line in splitter.close():
        yield line


@dataclass
class OpenField:
    header: str
    parts: list[str] = field(default_factory=list)

    @property
    def value(self) -> str:
        return "".join(self.parts)


class LineScanner:
    """State machine folding lines into raw captures, one record at a time.

    The scanner owns the current ObjectBuilder and the open field; a builder is
    handed to the cook only once its record is finished.
    """

    def __init__(self, dictionary: FieldDictionary, matcher: HeaderMatcher) -> None:
        self.dictionary = dictionary
        self.matcher = matcher
        self.separator = dictionary.record_separator
        self.records: list[dict[str, Any]] = []
        self.builder = ObjectBuilder()
        self.open_field: OpenField | None = None
        self.closed = False

    def _finish_open_field(self) -> None:
        if self.open_field is not None:
            self.builder.store(self.open_field.header, self.open_field.value)
            self.open_field = None

    def _finish_record(self) -> None:
        self._finish_open_field()
        builder, self.builder = self.builder, ObjectBuilder()
        if not builder.is_empty:
            cook_object(builder.object, self.records, self.dictionary)

    def feed(self, line: str) -> None:
        if self.separator.search(line):
            self._finish_record()
            return

        if self.open_field is not None:
            self.open_field.parts.append("\n")

        regions = self.matcher.split(line)
        index = 0
        while index < len(regions):
            region = regions[index]
            index += 1
            if not region.is_match:
                if self.open_field is not None:
                    self.open_field.parts.append(region.value)
                elif region.value.strip():
                    self.builder.warn("ignored_text", f"Ignored header: '{region.value}'")
                continue

            self._finish_open_field()
            self.open_field = OpenField(header=region.value)
            if index < len(regions) and not regions[index].is_match:
                self.open_field.parts.append(regions[index].value)
                index += 1

    def close(self) -> list[dict[str, Any]]:
        if not self.closed:
            self._finish_record()
            self.closed = True
        return self.records


class OrderParser:
    """Parse report text into records described by a dictionary.

    The compiled header pattern and the dictionary are shared by every parse,
    each parse gets its own LineScanner.
    """

    def __init__(self, dictionary: Mapping[str, Any] | FieldDictionary) -> None:
        if isinstance(dictionary, FieldDictionary):
            self.dictionary = dictionary
        else:
            self.dictionary = FieldDictionary(dictionary)
        self.matcher = HeaderMatcher(self.dictionary.all_headers())

    def scanner(self) -> LineScanner:
        return LineScanner(self.dictionary, self.matcher)

    def parse(self, source: Source) -> list[dict[str, Any]]:
        scanner = self.scanner()
        for line in iter_lines(source):
            scanner.feed(line)
        records = scanner.close()
        logger.debug("Parsed %d top-level records", len(records))
        return records

    async def parse_async(
        self, source: Source | AsyncIterable[str] | AsyncIterable[bytes]
    ) -> list[dict[str, Any]]:
        """Parse lines as they become available on an asynchronous source.

        Plain strings and bytes are parsed in place. Synchronous streams and
        iterables may block on reads, so they are parsed in a worker thread.
        """
        if isinstance(source, (str, bytes, bytearray)):
            return self.parse(source)
        if not isinstance(source, AsyncIterable):
            return await asyncio.to_thread(self.parse, source)
        scanner = self.scanner()
        async for line in aiter_lines(source):
            scanner.feed(line)
        records = scanner.close()
        logger.debug("Parsed %d top-level records", len(records))
        return records
