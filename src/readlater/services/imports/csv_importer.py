"""
CSV bookmark importer.

Reads a comma-delimited bookmark export record by record and hands every row
to the context's URL handler. Recognized columns are ``url``, ``state`` and
``labels``; a header row is optional. Without a header the columns are read
positionally in that order.
"""

import codecs
import csv
import io
import logging
import re
from dataclasses import dataclass
from typing import AsyncIterable, AsyncIterator, Iterable, List, Optional, Union
from urllib.parse import urlsplit

from ...models.import_models import ImportContext, ImportRow, RowOutcome
from ...models.save_models import ArticleSavingRequestStatus

logger = logging.getLogger(__name__)

Chunk = Union[bytes, str]
CsvStream = Union[AsyncIterable[Chunk], Iterable[Chunk]]

_STATES = {status.value: status for status in ArticleSavingRequestStatus}
_LINE_BREAK = re.compile(r"\r\n|\r|\n")


class InvalidRowError(ValueError):
    """Raised when a row has no usable URL."""

    pass


@dataclass(frozen=True)
class RecordError:
    """A record the CSV reader could not parse. Counted as a failed row."""

    text: str
    error: str


@dataclass(frozen=True)
class ColumnLayout:
    url: int = 0
    state: Optional[int] = 1
    labels: Optional[int] = 2

    @classmethod
    def from_header(cls, cells: List[str]) -> Optional["ColumnLayout"]:
        """Build a layout from a header record, or None if ``cells`` is data.

        A record holding a URL is always data, even if another of its cells
        reads ``url`` (a label, say).
        """
        names = [cell.strip().lower() for cell in cells]
        if "url" not in names:
            return None
        for cell in cells:
            try:
                parse_url(cell)
            except InvalidRowError:
                continue
            return None
        return cls(
            url=names.index("url"),
            state=names.index("state") if "state" in names else None,
            labels=names.index("labels") if "labels" in names else None,
        )


def parse_url(value: str) -> str:
    """Return ``value`` stripped if it is an absolute URL with scheme and host."""
    value = value.strip()
    if not value:
        raise InvalidRowError("missing url")
    try:
        parts = urlsplit(value)
    except ValueError as e:
        raise InvalidRowError(f"invalid url {value!r}: {e}") from e
    if not parts.scheme or not parts.netloc:
        raise InvalidRowError(f"invalid url {value!r}")
    return value


def parse_state(value: Optional[str]) -> Optional[ArticleSavingRequestStatus]:
    """Map a status token onto the known states; anything else is no state."""
    if value is None:
        return None
    return _STATES.get(value.strip())


def parse_labels(value: Optional[str]) -> List[str]:
    """Split a labels cell on commas, trimming and dropping empty names.

    ``"Label1, Label2 , , Label 3"`` gives ``["Label1", "Label2", "Label 3"]``.
    Surrounding brackets (``"[a,b]"``) are ignored.
    """
    if not value:
        return []
    value = value.strip()
    if value.startswith("[") and value.endswith("]"):
        value = value[1:-1]
    return [label.strip() for label in value.split(",") if label.strip()]


def _cell(cells: List[str], index: Optional[int]) -> Optional[str]:
    if index is None or index >= len(cells):
        return None
    return cells[index]


def parse_row(cells: List[str], layout: ColumnLayout) -> ImportRow:
    """Turn one CSV record into an ImportRow.

    Raises:
        InvalidRowError: If the url cell is absent or malformed
    """
    url = parse_url(_cell(cells, layout.url) or "")
    labels_cell = _cell(cells, layout.labels)
    return ImportRow(
        url=url,
        state=parse_state(_cell(cells, layout.state)),
        labels=parse_labels(labels_cell) if labels_cell is not None else None,
    )


async def _iter_text(stream: CsvStream) -> AsyncIterator[str]:
    """Decode a byte or text stream incrementally."""
    decoder = codecs.getincrementaldecoder("utf-8-sig")(errors="replace")

    def decode(chunk: Chunk) -> str:
        if isinstance(chunk, str):
            return chunk
        return decoder.decode(chunk)

    if hasattr(stream, "__aiter__"):
        async for chunk in stream:  # type: ignore[union-attr]
            yield decode(chunk)
    else:
        for chunk in stream:  # type: ignore[union-attr]
            yield decode(chunk)
    tail = decoder.decode(b"", final=True)
    if tail:
        yield tail


class _RecordAssembler:
    """Joins physical lines into CSV records.

    Lines are collected until the double quotes balance, so quoted fields may
    span lines. Records are capped at ``csv.field_size_limit()`` characters.
    """

    def __init__(self):
        self.limit = csv.field_size_limit()
        self.lines: List[str] = []
        self.size = 0
        self.quotes = 0

    def add(self, line: str) -> List[Union[List[str], RecordError]]:
        self.lines.append(line)
        self.size += len(line) + 1
        self.quotes += line.count('"')
        if self.quotes % 2 == 0:
            return self.flush()
        if self.size > self.limit:
            text = self.discard()
            return [RecordError(text=text[:80], error="unterminated quoted field")]
        return []

    def flush(self) -> List[Union[List[str], RecordError]]:
        text = self.discard()
        if not text.strip():
            return []
        try:
            records = list(csv.reader(io.StringIO(text)))
        except csv.Error as e:
            return [RecordError(text=text[:80], error=str(e))]
        return [cells for cells in records if any(c.strip() for c in cells)]

    def discard(self) -> str:
        text = "\n".join(self.lines)
        self.lines = []
        self.size = 0
        self.quotes = 0
        return text


async def iter_records(stream: CsvStream) -> AsyncIterator[Union[List[str], RecordError]]:
    """Yield CSV records lazily, one list of cells at a time.

    ``\\r\\n``, ``\\r`` and ``\\n`` all end a line. Blank lines are skipped. A
    record that cannot be parsed is yielded as a ``RecordError`` and reading
    carries on from the next line.
    """
    assembler = _RecordAssembler()
    partial = ""
    first = True
    skipping = False

    async for text in _iter_text(stream):
        if first:
            text = text.lstrip("\ufeff")
            first = False
        partial += text
        if skipping:
            match = _LINE_BREAK.search(partial)
            if match is None:
                partial = ""
                continue
            partial = partial[match.end():]
            skipping = False

        # A trailing \r may be the first half of \r\n.
        held = ""
        if partial.endswith("\r"):
            partial, held = partial[:-1], "\r"
        *lines, partial = _LINE_BREAK.split(partial)
        partial += held
        for line in lines:
            for record in assembler.add(line):
                yield record

        if assembler.size + len(partial) > assembler.limit:
            pending = assembler.discard() or partial
            yield RecordError(text=pending[:80], error="record too long")
            partial = ""
            skipping = True

    if not skipping and partial.rstrip("\r"):
        for record in assembler.add(partial.rstrip("\r")):
            yield record
    for record in assembler.flush():
        yield record


async def dispatch_row(ctx: ImportContext, cells: List[str], layout: ColumnLayout) -> RowOutcome:
    """Parse one record and run the handler on it, returning the outcome."""
    try:
        row = parse_row(cells, layout)
    except InvalidRowError as e:
        logger.warning("Invalid import row", extra={"row": cells, "error": str(e)})
        return RowOutcome(url=_cell(cells, layout.url) or "", ok=False, error=str(e))

    try:
        await ctx.url_handler(ctx, row.url, row.state, row.labels)
    except Exception as e:
        logger.warning("Failed to import url", extra={"url": row.url, "error": str(e)})
        return RowOutcome(url=row.url, ok=False, error=str(e))
    return RowOutcome(url=row.url, ok=True)


async def import_csv(ctx: ImportContext, stream: CsvStream) -> None:
    """Import every bookmark in ``stream``, updating the context counters.

    A failing row is counted and skipped; it never stops the import. That
    includes records the CSV reader rejects.
    """
    layout: Optional[ColumnLayout] = None
    async for record in iter_records(stream):
        if isinstance(record, RecordError):
            logger.warning("Unreadable import record", extra={"row": record.text, "error": record.error})
            ctx.record(RowOutcome(url="", ok=False, error=record.error))
            continue
        if layout is None:
            layout = ColumnLayout.from_header(record)
            if layout is not None:
                continue
            layout = ColumnLayout()
        ctx.record(await dispatch_row(ctx, record, layout))

    logger.info(
        "CSV import finished",
        extra={
            "user_id": ctx.user_id,
            "source": ctx.source,
            "count_imported": ctx.count_imported,
            "count_failed": ctx.count_failed,
        },
    )
