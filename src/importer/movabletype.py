"""Movable Type export importer.

The export format has no record count and no escaping, so records are
read strictly line by line in the order the exporter writes them::

    AUTHOR: ...
    TITLE: ...
    STATUS: Publish
    ALLOW COMMENTS: 1
    CONVERT BREAKS: 1
    ALLOW PINGS: 1
    PRIMARY CATEGORY: ...
    CATEGORY: ...              (only when a primary category is given)

    DATE: 03/14/2006 09:30:00 PM
    -----
    BODY:
    ...
    -----
    EXTENDED BODY:
    ...
    -----
    EXCERPT:
    ...
    -----
    KEYWORDS:
    ...
    -----
    COMMENT: / PING: sub-records, each ending with -----
    --------

A bad header abandons the record and skips to the next ``--------``.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from datetime import datetime
from pathlib import Path
from zoneinfo import ZoneInfo

from inkwell.config import InkwellConfig
from inkwell.errors import (
    ImportRecordError,
    ImportReport,
    MalformedHeaderError,
    MalformedSubRecordError,
    StorageError,
    TruncatedStreamError,
)
from inkwell.models import ApprovalState, Blog, Comment, Entry, Reference
from inkwell.permalink import PermalinkProvider
from inkwell.store import BlogStore

logger = logging.getLogger(__name__)

SECTION_END = "-----"
RECORD_END = "--------"
COMMENT_MARKER = "COMMENT:"
PING_MARKER = "PING:"


class LineReader:
    """Hands out lines one at a time and remembers where it is."""

    def __init__(self, lines: Iterable[str]) -> None:
        self._lines = iter(lines)
        self.line_number = 0
        self.last: str | None = None

    def read(self) -> str | None:
        """Next line without its line ending, or None at end of stream."""
        try:
            raw = next(self._lines)
        except StopIteration:
            self.last = None
            return None
        self.line_number += 1
        self.last = raw.rstrip("\r\n")
        return self.last


class MovableTypeImporter:
    """Imports a Movable Type export into a blog, one record at a time."""

    def __init__(
        self,
        blog: Blog,
        store: BlogStore,
        config: InkwellConfig | None = None,
        *,
        permalinks: PermalinkProvider | None = None,
        progress: Callable[[Entry], None] | None = None,
    ) -> None:
        self._blog = blog
        self._store = store
        self._config = config or InkwellConfig()
        self._permalinks = permalinks or PermalinkProvider(blog)
        self._progress = progress
        self._tz = ZoneInfo(blog.timezone)
        self._cancelled = False

    def cancel(self) -> None:
        """Stop before the next record; the current one is finished first."""
        self._cancelled = True

    def import_file(self, path: Path) -> ImportReport:
        """Import every record in an export file."""
        logger.info("Importing %s", path.name)
        with open(path, encoding=self._config.importer.encoding) as f:
            return self.import_all(f, source=str(path))

    def import_all(self, lines: Iterable[str] | str, *, source: str = "") -> ImportReport:
        """Import every record from a text stream.

        Args:
            lines: An open text file, any iterable of lines, or a whole string.
            source: Label for the report (usually the file name).

        Returns:
            Report with the imported count and per-record failures.
        """
        if isinstance(lines, str):
            lines = lines.splitlines()

        report = ImportReport(source=source)
        reader = LineReader(lines)
        self._cancelled = False

        while not self._cancelled:
            first = self._next_record_start(reader)
            if first is None:
                break

            start = reader.line_number
            title = ""
            try:
                entry, category_names = self._read_record(first, reader, report)
                title = entry.title
            except TruncatedStreamError as exc:
                report.add_error(exc)
                logger.error("Import stopped at line %d: %s", exc.line, exc)
                break
            except ImportRecordError as exc:
                report.add_error(exc)
                logger.warning("Skipping record starting at line %d: %s", start, exc)
                if not self._skip_to_record_end(reader):
                    truncated = TruncatedStreamError(
                        "Stream ended before the end of the skipped record",
                        line=reader.line_number,
                    )
                    report.add_error(truncated)
                    logger.error("Import stopped at line %d: %s", truncated.line, truncated)
                    break
                continue

            try:
                self._save(entry, category_names)
            except StorageError as exc:
                report.add_failure(start, str(exc), error_type="storage", title=title)
                logger.warning("Could not store record starting at line %d: %s", start, exc)
                continue

            report.record_imported(entry.id)
            logger.debug("Imported %r as %s", entry.title, entry.permalink)
            if self._progress is not None:
                self._progress(entry)

        if self._cancelled:
            logger.info("Import cancelled after %d entries", report.imported)

        report.finish()
        logger.info(
            "Imported %d entries with %d failures", report.imported, report.failure_count
        )
        return report

    # ── records ─────────────────────────────────────────────────────────

    def _read_record(
        self, first: str, reader: LineReader, report: ImportReport
    ) -> tuple[Entry, list[str]]:
        author = _strip_label(first, "AUTHOR: ", reader.line_number)
        title = self._header(reader, "TITLE: ")
        status = self._header(reader, "STATUS: ")
        allow_comments = self._header(reader, "ALLOW COMMENTS: ")
        convert_breaks = self._header(reader, "CONVERT BREAKS: ")
        allow_pings = self._header(reader, "ALLOW PINGS: ")
        primary_category = self._header(reader, "PRIMARY CATEGORY: ")
        category_names: list[str] = []
        if primary_category.strip():
            category_names.append(primary_category)
            other_category = self._header(reader, "CATEGORY: ")
            if other_category.strip():
                category_names.append(other_category)

        self._require(reader)  # blank line
        created_at = self._date_header(reader)

        self._require(reader)
        self._require(reader)
        body = self._section(reader)
        self._require(reader)
        extended_body = self._section(reader)
        self._require(reader)
        excerpt = self._section(reader)
        self._require(reader)
        keywords = self._section(reader)

        entry = Entry(
            id=self._blog.allocate_entry_id(created_at),
            blog_id=self._blog.id,
            title=title,
            body=body,
            extended_body=extended_body,
            excerpt=excerpt,
            keywords=keywords,
            author=author,
            created_at=created_at,
            published=status.strip().lower() == "publish",
            convert_breaks=convert_breaks.strip() not in ("", "0"),
            comments_enabled=allow_comments.strip() == "1",
            references_enabled=allow_pings.strip() == "1",
        )

        line = self._require(reader)
        while line != RECORD_END:
            if line == COMMENT_MARKER:
                entry.add_comment(self._read_comment(entry, reader))
            elif line == PING_MARKER:
                entry.add_reference(self._read_ping(entry, reader))
            else:
                exc = MalformedSubRecordError(
                    f"Expected COMMENT: or PING:, got {line[:40]!r}", line=reader.line_number
                )
                report.add_error(exc, title=title)
                logger.warning("Line %d: %s", exc.line, exc)
            line = self._require(reader)

        return entry, category_names

    def _read_comment(self, entry: Entry, reader: LineReader) -> Comment:
        author = self._header(reader, "AUTHOR: ")
        email = self._header(reader, "EMAIL: ")
        ip_address = self._header(reader, "IP: ")
        url = self._header(reader, "URL: ")
        created_at = self._date_header(reader)
        return Comment(
            entry_id=entry.id,
            author=author,
            email=email,
            url=url,
            ip_address=ip_address,
            body=self._section(reader),
            created_at=created_at,
            state=ApprovalState.APPROVED,
        )

    def _read_ping(self, entry: Entry, reader: LineReader) -> Reference:
        title = self._header(reader, "TITLE: ")
        url = self._header(reader, "URL: ")
        ip_address = self._header(reader, "IP: ")
        blog_name = self._header(reader, "BLOG NAME: ")
        created_at = self._date_header(reader)
        return Reference(
            entry_id=entry.id,
            title=title,
            url=url,
            ip_address=ip_address,
            blog_name=blog_name,
            body=self._section(reader),
            created_at=created_at,
            state=ApprovalState.APPROVED,
        )

    def _save(self, entry: Entry, category_names: list[str]) -> None:
        for name in category_names:
            entry.add_category(self._store.create_or_get_category(self._blog, name))

        bucket = self._store.append_entry_to_day(self._blog, entry.day)
        changed = self._permalinks.attach(entry, bucket)
        try:
            self._store.persist(entry)
            for sibling in changed:
                self._store.persist(sibling)
        except StorageError:
            self._rollback(entry)
            raise

    def _rollback(self, entry: Entry) -> None:
        """Undo a partly stored entry so memory and store agree again."""
        restored = self._permalinks.detach(entry)
        self._store.remove(entry)
        for sibling in restored:
            self._store.persist(sibling)

    # ── line level ──────────────────────────────────────────────────────

    def _require(self, reader: LineReader) -> str:
        line = reader.read()
        if line is None:
            raise TruncatedStreamError(
                "Stream ended in the middle of a record", line=reader.line_number
            )
        return line

    def _header(self, reader: LineReader, label: str) -> str:
        line = self._require(reader)
        return _strip_label(line, label, reader.line_number)

    def _date_header(self, reader: LineReader) -> datetime:
        value = self._header(reader, "DATE: ")
        try:
            parsed = datetime.strptime(value.strip(), self._config.importer.date_format)
        except ValueError as exc:
            raise MalformedHeaderError(
                f"Unparseable date {value!r}", line=reader.line_number
            ) from exc
        return parsed.replace(tzinfo=self._tz)

    def _section(self, reader: LineReader) -> str:
        parts: list[str] = []
        line = self._require(reader)
        while line != SECTION_END:
            parts.append(line)
            line = self._require(reader)
        return self._config.importer.line_break.join(parts)

    @staticmethod
    def _next_record_start(reader: LineReader) -> str | None:
        line = reader.read()
        while line is not None and not line.strip():
            line = reader.read()
        return line

    @staticmethod
    def _skip_to_record_end(reader: LineReader) -> bool:
        """Advance past the next ``--------``; False if the stream ran out."""
        line = reader.last
        while line != RECORD_END:
            line = reader.read()
            if line is None:
                return False
        return True


def _strip_label(line: str, label: str, line_number: int) -> str:
    if line.startswith(label):
        return line[len(label) :]
    # exporters sometimes trim the space after an empty value
    if line == label.rstrip():
        return ""
    raise MalformedHeaderError(
        f"Expected {label.strip()!r} header, got {line[:40]!r}", line=line_number
    )


def import_all(
    lines: Iterable[str] | str,
    blog: Blog,
    store: BlogStore,
    config: InkwellConfig | None = None,
) -> tuple[int, list[tuple[int, str]]]:
    """Import a Movable Type stream; returns (entries imported, (line, reason) failures)."""
    report = MovableTypeImporter(blog, store, config).import_all(lines)
    return report.imported, report.as_tuples()
