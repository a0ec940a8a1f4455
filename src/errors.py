"""Error taxonomy and structured import-run reporting."""

from __future__ import annotations

import json
import logging
from datetime import datetime
from pathlib import Path

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

REPORT_FILENAME = ".inkwell-last-import.json"


class InkwellError(Exception):
    """Base class for all inkwell errors."""


class ImportRecordError(InkwellError):
    """A problem with one record of an import stream."""

    error_type = "record"
    recoverable = True

    def __init__(self, message: str, *, line: int = 0) -> None:
        super().__init__(message)
        self.line = line


class MalformedHeaderError(ImportRecordError):
    """An expected header label was missing; the record is abandoned."""

    error_type = "malformed_header"


class MalformedSubRecordError(ImportRecordError):
    """A line where a COMMENT:/PING: marker was expected; skipped."""

    error_type = "malformed_sub_record"


class TruncatedStreamError(ImportRecordError):
    """The stream ended in the middle of a record; the run stops."""

    error_type = "truncated_stream"
    recoverable = False


class StorageError(InkwellError):
    """The storage backend could not persist or load something."""


class DecorationError(InkwellError):
    """A decorator failed; the rest of the chain was not run."""


class PermalinkError(InkwellError):
    """A permalink could not be derived safely."""


class ImportFailure(BaseModel):
    """A single failed (or partly failed) record in an import run."""

    line: int
    reason: str
    error_type: str = "unknown"
    title: str = ""
    recoverable: bool = True


class ImportReport(BaseModel):
    """Summary of an import run: what got in and what didn't."""

    source: str = ""
    started_at: datetime = Field(default_factory=datetime.now)
    finished_at: datetime | None = None
    imported: int = 0
    entry_ids: list[str] = Field(default_factory=list)
    failures: list[ImportFailure] = Field(default_factory=list)

    def add_failure(
        self,
        line: int,
        reason: str,
        *,
        error_type: str = "unknown",
        title: str = "",
        recoverable: bool = True,
    ) -> None:
        """Record a failure at the given line."""
        self.failures.append(
            ImportFailure(
                line=line,
                reason=reason,
                error_type=error_type,
                title=title,
                recoverable=recoverable,
            )
        )

    def add_error(self, exc: ImportRecordError, *, title: str = "") -> None:
        self.add_failure(
            exc.line,
            str(exc),
            error_type=exc.error_type,
            title=title,
            recoverable=exc.recoverable,
        )

    def record_imported(self, entry_id: str) -> None:
        self.imported += 1
        self.entry_ids.append(entry_id)

    def finish(self) -> None:
        """Mark the report as finished."""
        self.finished_at = datetime.now()

    @property
    def success(self) -> bool:
        """True if no unrecoverable failure occurred."""
        return not any(not f.recoverable for f in self.failures)

    @property
    def failure_count(self) -> int:
        return len(self.failures)

    def as_tuples(self) -> list[tuple[int, str]]:
        return [(f.line, f.reason) for f in self.failures]

    def summary_text(self) -> str:
        """Human-readable summary of the run."""
        duration = ""
        if self.finished_at and self.started_at:
            secs = (self.finished_at - self.started_at).total_seconds()
            duration = f" in {secs:.0f}s" if secs < 60 else f" in {secs / 60:.1f}m"

        status = "completed" if self.success else "stopped"
        lines = [f"Import {status}{duration}"]
        if self.source:
            lines.append(f"Source: {self.source}")
        lines.append(f"Imported: {self.imported} entries")

        if self.failures:
            lines.append(f"Failures: {len(self.failures)}")
            for failure in self.failures[:5]:
                prefix = "[skipped]" if failure.recoverable else "[FATAL]"
                lines.append(f"  {prefix} line {failure.line}: {failure.reason}")
            if len(self.failures) > 5:
                lines.append(f"  ... and {len(self.failures) - 5} more")

        return "\n".join(lines)


def save_report(report: ImportReport, output_dir: Path) -> Path:
    """Save the import report next to the blog data."""
    report_path = output_dir / REPORT_FILENAME
    report_path.parent.mkdir(parents=True, exist_ok=True)
    report_path.write_text(report.model_dump_json(indent=2), encoding="utf-8")
    return report_path


def load_report(output_dir: Path) -> ImportReport | None:
    """Load the last import report, if any."""
    report_path = output_dir / REPORT_FILENAME
    if not report_path.exists():
        return None
    try:
        data = json.loads(report_path.read_text(encoding="utf-8"))
        return ImportReport.model_validate(data)
    except (json.JSONDecodeError, ValueError):
        logger.warning("Corrupt report at %s", report_path)
        return None
