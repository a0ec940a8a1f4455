"""Tests for the import error types and ImportReport."""

from pathlib import Path

from inkwell.errors import (
    ImportFailure,
    ImportReport,
    MalformedHeaderError,
    TruncatedStreamError,
    load_report,
    save_report,
)


class TestImportRecordErrors:
    def test_line_carried(self):
        err = MalformedHeaderError("bad", line=12)
        assert err.line == 12
        assert err.recoverable is True
        assert err.error_type == "malformed_header"

    def test_truncation_is_fatal(self):
        assert TruncatedStreamError("eof").recoverable is False


class TestImportFailure:
    def test_defaults(self):
        failure = ImportFailure(line=3, reason="bad header")
        assert failure.recoverable is True
        assert failure.error_type == "unknown"


class TestImportReport:
    def test_empty_report_success(self):
        report = ImportReport()
        assert report.success is True
        assert report.failure_count == 0
        assert report.imported == 0

    def test_record_imported(self):
        report = ImportReport()
        report.record_imported("1")
        report.record_imported("2")
        assert report.imported == 2
        assert report.entry_ids == ["1", "2"]

    def test_add_error(self):
        report = ImportReport()
        report.add_error(MalformedHeaderError("Expected 'TITLE:'", line=2), title="x")
        assert report.failures[0].line == 2
        assert report.failures[0].error_type == "malformed_header"
        assert report.failures[0].title == "x"
        assert report.as_tuples() == [(2, "Expected 'TITLE:'")]

    def test_fatal_failure(self):
        report = ImportReport()
        report.add_error(TruncatedStreamError("eof", line=99))
        assert report.success is False

    def test_summary_text(self):
        report = ImportReport(source="export.txt")
        report.record_imported("1")
        report.add_failure(7, "bad header")
        report.finish()
        text = report.summary_text()
        assert "completed" in text
        assert "Imported: 1 entries" in text
        assert "line 7: bad header" in text

    def test_summary_text_stopped(self):
        report = ImportReport()
        report.add_error(TruncatedStreamError("eof", line=5))
        assert "stopped" in report.summary_text()
        assert "[FATAL]" in report.summary_text()

    def test_summary_text_many_failures_truncated(self):
        report = ImportReport()
        for i in range(8):
            report.add_failure(i, f"error {i}")
        assert "... and 3 more" in report.summary_text()


class TestSaveLoadReport:
    def test_save_and_load(self, tmp_path: Path):
        report = ImportReport(source="export.txt")
        report.record_imported("1")
        report.add_failure(4, "bad")
        save_report(report, tmp_path)

        loaded = load_report(tmp_path)
        assert loaded is not None
        assert loaded.imported == 1
        assert loaded.failures[0].line == 4

    def test_load_missing(self, tmp_path: Path):
        assert load_report(tmp_path) is None

    def test_load_corrupt(self, tmp_path: Path):
        save_report(ImportReport(), tmp_path)
        (tmp_path / ".inkwell-last-import.json").write_text("{nope")
        assert load_report(tmp_path) is None
