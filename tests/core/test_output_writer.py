"""Tests for the OutputWriter class.

Covers:
- Initialization and metadata setup
- Atomic writes and directory structure preservation
- Conflict resolution strategies
- Refusal of keys escaping the output directory
- Summary report generation
"""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import patch

import pytest

from modulizer.core.output_writer import (
    ConflictStrategy,
    OutputWriter,
    WriteMetadata,
    WriteResult,
)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def output_writer_basic(tmp_path: Path) -> OutputWriter:
    """Create OutputWriter with OVERWRITE strategy."""
    return OutputWriter(
        output_dir=tmp_path / "output",
        conflict_strategy=ConflictStrategy.OVERWRITE,
    )


@pytest.fixture
def output_writer_skip(tmp_path: Path) -> OutputWriter:
    """Create OutputWriter with SKIP strategy."""
    return OutputWriter(
        output_dir=tmp_path / "output",
        conflict_strategy=ConflictStrategy.SKIP,
    )


# ---------------------------------------------------------------------------
# Tests
# ---------------------------------------------------------------------------

class TestInitialization:
    """OutputWriter construction."""

    def test_output_dir_is_absolute(self, output_writer_basic: OutputWriter) -> None:
        assert output_writer_basic.output_dir.is_absolute()

    def test_default_strategy_is_overwrite(self, tmp_path: Path) -> None:
        writer = OutputWriter(tmp_path)
        assert writer.conflict_strategy is ConflictStrategy.OVERWRITE

    def test_metadata_starts_empty(self, output_writer_basic: OutputWriter) -> None:
        metadata = output_writer_basic.get_metadata()
        assert isinstance(metadata, WriteMetadata)
        assert metadata.total_writes == 0
        assert metadata.start_time is not None
        assert output_writer_basic.get_written_files() == []


class TestWriteFile:
    """Single module writes."""

    def test_write_creates_file(self, output_writer_basic: OutputWriter) -> None:
        result = output_writer_basic.write_file("./test.js", "export let Foo = 'Bar';\n")

        assert isinstance(result, WriteResult)
        assert result.success
        assert result.output_path == output_writer_basic.output_dir / "test.js"
        assert result.output_path.read_text(encoding="utf-8") == "export let Foo = 'Bar';\n"

    def test_write_preserves_directory_structure(self, output_writer_basic: OutputWriter) -> None:
        result = output_writer_basic.write_file("./case-map/case-map.js", "export {};\n")

        assert result.success
        assert (output_writer_basic.output_dir / "case-map" / "case-map.js").is_file()

    def test_write_empty_module(self, output_writer_basic: OutputWriter) -> None:
        result = output_writer_basic.write_file("./empty.js", "")
        assert result.success
        assert result.output_path.read_text(encoding="utf-8") == ""

    def test_write_leaves_no_temp_files(self, output_writer_basic: OutputWriter) -> None:
        output_writer_basic.write_file("./a.js", "a\n")
        files = sorted(p.name for p in output_writer_basic.output_dir.iterdir())
        assert files == ["a.js"]

    def test_overwrite_replaces_content(self, output_writer_basic: OutputWriter) -> None:
        output_writer_basic.write_file("./a.js", "old\n")
        result = output_writer_basic.write_file("./a.js", "new\n")

        assert result.success
        assert not result.skipped
        assert result.output_path.read_text(encoding="utf-8") == "new\n"

    def test_skip_keeps_existing(self, output_writer_skip: OutputWriter) -> None:
        output_writer_skip.write_file("./a.js", "old\n")
        result = output_writer_skip.write_file("./a.js", "new\n")

        assert result.success
        assert result.skipped
        assert result.output_path is None
        assert (output_writer_skip.output_dir / "a.js").read_text(encoding="utf-8") == "old\n"

    def test_key_escaping_output_dir_is_refused(self, output_writer_basic: OutputWriter) -> None:
        with pytest.raises(ValueError):
            output_writer_basic.output_path_for("./../../outside.js")

        result = output_writer_basic.write_file("../outside.js", "x\n")
        assert not result.success
        assert result.error

    def test_os_error_is_reported(self, output_writer_basic: OutputWriter) -> None:
        with patch.object(
            OutputWriter, "_write_atomic", side_effect=OSError("disk full")
        ):
            result = output_writer_basic.write_file("./a.js", "x\n")

        assert not result.success
        assert result.error == "disk full"
        assert output_writer_basic.get_metadata().failed_writes == 1


class TestBatchWrites:
    """Writing a whole conversion output."""

    def test_write_modules_in_key_order(self, output_writer_basic: OutputWriter) -> None:
        results = output_writer_basic.write_modules(
            {"./test.js": "import './dep.js';\n", "./dep.js": ""}
        )

        assert [result.key for result in results] == ["./dep.js", "./test.js"]
        assert all(result.success for result in results)
        assert len(output_writer_basic.get_written_files()) == 2

    def test_metadata_counts(self, output_writer_skip: OutputWriter) -> None:
        output_writer_skip.write_modules({"./a.js": "a\n", "./b.js": "b\n"})
        output_writer_skip.write_file("./a.js", "again\n")

        metadata = output_writer_skip.get_metadata()
        assert metadata.total_writes == 3
        assert metadata.successful_writes == 2
        assert metadata.skipped_writes == 1
        assert metadata.failed_writes == 0


class TestSummaryReport:
    """Summary generation."""

    def test_generate_summary(self, output_writer_basic: OutputWriter) -> None:
        output_writer_basic.write_file("./a.js", "a\n")
        summary = output_writer_basic.generate_summary()

        assert summary["total_files"] == 1
        assert summary["successful_writes"] == 1
        assert summary["failed_files"] == []
        assert summary["elapsed_seconds"] >= 0.0

    def test_text_report(self, output_writer_basic: OutputWriter) -> None:
        output_writer_basic.write_file("./a.js", "a\n")
        output_writer_basic.write_file("../bad.js", "b\n")

        report = output_writer_basic.get_summary_report(format="text")
        assert "Modules written:  1/2" in report
        assert "FAILED ../bad.js" in report

    def test_json_report(self, output_writer_basic: OutputWriter) -> None:
        output_writer_basic.write_file("./a.js", "a\n")
        data = json.loads(output_writer_basic.get_summary_report(format="json"))
        assert data["successful_writes"] == 1
        assert data["written_files"][0].endswith("a.js")

    def test_unknown_format_raises(self, output_writer_basic: OutputWriter) -> None:
        with pytest.raises(ValueError, match="Unsupported report format"):
            output_writer_basic.get_summary_report(format="html")
