"""Output writer module for atomic module writing.

This module provides the ``OutputWriter`` class that writes generated
modules below an output directory. Every write goes through a temporary
file in the destination directory followed by a rename, so a module file
is either fully written or not touched at all. Output keys that would
resolve outside the output directory are refused.

Example:
    Writing the output of a conversion::

        from pathlib import Path
        from modulizer.core.output_writer import OutputWriter

        writer = OutputWriter(output_dir=Path("./modules"))
        results = writer.write_modules(orchestrator.convert())
        print(writer.get_summary_report(format="text"))
"""

from __future__ import annotations

import json
import os
import shutil
import tempfile
import time
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Mapping

from modulizer.utils.logger import get_logger
from modulizer.utils.path_utils import (
    ensure_directory,
    is_safe_path,
    is_writable,
    normalize_key,
    normalize_path,
)

_VALID_REPORT_FORMATS = ("text", "json")


class ConflictStrategy(Enum):
    """How to handle output files that already exist.

    Strategies:
        OVERWRITE: Replace existing files
        SKIP: Leave existing files untouched
    """
    OVERWRITE = "overwrite"
    SKIP = "skip"


@dataclass
class WriteResult:
    """Result of a single file write operation.

    Attributes:
        success: Whether the write operation succeeded.
        output_path: Final path the file was written to, or ``None`` if the
            write was skipped or refused.
        key: Output key the file was written for.
        skipped: ``True`` when an existing file was kept (SKIP strategy).
        error: Human-readable error message if the write failed.
    """

    success: bool
    output_path: Path | None
    key: str
    skipped: bool = False
    error: str | None = None


@dataclass
class WriteMetadata:
    """Aggregated statistics for the writes of one ``OutputWriter``.

    Attributes:
        total_writes: Total number of write attempts.
        successful_writes: Number of writes that completed successfully.
        failed_writes: Number of writes that failed.
        skipped_writes: Number of writes skipped because the file existed.
        written_files: Ordered list of paths that were successfully written.
        start_time: Unix timestamp when write tracking started.
        end_time: Unix timestamp when the last summary was generated.
        file_results: Ordered list of all individual write outcomes.
    """

    total_writes: int = 0
    successful_writes: int = 0
    failed_writes: int = 0
    skipped_writes: int = 0
    written_files: list[Path] = field(default_factory=list)
    start_time: float | None = None
    end_time: float | None = None
    file_results: list[WriteResult] = field(default_factory=list)

    @property
    def elapsed_seconds(self) -> float:
        """Return elapsed seconds between start and end timestamps."""
        if self.start_time is None or self.end_time is None:
            return 0.0
        return max(0.0, self.end_time - self.start_time)


class OutputWriter:
    """Writes generated modules with atomic temp-file + rename writes.

    Attributes:
        output_dir: Base output directory (normalised absolute path).
        conflict_strategy: Active conflict resolution strategy.

    Example::

        writer = OutputWriter(Path("./build"), ConflictStrategy.SKIP)
        writer.write_file("./app.js", "export let x = 1;\\n")
    """

    def __init__(
        self,
        output_dir: Path | str,
        conflict_strategy: ConflictStrategy = ConflictStrategy.OVERWRITE,
    ) -> None:
        self._logger = get_logger("modulizer.core.output_writer")
        self.output_dir: Path = normalize_path(output_dir)
        self.conflict_strategy = conflict_strategy
        self._metadata = WriteMetadata(start_time=time.time())

        self._logger.debug(
            f"OutputWriter initialised: dir={self.output_dir}, "
            f"strategy={self.conflict_strategy.value}"
        )

    def _record(self, result: WriteResult) -> WriteResult:
        metadata = self._metadata
        metadata.total_writes += 1
        metadata.file_results.append(result)
        if result.skipped:
            metadata.skipped_writes += 1
        elif result.success:
            metadata.successful_writes += 1
            metadata.written_files.append(result.output_path)
        else:
            metadata.failed_writes += 1
        return result

    def output_path_for(self, key: str) -> Path:
        """Map an output key (``./a/b.js``) to a path below the output dir.

        Raises:
            ValueError: If the key escapes the output directory
        """
        path = self.output_dir / normalize_key(key)
        if not is_safe_path(path, self.output_dir):
            raise ValueError(f"Output key escapes the output directory: {key}")
        return path

    def _write_atomic(self, output_path: Path, content: str) -> None:
        """Write *content* to *output_path* atomically.

        Raises:
            OSError: On file-system errors (after removing the temp file).
        """
        ensure_directory(output_path.parent)
        temp_path: str | None = None

        try:
            with tempfile.NamedTemporaryFile(
                mode="w",
                encoding="utf-8",
                delete=False,
                dir=str(output_path.parent),
                suffix=output_path.suffix,
            ) as fd:
                temp_path = fd.name
                fd.write(content)
                fd.flush()
                os.fsync(fd.fileno())

            shutil.move(temp_path, str(output_path))
            self._logger.debug(f"Atomic write: renamed {temp_path} -> {output_path}")
        except OSError as exc:
            self._logger.error(f"Atomic write failed for {output_path}: {exc}")
            if temp_path is not None and os.path.exists(temp_path):
                try:
                    os.unlink(temp_path)
                except OSError:
                    self._logger.error(f"Failed to clean up temp file: {temp_path}")
            raise

    def write_file(self, key: str, content: str) -> WriteResult:
        """Write one module.

        Args:
            key: Output key of the module
            content: Module text

        Returns:
            WriteResult describing the outcome (errors are reported in the
            result, not raised)
        """
        try:
            output_path = self.output_path_for(key)
        except ValueError as e:
            self._logger.error(str(e))
            return self._record(WriteResult(False, None, key, error=str(e)))

        if output_path.exists():
            if self.conflict_strategy is ConflictStrategy.SKIP:
                self._logger.info(f"Skipping existing file: {output_path}")
                return self._record(WriteResult(True, None, key, skipped=True))
            if not is_writable(output_path):
                message = f"File is not writable: {output_path}"
                self._logger.error(message)
                return self._record(WriteResult(False, None, key, error=message))

        try:
            self._write_atomic(output_path, content)
        except OSError as e:
            return self._record(WriteResult(False, None, key, error=str(e)))

        self._logger.info(f"Wrote {output_path}")
        return self._record(WriteResult(True, output_path, key))

    def write_modules(self, output: Mapping[str, str]) -> list[WriteResult]:
        """Write every module of a conversion output mapping, in key order."""
        return [self.write_file(key, output[key]) for key in sorted(output)]

    def get_metadata(self) -> WriteMetadata:
        return self._metadata

    def get_written_files(self) -> list[Path]:
        return list(self._metadata.written_files)

    def generate_summary(self) -> dict[str, Any]:
        self._metadata.end_time = time.time()
        metadata = self._metadata
        return {
            "output_dir": str(self.output_dir),
            "elapsed_seconds": metadata.elapsed_seconds,
            "total_files": metadata.total_writes,
            "successful_writes": metadata.successful_writes,
            "failed_writes": metadata.failed_writes,
            "skipped_writes": metadata.skipped_writes,
            "written_files": [str(path) for path in metadata.written_files],
            "failed_files": [
                {"key": result.key, "error": result.error or "Unknown error"}
                for result in metadata.file_results
                if not result.success
            ],
        }

    def get_summary_report(self, format: str = "text") -> str:
        """Render a summary of all writes.

        Args:
            format: ``"text"`` or ``"json"``

        Raises:
            ValueError: If *format* is not supported
        """
        if format not in _VALID_REPORT_FORMATS:
            raise ValueError(
                f"Unsupported report format: {format!r}. "
                f"Expected one of {_VALID_REPORT_FORMATS}"
            )
        summary = self.generate_summary()
        if format == "json":
            return json.dumps(summary, indent=2)

        lines = [
            "Conversion Output Summary",
            "=" * 25,
            f"Output directory: {summary['output_dir']}",
            f"Modules written:  {summary['successful_writes']}/{summary['total_files']}",
            f"Skipped:          {summary['skipped_writes']}",
            f"Failed:           {summary['failed_writes']}",
        ]
        for failure in summary["failed_files"]:
            lines.append(f"  FAILED {failure['key']}: {failure['error']}")
        return "\n".join(lines)
