"""Output files with a generated header and serialized appends."""

from __future__ import annotations

import os
from datetime import datetime
from pathlib import Path
from threading import Lock
from typing import IO, Dict

import structlog

from ..errors import OutputSetupError, OutputSinkError
from ..logging_conf import get_logger

HEADER_TEMPLATE = "! Title: {title}\n! Last Modified: {timestamp}\n! Homepage: {provenance}\n"
TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


class OutputFile:
    """One destination file. Appends are serialized by its own lock.

    ``name`` is the path relative to the sink's output directory, so two files
    sharing a base name in different subdirectories stay distinct.
    """

    def __init__(self, path: Path, handle: IO[str], name: str | None = None) -> None:
        self.path = path
        self.name = name or path.name
        self._handle = handle
        self._lock = Lock()
        self.header_written = False
        self.line_count = 0
        self.closed = False

    def __repr__(self) -> str:
        return f"OutputFile({str(self.path)!r})"


class OutputSink:
    """Own the lifecycle of every output file of a run."""

    def __init__(self, output_dir: Path, logger: structlog.BoundLogger | None = None) -> None:
        self.output_dir = Path(output_dir)
        self._root = Path(os.path.normpath(self.output_dir.resolve()))
        self._files: Dict[Path, OutputFile] = {}
        self._lock = Lock()
        self.logger = logger or get_logger("sink")

    @property
    def files(self) -> list[OutputFile]:
        with self._lock:
            return list(self._files.values())

    def create(self, path: str | Path) -> OutputFile:
        """Open ``path`` for writing, truncating it. Repeated calls share one handle."""

        target = Path(path)
        if not target.is_absolute():
            target = self.output_dir / target
        target = Path(os.path.normpath(target.resolve()))
        with self._lock:
            existing = self._files.get(target)
            if existing is not None:
                return existing
            try:
                target.parent.mkdir(parents=True, exist_ok=True)
                handle = target.open("w", encoding="utf-8", newline="")
            except OSError as exc:
                raise OutputSetupError(target, exc.strerror or str(exc)) from exc
            output = OutputFile(target, handle, name=self._label(target))
            self._files[target] = output
            return output

    def _label(self, target: Path) -> str:
        try:
            return target.relative_to(self._root).as_posix()
        except ValueError:
            return str(target)

    def write_header(
        self,
        output: OutputFile,
        title: str,
        timestamp: datetime | str | None = None,
        provenance: str = "",
    ) -> bool:
        """Write the header block once. Returns False if it was already written."""

        if timestamp is None:
            timestamp = datetime.now()
        if isinstance(timestamp, datetime):
            timestamp = timestamp.strftime(TIMESTAMP_FORMAT)
        header = HEADER_TEMPLATE.format(title=title, timestamp=timestamp, provenance=provenance)
        with output._lock:
            if output.header_written:
                return False
            self._check_open(output)
            output._handle.write(header)
            output.header_written = True
            return True

    def append_line(self, output: OutputFile, line: str) -> None:
        with output._lock:
            if not output.header_written:
                raise OutputSinkError(f"Header not written yet for {output.path}")
            self._check_open(output)
            output._handle.write(line + "\n")
            output.line_count += 1

    def flush(self) -> None:
        self._finish_all("flush", close=False)

    def close(self) -> None:
        """Close every file. A failing file does not stop the others; the first
        failure is raised as :class:`OutputSinkError` once all were attempted."""

        self._finish_all("close", close=True)

    def _finish_all(self, action: str, close: bool) -> None:
        failures: list[tuple[OutputFile, OSError]] = []
        for output in self.files:
            with output._lock:
                if output.closed:
                    continue
                try:
                    if close:
                        output._handle.close()
                    else:
                        output._handle.flush()
                except OSError as exc:
                    failures.append((output, exc))
                    self.logger.error(f"output_{action}_failed", output=output.name, error=str(exc))
                finally:
                    if close:
                        output.closed = True
        if failures:
            output, exc = failures[0]
            raise OutputSinkError(
                f"Failed to {action} {output.path}: {exc.strerror or exc}"
                + (f" (and {len(failures) - 1} more)" if len(failures) > 1 else "")
            ) from exc

    @staticmethod
    def _check_open(output: OutputFile) -> None:
        if output.closed:
            raise OutputSinkError(f"Output file already closed: {output.path}")


__all__ = ["HEADER_TEMPLATE", "OutputFile", "OutputSink", "TIMESTAMP_FORMAT"]
