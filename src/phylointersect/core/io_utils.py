"""
I/O utilities for classification output.

The intersects file is plain text, one line per classified read, opened in
append mode so that several passes (or partitions) can add to the same
sample file.
"""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path
from types import TracebackType

from phylointersect.models.classification import ClassificationResult, SampleSummary


class IntersectsWriter:
    """
    Append-only writer for intersects files.

    The file is created lazily on the first write, so a run that classifies
    nothing leaves no intersects file behind.

    Example:
        with IntersectsWriter(Path("sample.intersects.txt")) as writer:
            writer.write_all(aggregator.classify(hits))
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self.lines_written = 0
        self._handle = None

    def write(self, result: ClassificationResult) -> None:
        if self._handle is None:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self._handle = self.path.open("a", encoding="utf-8")
        self._handle.write(result.to_intersects_line() + "\n")
        self._handle.flush()
        self.lines_written += 1

    def write_all(self, results: Iterable[ClassificationResult]) -> int:
        """Write every result; returns the number written by this call."""
        count = 0
        for result in results:
            self.write(result)
            count += 1
        return count

    def close(self) -> None:
        if self._handle is not None:
            self._handle.close()
            self._handle = None

    def __enter__(self) -> IntersectsWriter:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()


def append_files(sources: Iterable[Path], destination: Path) -> int:
    """
    Append the contents of each existing source file to destination.

    Returns:
        Number of lines appended.
    """
    lines = 0
    destination.parent.mkdir(parents=True, exist_ok=True)
    with destination.open("a", encoding="utf-8") as out:
        for source in sources:
            if not source.exists():
                continue
            with source.open("r", encoding="utf-8") as handle:
                for line in handle:
                    out.write(line)
                    lines += 1
    return lines


def write_summary_basic(summary: SampleSummary, path: Path) -> None:
    """
    Write a basic summary: a '#Series:' header then one line per taxon.

    Format:
        #Series:<TAB>sample
        taxid<TAB>name<TAB>read_count
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as handle:
        handle.write(f"#Series:\t{summary.sample_name}\n")
        for entry in summary.entries:
            handle.write(f"{entry.taxid}\t{entry.name}\t{entry.read_count}\n")
