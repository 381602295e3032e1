"""
Parsers for the read manifest and the alignment hit stream.

The manifest is small (one line per read) and is loaded eagerly with
Polars. The hit file can hold hundreds of millions of alignments and is
streamed line by line so that the classifier sees hits in file order,
which is what groups them by read.
"""

from __future__ import annotations

import gzip
import logging
from collections.abc import Iterator
from pathlib import Path
from typing import TextIO

import polars as pl
from pydantic import ValidationError

from phylointersect.core.exceptions import (
    EmptyManifestError,
    MalformedHitLineError,
    MalformedManifestError,
)
from phylointersect.models.hits import AlignmentHit

logger = logging.getLogger(__name__)


def open_text(path: Path) -> TextIO:
    """Open a plain or gzip-compressed text file for reading."""
    if path.suffix == ".gz":
        return gzip.open(path, "rt", encoding="utf-8")
    return path.open("r", encoding="utf-8")


class ReadManifestParser:
    """
    Parser for the read manifest: 'read_id<TAB>read_length' per line.

    The manifest is produced upstream from the FASTA of reads being
    classified. Read order is preserved; a repeated read ID keeps its last
    length.
    """

    def __init__(self, manifest_path: Path) -> None:
        self.manifest_path = Path(manifest_path)
        if not self.manifest_path.exists():
            msg = f"Read manifest not found: {self.manifest_path}"
            raise FileNotFoundError(msg)

    def parse(self) -> dict[str, int]:
        """
        Load the manifest.

        Returns:
            Mapping of read ID to read length, in file order.

        Raises:
            EmptyManifestError: If the manifest lists no reads.
            MalformedManifestError: If a line lacks a positive integer length.
        """
        try:
            df = pl.read_csv(
                self.manifest_path,
                separator="\t",
                has_header=False,
                quote_char=None,
                infer_schema_length=0,
                truncate_ragged_lines=True,
            )
        except pl.exceptions.NoDataError as e:
            raise EmptyManifestError(str(self.manifest_path)) from e

        if df.height == 0:
            raise EmptyManifestError(str(self.manifest_path))
        if df.width < 2:
            raise MalformedManifestError(str(self.manifest_path), 1, df.row(0)[0])

        df = df.select(
            pl.col(df.columns[0]).alias("read_id"),
            pl.col(df.columns[1]).str.strip_chars().cast(pl.Int64, strict=False).alias("length"),
        )

        bad = (
            df.with_row_index("line_num", offset=1)
            .filter(
                pl.col("read_id").is_null()
                | pl.col("length").is_null()
                | (pl.col("length") <= 0)
            )
        )
        if bad.height:
            first = bad.row(0, named=True)
            raise MalformedManifestError(
                str(self.manifest_path), first["line_num"], str(first["read_id"])
            )

        reads = dict(zip(df["read_id"].to_list(), df["length"].to_list()))
        logger.info("%d reads to process", len(reads))
        return reads


class StreamingHitParser:
    """
    Line-by-line parser for BLAST '6 std staxids' output.

    Yields hits in file order. Comment lines ('#') and blank lines are
    ignored. A malformed line is logged and skipped, so only the read it
    belongs to is affected; with strict=True it raises instead.

    Example:
        parser = StreamingHitParser(Path("sample.blast.tsv.gz"))
        for hit in parser.iter_hits():
            ...
    """

    def __init__(self, hits_path: Path, strict: bool = False) -> None:
        self.hits_path = Path(hits_path)
        self.strict = strict
        self.malformed_lines = 0
        if not self.hits_path.exists():
            msg = f"Hit file not found: {self.hits_path}"
            raise FileNotFoundError(msg)

    def iter_hits(self) -> Iterator[AlignmentHit]:
        """
        Iterate over hits in file order.

        Raises:
            MalformedHitLineError: On a malformed line when strict is set.
        """
        self.malformed_lines = 0
        with open_text(self.hits_path) as handle:
            for line_num, line in enumerate(handle, start=1):
                if not line.strip() or line.startswith("#"):
                    continue
                try:
                    yield AlignmentHit.from_hit_line(line)
                except (ValueError, ValidationError) as e:
                    reason = _describe_error(e)
                    if self.strict:
                        raise MalformedHitLineError(
                            str(self.hits_path), line_num, reason
                        ) from e
                    self.malformed_lines += 1
                    logger.warning(
                        "Skipping malformed hit at %s:%d: %s",
                        self.hits_path.name,
                        line_num,
                        reason,
                    )


def _describe_error(error: Exception) -> str:
    text = " ".join(str(error).split())
    return text or type(error).__name__
