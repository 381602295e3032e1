"""
Basic summary of an intersects file.

Counts how many reads were assigned to each classification intersect,
keeping only reads whose taxonomic diversity score reaches a threshold.
Fields are located by their labels rather than by position.
"""

from __future__ import annotations

import logging
from pathlib import Path

import polars as pl

from phylointersect.core.constants import INTERSECTS_SUFFIX, NO_TAXID
from phylointersect.core.exceptions import InvalidThresholdError
from phylointersect.models.classification import (
    LABEL_CLASSIFICATION,
    LABEL_DIVERSITY_SCORE,
    SampleSummary,
    SummaryEntry,
)

logger = logging.getLogger(__name__)


def extract_labelled_field(line: str, label: str, next_label: str | None = None) -> str | None:
    """
    Return the text between label and next_label (or the end of the line).

    Returns None when a label is missing.
    """
    _, found, rest = line.partition(label)
    if not found:
        return None
    if next_label is None:
        return rest.rstrip("\r\n")
    value, found, _ = rest.partition(next_label)
    return value if found else None


def split_taxon_label(text: str) -> tuple[int, str]:
    """
    Split 'Homo sapiens (9606)' into (9606, 'Homo sapiens').

    Raises:
        ValueError: If the text does not end in a parenthesised taxon ID.
    """
    text = text.strip()
    name, sep, taxid = text.rpartition(" (")
    if not sep or not taxid.endswith(")"):
        msg = f"Not a 'name (taxid)' label: {text!r}"
        raise ValueError(msg)
    return int(taxid[:-1]), name


def summarize_intersects(
    intersects_path: Path,
    min_diversity_score: float,
    sample_name: str | None = None,
) -> SampleSummary:
    """
    Count classification intersects at or above a diversity threshold.

    Reads classified as 'none found (0)' are left out of the counts.
    Unparseable lines are logged and skipped.

    Args:
        intersects_path: Intersects file written by the classifier.
        min_diversity_score: Minimum taxonomic diversity score (inclusive).
        sample_name: Name for the summary header (default: file stem).

    Returns:
        SampleSummary with entries sorted by read count, descending.

    Raises:
        FileNotFoundError: If the intersects file does not exist.
        InvalidThresholdError: If min_diversity_score is outside [0, 1].
    """
    if not 0.0 <= min_diversity_score <= 1.0:
        raise InvalidThresholdError("min_diversity_score", min_diversity_score, 0.0, 1.0)

    intersects_path = Path(intersects_path)
    if not intersects_path.exists():
        msg = f"Intersects file not found: {intersects_path}"
        raise FileNotFoundError(msg)

    if sample_name is None:
        sample_name = intersects_path.name.removesuffix(INTERSECTS_SUFFIX)

    rows: list[tuple[int, str]] = []
    examined = 0
    with intersects_path.open("r", encoding="utf-8") as handle:
        for line_num, line in enumerate(handle, start=1):
            if not line.strip():
                continue
            score_text = extract_labelled_field(line, LABEL_DIVERSITY_SCORE, LABEL_CLASSIFICATION)
            label_text = extract_labelled_field(line, LABEL_CLASSIFICATION)
            try:
                if score_text is None or label_text is None:
                    msg = "missing diversity score or classification field"
                    raise ValueError(msg)
                score = float(score_text)
                taxid, name = split_taxon_label(label_text)
            except ValueError as e:
                logger.warning(
                    "Skipping unparseable line %d of %s: %s", line_num, intersects_path.name, e
                )
                continue

            examined += 1
            if score >= min_diversity_score:
                rows.append((taxid, name))

    df = pl.DataFrame(rows, schema={"taxid": pl.Int64, "name": pl.Utf8}, orient="row")
    counts = (
        df.filter(pl.col("taxid") != NO_TAXID)
        .group_by(["taxid", "name"])
        .agg(pl.len().alias("read_count"))
        .sort(["read_count", "taxid"], descending=[True, False])
    )

    return SampleSummary(
        sample_name=sample_name,
        min_diversity_score=min_diversity_score,
        reads_examined=examined,
        reads_passing=len(rows),
        entries=[SummaryEntry(**row) for row in counts.iter_rows(named=True)],
    )
