"""
Partitioned classification across worker processes.

The manifest is split into contiguous subsets and each worker streams the
whole hit file for its own subset, opening the taxonomy index read-only.
Worker outputs are concatenated in subset order, so the intersects file
lists reads in the same order as a single-process run would whenever the
hit file follows manifest order.
"""

from __future__ import annotations

import logging
import multiprocessing as mp
import tempfile
from collections.abc import Mapping
from concurrent.futures import ProcessPoolExecutor
from pathlib import Path
from typing import TYPE_CHECKING

from phylointersect.core.aggregator import AggregatorStats
from phylointersect.core.io_utils import append_files
from phylointersect.models.config import ClassifierConfig

if TYPE_CHECKING:
    from phylointersect.core.pipeline import SamplePaths

logger = logging.getLogger(__name__)


def split_reads(reads: Mapping[str, int], parts: int) -> list[dict[str, int]]:
    """
    Split reads into at most `parts` contiguous, near-equal subsets.

    Earlier subsets take the remainder, so sizes differ by at most one.
    Never returns empty subsets.
    """
    if parts < 1:
        msg = f"parts must be at least 1, got {parts}"
        raise ValueError(msg)

    items = list(reads.items())
    parts = max(1, min(parts, len(items)))
    size, extra = divmod(len(items), parts)

    subsets: list[dict[str, int]] = []
    start = 0
    for i in range(parts):
        end = start + size + (1 if i < extra else 0)
        subsets.append(dict(items[start:end]))
        start = end
    return subsets


def _classify_partition(
    index: int,
    reads: dict[str, int],
    ignore_reads: frozenset[str],
    hits_path: Path,
    taxonomy_index: Path,
    intersects_path: Path,
    log_path: Path,
    config: ClassifierConfig,
) -> tuple[AggregatorStats, int]:
    """Worker entry point: classify one subset into its own files."""
    from phylointersect.core.pipeline import classify_reads, run_log

    with run_log(log_path):
        logger.info("Partition %d: %d reads", index, len(reads))
        return classify_reads(
            reads, hits_path, taxonomy_index, intersects_path, config, ignore_reads
        )


def classify_partitioned(
    reads: Mapping[str, int],
    hits_path: Path,
    taxonomy_index: Path,
    paths: SamplePaths,
    config: ClassifierConfig,
    workers: int,
) -> tuple[AggregatorStats, int]:
    """
    Classify reads with `workers` processes and merge their outputs.

    Each partition writes a log '<core>_part<N>_phylointersect_log.txt'
    beside the sample log; partition intersects files are temporary.

    Returns:
        (combined stats, malformed hit lines seen by the longest pass)
    """
    subsets = split_reads(reads, workers)
    all_reads = frozenset(reads)
    logger.info("Splitting %d reads into %d partitions", len(reads), len(subsets))

    with tempfile.TemporaryDirectory(dir=paths.output_dir) as tmp:
        part_files = [Path(tmp) / f"part{i}.intersects.txt" for i in range(len(subsets))]
        log_files = [
            paths.run_log.with_name(
                paths.run_log.name.replace(paths.core_name, f"{paths.core_name}_part{i}", 1)
            )
            for i in range(len(subsets))
        ]

        ctx = mp.get_context("spawn")
        with ProcessPoolExecutor(max_workers=len(subsets), mp_context=ctx) as pool:
            futures = [
                pool.submit(
                    _classify_partition,
                    i,
                    subset,
                    all_reads.difference(subset),
                    Path(hits_path),
                    Path(taxonomy_index),
                    part_files[i],
                    log_files[i],
                    config,
                )
                for i, subset in enumerate(subsets)
            ]
            outcomes = [future.result() for future in futures]

        if any(path.exists() for path in part_files):
            lines = append_files(part_files, paths.intersects)
            logger.debug("Merged %d intersects lines from %d partitions", lines, len(subsets))

    stats = AggregatorStats.combine([stats for stats, _ in outcomes])
    malformed = max(count for _, count in outcomes)
    return stats, malformed
