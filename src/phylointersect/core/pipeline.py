"""
Per-sample classification run.

A sample is a read manifest plus the hit file for those reads. Outputs go
to '<manifest>_out/':

    <manifest>_out.intersects.txt                      one line per read
    <manifest>_out.intersects.txt_Summary_Basic.txt    counts per taxon
    <manifest>_out_phylointersect_log.txt              run log
"""

from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path

from phylointersect.core.aggregator import AggregatorStats, QueryAggregator
from phylointersect.core.constants import (
    INTERSECTS_SUFFIX,
    OUTPUT_DIR_SUFFIX,
    RUN_LOG_SUFFIX,
    SUMMARY_BASIC_SUFFIX,
)
from phylointersect.core.io_utils import IntersectsWriter, write_summary_basic
from phylointersect.core.parsers import ReadManifestParser, StreamingHitParser
from phylointersect.core.summary import summarize_intersects
from phylointersect.core.taxonomy import TaxonomyStore
from phylointersect.models.classification import SampleSummary
from phylointersect.models.config import ClassifierConfig

logger = logging.getLogger(__name__)

PACKAGE_LOGGER = "phylointersect"


@dataclass(frozen=True)
class SamplePaths:
    """Output locations for one sample."""

    core_name: str
    output_dir: Path
    intersects: Path
    summary_basic: Path
    run_log: Path

    @classmethod
    def for_manifest(cls, manifest_path: Path, output_dir: Path | None = None) -> SamplePaths:
        core_name = Path(manifest_path).name + OUTPUT_DIR_SUFFIX
        if output_dir is None:
            output_dir = Path(manifest_path).parent / core_name
        intersects = output_dir / f"{core_name}{INTERSECTS_SUFFIX}"
        return cls(
            core_name=core_name,
            output_dir=output_dir,
            intersects=intersects,
            summary_basic=intersects.with_name(intersects.name + SUMMARY_BASIC_SUFFIX),
            run_log=output_dir / f"{core_name}{RUN_LOG_SUFFIX}",
        )


@dataclass
class SampleRunResult:
    """Outcome of classifying one sample."""

    paths: SamplePaths
    stats: AggregatorStats
    summary: SampleSummary | None = None
    malformed_hit_lines: int = 0

    @property
    def intersects_written(self) -> bool:
        return self.paths.intersects.exists()


@contextmanager
def run_log(path: Path, level: int = logging.DEBUG) -> Iterator[Path]:
    """
    Copy package log records to a file for the duration of the block.

    The file is overwritten, like a fresh log per run.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(path, mode="w", encoding="utf-8")
    handler.setLevel(level)
    handler.setFormatter(
        logging.Formatter("%(asctime)s %(levelname)-8s %(name)s: %(message)s")
    )
    package_logger = logging.getLogger(PACKAGE_LOGGER)
    previous_level = package_logger.level
    if package_logger.getEffectiveLevel() > level:
        package_logger.setLevel(level)
    package_logger.addHandler(handler)
    try:
        yield path
    finally:
        package_logger.removeHandler(handler)
        package_logger.setLevel(previous_level)
        handler.close()


def classify_reads(
    reads: Mapping[str, int],
    hits_path: Path,
    taxonomy_index: Path,
    intersects_path: Path,
    config: ClassifierConfig,
    ignore_reads: frozenset[str] = frozenset(),
) -> tuple[AggregatorStats, int]:
    """
    Run one classification pass and append results to intersects_path.

    Returns:
        (aggregator stats, number of malformed hit lines skipped)
    """
    parser = StreamingHitParser(hits_path, strict=config.strict_hits)
    with TaxonomyStore.from_file(taxonomy_index) as store:
        aggregator = QueryAggregator(store, reads, config, ignore_reads=ignore_reads)
        with IntersectsWriter(intersects_path) as writer:
            writer.write_all(aggregator.classify(parser.iter_hits()))
    return aggregator.stats, parser.malformed_lines


def run_sample(
    manifest_path: Path,
    hits_path: Path,
    taxonomy_index: Path,
    config: ClassifierConfig | None = None,
    output_dir: Path | None = None,
    workers: int = 1,
) -> SampleRunResult:
    """
    Classify every read of a sample and write its basic summary.

    Args:
        manifest_path: Read manifest ('read_id<TAB>length').
        hits_path: BLAST '6 std staxids' output, grouped by read.
        taxonomy_index: SQLite index from build_taxonomy_index().
        config: Classification settings (defaults if None).
        output_dir: Output directory (default '<manifest>_out' beside the manifest).
        workers: Number of processes; >1 splits the manifest into partitions.

    Returns:
        SampleRunResult with paths, counters and the basic summary.

    Raises:
        TaxonomyIndexNotFoundError: If the taxonomy index is missing.
        ManifestError: If the manifest is empty or malformed.
        FileNotFoundError: If the manifest or hit file is missing.
    """
    config = config or ClassifierConfig()
    paths = SamplePaths.for_manifest(manifest_path, output_dir)
    paths.output_dir.mkdir(parents=True, exist_ok=True)

    with run_log(paths.run_log):
        logger.info("**** %s ****", manifest_path)
        logger.info(
            "cap=%d, min coverage=%.1f%%, min diversity score=%g",
            config.cap,
            config.min_coverage_percent,
            config.min_diversity_score,
        )

        # Checked before any output is touched; fatal for the run.
        TaxonomyStore.from_file(taxonomy_index).close()
        if not Path(hits_path).exists():
            msg = f"Hit file not found: {hits_path}"
            raise FileNotFoundError(msg)
        reads = ReadManifestParser(manifest_path).parse()

        if paths.intersects.exists():
            logger.warning("Replacing existing intersects file %s", paths.intersects)
            paths.intersects.unlink()

        if workers > 1:
            from phylointersect.core.partition import classify_partitioned

            stats, malformed = classify_partitioned(
                reads, hits_path, taxonomy_index, paths, config, workers
            )
        else:
            stats, malformed = classify_reads(
                reads, hits_path, taxonomy_index, paths.intersects, config
            )

        logger.info(
            "Classified %d of %d reads (%d below coverage, %d without usable hits, "
            "%d absent from hit file)",
            stats.reads_classified,
            stats.reads_expected,
            stats.reads_low_coverage,
            stats.reads_without_hits,
            stats.reads_not_found,
        )

        result = SampleRunResult(paths=paths, stats=stats, malformed_hit_lines=malformed)
        if not paths.intersects.exists():
            logger.warning("No reads passed the coverage check. No intersects file produced.")
            return result

        result.summary = summarize_intersects(
            paths.intersects, config.min_diversity_score, sample_name=paths.core_name
        )
        write_summary_basic(result.summary, paths.summary_basic)
        logger.info(
            "Basic summary: %d taxa from %d reads with diversity score >= %g",
            len(result.summary.entries),
            result.summary.reads_passing,
            config.min_diversity_score,
        )
        logger.info("**** This run is finished. ****")
        return result
