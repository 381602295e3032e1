"""
Unit tests for per-sample runs.

Tests output naming, run logs, and the failure modes of run_sample().
"""

from __future__ import annotations

import logging

import pytest

from phylointersect.core.exceptions import (
    EmptyManifestError,
    MalformedHitLineError,
    TaxonomyIndexNotFoundError,
)
from phylointersect.core.pipeline import SamplePaths, run_log, run_sample
from phylointersect.models.config import ClassifierConfig


class TestSamplePaths:
    """Tests for output file naming."""

    def test_default_layout(self, temp_dir):
        paths = SamplePaths.for_manifest(temp_dir / "river.reads")

        assert paths.core_name == "river.reads_out"
        assert paths.output_dir == temp_dir / "river.reads_out"
        assert paths.intersects.name == "river.reads_out.intersects.txt"
        assert paths.summary_basic.name == "river.reads_out.intersects.txt_Summary_Basic.txt"
        assert paths.run_log.name == "river.reads_out_phylointersect_log.txt"

    def test_custom_output_dir(self, temp_dir):
        paths = SamplePaths.for_manifest(temp_dir / "river.reads", temp_dir / "results")
        assert paths.intersects.parent == temp_dir / "results"


class TestRunLog:
    """Tests for the per-run log file."""

    def test_records_written(self, temp_dir):
        path = temp_dir / "run.log"
        with run_log(path):
            logging.getLogger("phylointersect.test").debug("detail for the log")

        assert "detail for the log" in path.read_text()

    def test_handler_removed_afterwards(self, temp_dir):
        path = temp_dir / "run.log"
        package_logger = logging.getLogger("phylointersect")
        before = list(package_logger.handlers)

        with run_log(path):
            pass

        assert package_logger.handlers == before

    def test_overwrites_previous_log(self, temp_dir):
        path = temp_dir / "run.log"
        path.write_text("old run\n")
        with run_log(path):
            pass
        assert "old run" not in path.read_text()


class TestRunSample:
    """Tests for classifying one sample."""

    def test_outputs(self, sample_files, taxonomy_index):
        manifest, hits = sample_files
        result = run_sample(
            manifest, hits, taxonomy_index, ClassifierConfig(min_diversity_score=0.01)
        )

        assert result.intersects_written
        assert result.paths.summary_basic.exists()
        assert result.paths.run_log.exists()
        assert len(result.paths.intersects.read_text().splitlines()) == 3
        assert {e.taxid for e in result.summary.entries} == {2, 100, 110}

    def test_run_log_contents(self, sample_files, taxonomy_index):
        manifest, hits = sample_files
        result = run_sample(manifest, hits, taxonomy_index)

        log = result.paths.run_log.read_text()
        assert "4 reads to process" in log
        assert "This run is finished" in log

    def test_rerun_replaces_intersects(self, sample_files, taxonomy_index):
        """A second run must not append to the first run's results."""
        manifest, hits = sample_files
        run_sample(manifest, hits, taxonomy_index)
        result = run_sample(manifest, hits, taxonomy_index)

        assert len(result.paths.intersects.read_text().splitlines()) == 3

    def test_no_reads_pass_coverage(self, write_manifest, write_hits, hit_line, taxonomy_index):
        """With nothing classified there is no intersects file or summary."""
        manifest = write_manifest([("read_1", 1000)])
        hits = write_hits([hit_line("read_1", 111, alignment_length=100)])

        result = run_sample(manifest, hits, taxonomy_index)

        assert not result.intersects_written
        assert result.summary is None
        assert not result.paths.summary_basic.exists()
        assert "No reads passed the coverage check" in result.paths.run_log.read_text()

    def test_missing_taxonomy_index(self, sample_files, temp_dir):
        manifest, hits = sample_files
        with pytest.raises(TaxonomyIndexNotFoundError):
            run_sample(manifest, hits, temp_dir / "missing.sqlite")

    def test_missing_hit_file(self, sample_files, taxonomy_index, temp_dir):
        manifest, _ = sample_files
        with pytest.raises(FileNotFoundError):
            run_sample(manifest, temp_dir / "missing.tsv", taxonomy_index)

    def test_empty_manifest(self, sample_files, taxonomy_index, temp_dir):
        _, hits = sample_files
        manifest = temp_dir / "empty.reads"
        manifest.touch()
        with pytest.raises(EmptyManifestError):
            run_sample(manifest, hits, taxonomy_index)

    def test_malformed_hits_lenient(self, write_manifest, write_hits, hit_line, taxonomy_index):
        manifest = write_manifest([("read_1", 150)])
        hits = write_hits(
            [hit_line("read_1", 111, evalue=1e-60), "read_1\tbroken", hit_line("read_1", 112)]
        )
        result = run_sample(manifest, hits, taxonomy_index)

        assert result.malformed_hit_lines == 1
        assert result.stats.reads_classified == 1

    def test_malformed_hits_strict(self, write_manifest, write_hits, hit_line, taxonomy_index):
        manifest = write_manifest([("read_1", 150)])
        hits = write_hits([hit_line("read_1", 111), "read_1\tbroken"])

        with pytest.raises(MalformedHitLineError):
            run_sample(manifest, hits, taxonomy_index, ClassifierConfig(strict_hits=True))
