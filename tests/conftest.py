"""
Shared pytest fixtures for phylointersect tests.

Provides a small taxonomy, writers for manifest and hit files, and
temporary paths for unit and end-to-end testing.

Test taxonomy:

    1 root
    └── 2 Bacteria
        ├── 100 Proteobacteria
        │   ├── 110 Escherichia
        │   │   ├── 111 Escherichia coli
        │   │   └── 112 Escherichia fergusonii
        │   └── 120 Salmonella
        │       └── 121 Salmonella enterica
        └── 200 Firmicutes
            └── 210 Bacillus
                └── 211 Bacillus subtilis
"""

from __future__ import annotations

import logging
import tempfile
from collections.abc import Callable, Iterable
from pathlib import Path

import pytest

from phylointersect.core.lineage import LineageResolver
from phylointersect.core.taxonomy import TaxonomyStore

# =============================================================================
# Taxonomy Fixtures
# =============================================================================

TAXONOMY_NODES: dict[int, tuple[int, str, str]] = {
    1: (1, "no rank", "root"),
    2: (1, "superkingdom", "Bacteria"),
    100: (2, "phylum", "Proteobacteria"),
    110: (100, "genus", "Escherichia"),
    111: (110, "species", "Escherichia coli"),
    112: (110, "species", "Escherichia fergusonii"),
    120: (100, "genus", "Salmonella"),
    121: (120, "species", "Salmonella enterica"),
    200: (2, "phylum", "Firmicutes"),
    210: (200, "genus", "Bacillus"),
    211: (210, "species", "Bacillus subtilis"),
}


@pytest.fixture
def taxonomy_parents() -> dict[int, int]:
    """Parent links of the test taxonomy."""
    return {taxid: parent for taxid, (parent, _, _) in TAXONOMY_NODES.items()}


@pytest.fixture
def taxonomy_names() -> dict[int, str]:
    """Scientific names of the test taxonomy."""
    return {taxid: name for taxid, (_, _, name) in TAXONOMY_NODES.items()}


@pytest.fixture
def store(taxonomy_parents: dict[int, int], taxonomy_names: dict[int, str]):
    """In-memory taxonomy store over the test taxonomy."""
    with TaxonomyStore.from_mappings(taxonomy_parents, taxonomy_names) as taxonomy:
        yield taxonomy


@pytest.fixture
def resolver(store: TaxonomyStore) -> LineageResolver:
    """Lineage resolver over the test taxonomy."""
    return LineageResolver(store)


@pytest.fixture
def taxdump_files(temp_dir: Path) -> tuple[Path, Path]:
    """nodes.dmp and names.dmp for the test taxonomy in NCBI layout."""
    nodes = temp_dir / "nodes.dmp"
    names = temp_dir / "names.dmp"

    node_lines = []
    name_lines = []
    for taxid, (parent, rank, name) in TAXONOMY_NODES.items():
        node_lines.append(f"{taxid}\t|\t{parent}\t|\t{rank}\t|\t\t|\t0\t|\n")
        name_lines.append(f"{taxid}\t|\t{name}\t|\t\t|\tscientific name\t|\n")
        name_lines.append(f"{taxid}\t|\t{name} synonym\t|\t\t|\tsynonym\t|\n")

    nodes.write_text("".join(node_lines))
    names.write_text("".join(name_lines))
    return nodes, names


@pytest.fixture
def taxonomy_index(temp_dir: Path, taxdump_files: tuple[Path, Path]) -> Path:
    """SQLite taxonomy index built from the test taxdump."""
    from phylointersect.core.taxonomy import build_taxonomy_index

    index = temp_dir / "taxonomy.sqlite"
    build_taxonomy_index(*taxdump_files, index)
    return index


# =============================================================================
# Hit and Manifest Fixtures
# =============================================================================


def _hit_line(
    read_id: str,
    taxid: int | str,
    evalue: float = 1e-50,
    alignment_length: int = 150,
    identity: float = 99.0,
    subject_id: str | None = None,
) -> str:
    """One BLAST '6 std staxids' line."""
    subject = subject_id or f"ref_{taxid}"
    return "\t".join(
        [
            read_id,
            subject,
            f"{identity}",
            f"{alignment_length}",
            "1",
            "0",
            "1",
            f"{alignment_length}",
            "1000",
            f"{1000 + alignment_length}",
            f"{evalue:g}",
            "250.0",
            f"{taxid}",
        ]
    )


@pytest.fixture
def hit_line() -> Callable[..., str]:
    """Builder for BLAST hit lines: hit_line(read_id, taxid, evalue=..., alignment_length=...)."""
    return _hit_line


@pytest.fixture
def temp_dir() -> Path:
    """Temporary directory that is cleaned up after tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def write_manifest(temp_dir: Path) -> Callable[..., Path]:
    """Factory writing a read manifest from (read_id, length) pairs."""

    def _write(reads: Iterable[tuple[str, int]], name: str = "sample.reads") -> Path:
        path = temp_dir / name
        path.write_text("".join(f"{read_id}\t{length}\n" for read_id, length in reads))
        return path

    return _write


@pytest.fixture
def write_hits(temp_dir: Path) -> Callable[..., Path]:
    """Factory writing a hit file from hit lines."""

    def _write(lines: Iterable[str], name: str = "sample.blast.tsv") -> Path:
        path = temp_dir / name
        path.write_text("".join(f"{line}\n" for line in lines))
        return path

    return _write


@pytest.fixture
def sample_files(write_manifest, write_hits) -> tuple[Path, Path]:
    """
    Manifest and hit file for four reads.

    read_1: E. coli then E. fergusonii -> Escherichia
    read_2: Salmonella then E. coli -> Proteobacteria
    read_3: B. subtilis then E. coli then Salmonella -> Bacteria
    read_4: top hit covers half the read -> skipped
    """
    manifest = write_manifest(
        [("read_1", 150), ("read_2", 150), ("read_3", 150), ("read_4", 150)]
    )
    hits = write_hits(
        [
            _hit_line("read_1", 111, evalue=1e-60),
            _hit_line("read_1", 112, evalue=1e-50),
            _hit_line("read_2", 121, evalue=1e-60),
            _hit_line("read_2", 111, evalue=1e-40),
            _hit_line("read_3", 211, evalue=1e-60),
            _hit_line("read_3", 111, evalue=1e-50),
            _hit_line("read_3", 121, evalue=1e-40),
            _hit_line("read_4", 111, alignment_length=75),
            _hit_line("read_4", 112, alignment_length=75),
        ]
    )
    return manifest, hits


# =============================================================================
# CLI Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def reset_package_logger():
    """Undo console logging set up by CLI commands between tests."""
    yield
    package_logger = logging.getLogger("phylointersect")
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
    package_logger.setLevel(logging.NOTSET)
    package_logger.propagate = True


@pytest.fixture
def cli_runner():
    """Typer CLI runner for testing commands."""
    from typer.testing import CliRunner

    return CliRunner()
