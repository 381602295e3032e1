"""
Unit tests for the taxonomy store and index builder.

Tests TaxonomyStore lookups, read-only file access, and building the
SQLite index from NCBI taxdump files.
"""

from __future__ import annotations

import sqlite3
from pathlib import Path

import pytest

from phylointersect.core.exceptions import (
    CorruptTaxonomyIndexError,
    TaxonomyDumpError,
    TaxonomyIndexNotFoundError,
)
from phylointersect.core.taxonomy import TaxonomyStore, build_taxonomy_index


class TestTaxonomyStoreLookups:
    """Tests for parent and name lookups."""

    def test_parent_of_known_taxon(self, store):
        """Should return the parent of a known taxon."""
        assert store.parent_of(111) == 110
        assert store.parent_of(2) == 1

    def test_root_is_its_own_parent(self, store):
        """Root should map to itself, as in NCBI nodes.dmp."""
        assert store.parent_of(1) == 1

    def test_parent_of_unknown_taxon(self, store):
        """Unknown taxa should have no parent."""
        assert store.parent_of(999999) is None

    def test_parent_of_zero_is_never_looked_up(self, store):
        """Taxon 0 means 'no identification' and has no parent."""
        assert store.parent_of(0) is None

    def test_name_of_known_taxon(self, store):
        """Should return the scientific name."""
        assert store.name_of(111) == "Escherichia coli"

    def test_name_of_unknown_taxon(self, store):
        """Unknown taxa should be named 'none found'."""
        assert store.name_of(999999) == "none found"
        assert store.name_of(0) == "none found"

    def test_contains(self, store):
        """Membership should reflect the nodes table."""
        assert 111 in store
        assert 999999 not in store
        assert 0 not in store
        assert "111" not in store

    def test_len(self, store):
        """Length should count nodes."""
        assert len(store) == 11

    def test_names_are_optional(self):
        """A store built without names should still resolve parents."""
        with TaxonomyStore.from_mappings({1: 1, 5: 1}) as bare:
            assert bare.parent_of(5) == 1
            assert bare.name_of(5) == "none found"


class TestTaxonomyStoreFromFile:
    """Tests for opening an on-disk index."""

    def test_missing_index_raises(self, temp_dir):
        """A missing index is fatal for the run."""
        with pytest.raises(TaxonomyIndexNotFoundError) as exc_info:
            TaxonomyStore.from_file(temp_dir / "missing.sqlite")
        assert "taxonomy build" in exc_info.value.suggestion

    def test_not_a_database_raises(self, temp_dir):
        """A file that is not SQLite should be reported as corrupt."""
        bogus = temp_dir / "bogus.sqlite"
        bogus.write_text("this is not a database\n" * 100)
        with pytest.raises(CorruptTaxonomyIndexError):
            TaxonomyStore.from_file(bogus)

    def test_missing_tables_raises(self, temp_dir):
        """A SQLite file without the expected tables is corrupt."""
        path = temp_dir / "empty.sqlite"
        connection = sqlite3.connect(path)
        connection.execute("CREATE TABLE other (x INTEGER)")
        connection.commit()
        connection.close()

        with pytest.raises(CorruptTaxonomyIndexError):
            TaxonomyStore.from_file(path)

    def test_index_is_read_only(self, taxonomy_index):
        """Runs must not be able to modify a shared index."""
        with TaxonomyStore.from_file(taxonomy_index) as store:
            with pytest.raises(sqlite3.OperationalError):
                store._conn.execute("DELETE FROM nodes")

    def test_multiple_readers(self, taxonomy_index):
        """Several stores may read the same index concurrently."""
        with TaxonomyStore.from_file(taxonomy_index) as a, TaxonomyStore.from_file(
            taxonomy_index
        ) as b:
            assert a.parent_of(111) == b.parent_of(111) == 110


class TestBuildTaxonomyIndex:
    """Tests for building the index from nodes.dmp and names.dmp."""

    def test_builds_nodes_and_names(self, taxdump_files, temp_dir):
        """Should index every node with its scientific name."""
        index = temp_dir / "built.sqlite"
        count = build_taxonomy_index(*taxdump_files, index)

        assert count == 11
        with TaxonomyStore.from_file(index) as store:
            assert store.parent_of(211) == 210
            assert store.name_of(211) == "Bacillus subtilis"
            assert store.rank_of(211) == "species"

    def test_synonyms_are_ignored(self, taxonomy_index):
        """Only 'scientific name' rows should be kept."""
        with TaxonomyStore.from_file(taxonomy_index) as store:
            assert store.name_of(110) == "Escherichia"

    def test_overwrites_existing_index(self, taxdump_files, temp_dir):
        """Building twice should replace the earlier index."""
        index = temp_dir / "built.sqlite"
        build_taxonomy_index(*taxdump_files, index)
        build_taxonomy_index(*taxdump_files, index)

        with TaxonomyStore.from_file(index) as store:
            assert len(store) == 11

    def test_missing_dump_raises(self, taxdump_files, temp_dir):
        """A missing dump file should raise TaxonomyDumpError."""
        nodes, _ = taxdump_files
        with pytest.raises(TaxonomyDumpError):
            build_taxonomy_index(nodes, temp_dir / "missing.dmp", temp_dir / "out.sqlite")

    def test_non_numeric_taxid_raises(self, taxdump_files, temp_dir):
        """Non-numeric IDs in nodes.dmp should raise TaxonomyDumpError."""
        _, names = taxdump_files
        nodes = temp_dir / "bad_nodes.dmp"
        nodes.write_text("abc\t|\t1\t|\tspecies\t|\n")

        with pytest.raises(TaxonomyDumpError):
            build_taxonomy_index(nodes, names, temp_dir / "out.sqlite")

    def test_creates_parent_directory(self, taxdump_files, temp_dir):
        """Output directories should be created as needed."""
        index = temp_dir / "nested" / "dir" / "taxonomy.sqlite"
        build_taxonomy_index(*taxdump_files, index)
        assert Path(index).exists()
