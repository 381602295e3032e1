"""
Read-only taxonomy store backed by a SQLite index.

The index holds two tables built from an NCBI taxdump:

    nodes(taxid INTEGER PRIMARY KEY, parent_taxid INTEGER, rank TEXT)
    names(taxid INTEGER PRIMARY KEY, name TEXT)

It is built once with build_taxonomy_index() and then opened read-only by
every classification run. Several runs may share one index file at the
same time because nothing ever writes to it after the build.
"""

from __future__ import annotations

import logging
import sqlite3
from collections.abc import Mapping
from pathlib import Path
from types import TracebackType

import polars as pl

from phylointersect.core.constants import NO_TAXID, NONE_FOUND
from phylointersect.core.exceptions import (
    CorruptTaxonomyIndexError,
    TaxonomyDumpError,
    TaxonomyIndexNotFoundError,
)

logger = logging.getLogger(__name__)

_SCHEMA = (
    "CREATE TABLE nodes (taxid INTEGER PRIMARY KEY, parent_taxid INTEGER NOT NULL, rank TEXT)",
    "CREATE TABLE names (taxid INTEGER PRIMARY KEY, name TEXT NOT NULL)",
)


class TaxonomyStore:
    """
    Key-value lookups of taxon parent and display name.

    Use from_file() for an on-disk index (opened read-only) or
    from_mappings() for a small in-memory taxonomy.

    Example:
        with TaxonomyStore.from_file(Path("taxonomy.sqlite")) as store:
            store.parent_of(9606)   # 9605
            store.name_of(9606)     # 'Homo sapiens'
    """

    def __init__(self, connection: sqlite3.Connection, source: str = ":memory:") -> None:
        self._conn = connection
        self.source = source
        self._check_schema()

    @classmethod
    def from_file(cls, index_path: Path) -> TaxonomyStore:
        """
        Open a pre-built taxonomy index read-only.

        Raises:
            TaxonomyIndexNotFoundError: If the index file does not exist.
            CorruptTaxonomyIndexError: If the file is not a valid index.
        """
        index_path = Path(index_path)
        if not index_path.is_file():
            raise TaxonomyIndexNotFoundError(str(index_path))

        uri = f"{index_path.resolve().as_uri()}?mode=ro"
        try:
            connection = sqlite3.connect(uri, uri=True)
        except sqlite3.Error as e:
            raise CorruptTaxonomyIndexError(str(index_path), str(e)) from e

        logger.debug("Opened taxonomy index %s", index_path)
        return cls(connection, source=str(index_path))

    @classmethod
    def from_mappings(
        cls,
        parents: Mapping[int, int],
        names: Mapping[int, str] | None = None,
    ) -> TaxonomyStore:
        """
        Build an in-memory store from taxid -> parent and taxid -> name maps.

        Args:
            parents: Parent taxon for every node (the root maps to itself).
            names: Optional display names.

        Returns:
            TaxonomyStore over a private in-memory database.
        """
        connection = sqlite3.connect(":memory:")
        _create_tables(
            connection,
            ((int(t), int(p), None) for t, p in parents.items()),
            ((int(t), str(n)) for t, n in (names or {}).items()),
        )
        return cls(connection)

    def _check_schema(self) -> None:
        try:
            self._conn.execute("SELECT taxid, parent_taxid FROM nodes LIMIT 1")
            self._conn.execute("SELECT taxid, name FROM names LIMIT 1")
        except sqlite3.DatabaseError as e:
            self._conn.close()
            raise CorruptTaxonomyIndexError(self.source, str(e)) from e

    def parent_of(self, taxid: int) -> int | None:
        """Return the parent taxon ID, or None if taxid is not in the index."""
        if taxid == NO_TAXID:
            return None
        row = self._conn.execute(
            "SELECT parent_taxid FROM nodes WHERE taxid = ?", (taxid,)
        ).fetchone()
        return row[0] if row else None

    def name_of(self, taxid: int) -> str:
        """Return the scientific name, or 'none found' if unknown."""
        if taxid == NO_TAXID:
            return NONE_FOUND
        row = self._conn.execute(
            "SELECT name FROM names WHERE taxid = ?", (taxid,)
        ).fetchone()
        return row[0] if row else NONE_FOUND

    def rank_of(self, taxid: int) -> str | None:
        """Return the rank recorded for taxid, if any."""
        if taxid == NO_TAXID:
            return None
        row = self._conn.execute(
            "SELECT rank FROM nodes WHERE taxid = ?", (taxid,)
        ).fetchone()
        return row[0] if row else None

    def __contains__(self, taxid: object) -> bool:
        if not isinstance(taxid, int) or taxid == NO_TAXID:
            return False
        return self.parent_of(taxid) is not None

    def __len__(self) -> int:
        return self._conn.execute("SELECT COUNT(*) FROM nodes").fetchone()[0]

    def close(self) -> None:
        self._conn.close()

    def __enter__(self) -> TaxonomyStore:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()


def _create_tables(connection: sqlite3.Connection, node_rows, name_rows) -> None:
    with connection:
        for statement in _SCHEMA:
            connection.execute(statement)
        connection.executemany(
            "INSERT INTO nodes (taxid, parent_taxid, rank) VALUES (?, ?, ?)", node_rows
        )
        connection.executemany(
            "INSERT OR REPLACE INTO names (taxid, name) VALUES (?, ?)", name_rows
        )


def _read_dmp(path: Path, columns: dict[int, str]) -> pl.DataFrame:
    """
    Read an NCBI .dmp file into a DataFrame of stripped string columns.

    Fields are separated by '\\t|\\t' and lines end with '\\t|', so the
    file is split on '|' and surrounding tabs are stripped.
    """
    if not path.is_file():
        raise TaxonomyDumpError(str(path), "file not found")

    try:
        raw = pl.read_csv(
            path,
            separator="|",
            has_header=False,
            quote_char=None,
            infer_schema_length=0,
            truncate_ragged_lines=True,
        )
    except (pl.exceptions.PolarsError, OSError) as e:
        raise TaxonomyDumpError(str(path), str(e)) from e

    if raw.width <= max(columns):
        raise TaxonomyDumpError(
            str(path), f"expected at least {max(columns) + 1} fields, got {raw.width}"
        )

    return raw.select(
        [
            pl.col(raw.columns[idx]).str.strip_chars().alias(name)
            for idx, name in columns.items()
        ]
    )


def build_taxonomy_index(nodes_dmp: Path, names_dmp: Path, output: Path) -> int:
    """
    Build a SQLite taxonomy index from NCBI nodes.dmp and names.dmp.

    Only 'scientific name' entries from names.dmp are kept.

    Args:
        nodes_dmp: Path to nodes.dmp.
        names_dmp: Path to names.dmp.
        output: Destination index path. Overwritten if it exists.

    Returns:
        Number of nodes written.

    Raises:
        TaxonomyDumpError: If either dump file is missing or malformed.
    """
    nodes = _read_dmp(nodes_dmp, {0: "taxid", 1: "parent_taxid", 2: "rank"})
    names = _read_dmp(names_dmp, {0: "taxid", 1: "name", 3: "name_class"})

    try:
        nodes = nodes.with_columns(
            pl.col("taxid").cast(pl.Int64),
            pl.col("parent_taxid").cast(pl.Int64),
        )
        names = (
            names.filter(pl.col("name_class") == "scientific name")
            .with_columns(pl.col("taxid").cast(pl.Int64))
            .select("taxid", "name")
        )
    except pl.exceptions.PolarsError as e:
        raise TaxonomyDumpError(f"{nodes_dmp}, {names_dmp}", str(e)) from e

    output = Path(output)
    output.parent.mkdir(parents=True, exist_ok=True)
    if output.exists():
        output.unlink()

    connection = sqlite3.connect(output)
    try:
        _create_tables(connection, nodes.iter_rows(), names.iter_rows())
    finally:
        connection.close()

    logger.info(
        "Wrote taxonomy index %s (%d nodes, %d names)", output, nodes.height, names.height
    )
    return nodes.height
