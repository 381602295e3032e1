"""
Lineage resolution: from a taxon up to the root of the taxonomy tree.

A lineage lists taxon IDs from the most specific (the queried taxon) to the
least specific (the root, or the last node that could be resolved).
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from dataclasses import dataclass
from enum import Enum

from phylointersect.core.constants import (
    MAX_LINEAGE_DEPTH,
    NO_TAXID,
    NOT_AVAILABLE,
    ROOT_TAXID,
)
from phylointersect.core.taxonomy import TaxonomyStore

logger = logging.getLogger(__name__)


class LineageStatus(str, Enum):
    """How lineage traversal ended."""

    COMPLETE = "complete"  # reached the root
    TRUNCATED = "truncated"  # a parent lookup failed
    CYCLE = "cycle"  # a node was revisited below the root
    DEPTH_LIMIT = "depth_limit"  # max_depth hops without reaching the root


@dataclass(frozen=True)
class Lineage:
    """
    Ordered ancestor path of a taxon, leaf first.

    Attributes:
        taxids: Taxon IDs from the queried taxon towards the root.
        status: Whether the path reached the root or stopped early.
    """

    taxids: tuple[int, ...]
    status: LineageStatus = LineageStatus.COMPLETE

    def __iter__(self) -> Iterator[int]:
        return iter(self.taxids)

    def __len__(self) -> int:
        return len(self.taxids)

    def __contains__(self, taxid: object) -> bool:
        return taxid in self.taxids

    @property
    def leaf(self) -> int:
        return self.taxids[0]

    @property
    def terminal(self) -> int:
        """Last resolved node: the root when the lineage is complete."""
        return self.taxids[-1]

    @property
    def is_complete(self) -> bool:
        return self.status is LineageStatus.COMPLETE


def coerce_taxid(value: object) -> int | None:
    """
    Convert a raw taxon ID to an int, or None if it denotes no identification.

    0, 'N/A', negative numbers, and anything that is not an integer all map
    to None.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        taxid = value
    else:
        text = str(value).strip()
        if not text or text == NOT_AVAILABLE:
            return None
        try:
            taxid = int(text)
        except ValueError:
            return None
    if taxid <= NO_TAXID:
        return None
    return taxid


class LineageResolver:
    """
    Resolve taxon IDs to lineages by following parent links.

    Traversal always terminates: it stops at the root, at a taxon missing
    from the store, at the first revisited node, or after max_depth nodes.
    Only the first case yields a complete lineage; the others are logged
    and the partial path is returned.

    Args:
        store: Taxonomy store providing parent links.
        root_taxid: ID of the tree root.
        max_depth: Maximum number of nodes in a lineage.
        cache: Memoise resolved lineages. Taxonomy data never changes
            during a run, so this only affects speed.
    """

    def __init__(
        self,
        store: TaxonomyStore,
        root_taxid: int = ROOT_TAXID,
        max_depth: int = MAX_LINEAGE_DEPTH,
        cache: bool = True,
    ) -> None:
        if max_depth < 1:
            msg = f"max_depth must be at least 1, got {max_depth}"
            raise ValueError(msg)
        self.store = store
        self.root_taxid = root_taxid
        self.max_depth = max_depth
        self._cache: dict[int, Lineage] | None = {} if cache else None

    def resolve(self, taxid: object) -> Lineage | None:
        """
        Build the lineage of taxid.

        Returns:
            Lineage from taxid to the root, or None if taxid is 0,
            'N/A', or not a valid integer.
        """
        start = coerce_taxid(taxid)
        if start is None:
            return None

        if self._cache is not None and start in self._cache:
            return self._cache[start]

        lineage = self._walk(start)
        if self._cache is not None:
            self._cache[start] = lineage
        return lineage

    def _walk(self, start: int) -> Lineage:
        path: list[int] = []
        seen: set[int] = set()
        current = start

        while True:
            path.append(current)
            seen.add(current)

            if current == self.root_taxid:
                return Lineage(tuple(path))

            if len(path) >= self.max_depth:
                logger.warning(
                    "Lineage of %d exceeded %d nodes without reaching the root. "
                    "Truncating lineage here.",
                    start,
                    self.max_depth,
                )
                return Lineage(tuple(path), LineageStatus.DEPTH_LIMIT)

            parent = self.store.parent_of(current)
            if parent is None:
                logger.warning(
                    "ID %d was not found in the taxonomy index. Truncating lineage here.",
                    current,
                )
                return Lineage(tuple(path), LineageStatus.TRUNCATED)

            if parent in seen:
                logger.warning(
                    "Cycle in taxonomy: %d links back to %d while resolving %d. "
                    "Truncating lineage here.",
                    current,
                    parent,
                    start,
                )
                return Lineage(tuple(path), LineageStatus.CYCLE)

            current = parent

    def clear_cache(self) -> None:
        if self._cache is not None:
            self._cache.clear()
