"""
Taxonomic intersection (lowest common ancestor) of lineages.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import TYPE_CHECKING

from phylointersect.core.constants import NO_TAXID

if TYPE_CHECKING:
    from phylointersect.core.lineage import LineageResolver


def intersect(first: Iterable[int] | None, second: Iterable[int] | None) -> int:
    """
    Return the lowest common ancestor of two lineages.

    Both lineages run leaf to root, so the first element of `first` that
    also occurs in `second` is the most specific shared taxon.

    Args:
        first: Lineage of the first taxon, or None.
        second: Lineage of the second taxon, or None.

    Returns:
        Shared taxon ID, or 0 if either lineage is None or they share nothing.

    Example:
        >>> intersect([5, 4, 2, 1], [6, 4, 2, 1])
        4
    """
    if first is None or second is None:
        return NO_TAXID

    others = set(second)
    for taxid in first:
        if taxid in others:
            return taxid
    return NO_TAXID


def intersect_many(taxids: Sequence[int], resolver: LineageResolver) -> int:
    """
    Reduce several taxa to their common ancestor by folding left to right.

    Each step re-resolves the running intersection, so
    intersect_many([a, b, c]) == intersect(lineage(intersect(a, b)), lineage(c)).

    Args:
        taxids: Taxon IDs to reduce. Must not be empty.
        resolver: Lineage resolver for the taxonomy in use.

    Returns:
        Common ancestor ID, or 0 once any step finds no shared taxon.
    """
    if not taxids:
        msg = "intersect_many() needs at least one taxon ID"
        raise ValueError(msg)

    result = taxids[0]
    for taxid in taxids[1:]:
        result = intersect(resolver.resolve(result), resolver.resolve(taxid))
    return result
