"""
Core algorithms for phylogenetic intersection classification.

This module contains the taxonomy store, lineage resolution and intersection,
and the streaming per-read aggregator with its supporting parsers.
"""

from phylointersect.core.aggregator import AggregatorStats, QueryAggregator
from phylointersect.core.intersection import intersect, intersect_many
from phylointersect.core.lineage import Lineage, LineageResolver, LineageStatus
from phylointersect.core.parsers import ReadManifestParser, StreamingHitParser
from phylointersect.core.taxonomy import TaxonomyStore, build_taxonomy_index

__all__ = [
    "AggregatorStats",
    "Lineage",
    "LineageResolver",
    "LineageStatus",
    "QueryAggregator",
    "ReadManifestParser",
    "StreamingHitParser",
    "TaxonomyStore",
    "build_taxonomy_index",
    "intersect",
    "intersect_many",
]
