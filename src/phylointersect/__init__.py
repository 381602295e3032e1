"""
PhyloIntersect: taxonomic classification of reads by phylogenetic intersection.

Reads are classified from their ranked alignment hits by intersecting the
lineages of the best and next-best hitting taxa, and scored by how many
distinct taxa their hits span.
"""

__version__ = "0.1.0"
__author__ = "PhyloIntersect Team"

from phylointersect.core.aggregator import QueryAggregator
from phylointersect.core.taxonomy import TaxonomyStore
from phylointersect.models.classification import ClassificationResult, SampleSummary

__all__ = [
    "ClassificationResult",
    "QueryAggregator",
    "SampleSummary",
    "TaxonomyStore",
    "__version__",
]
