"""
Pydantic data models for phylointersect.

Provides type-safe models for alignment hits, per-read classifications,
summaries and configuration.
"""

from phylointersect.models.classification import (
    ClassificationResult,
    SampleSummary,
    SummaryEntry,
    TaxonLabel,
)
from phylointersect.models.config import ClassifierConfig
from phylointersect.models.hits import AlignmentHit

__all__ = [
    "AlignmentHit",
    "ClassificationResult",
    "ClassifierConfig",
    "SampleSummary",
    "SummaryEntry",
    "TaxonLabel",
]
