"""
Pydantic models for read classification results.

A ClassificationResult is produced once per qualifying read and written
straight to the sample's intersects file. The line format is read back by
the basic summary, which locates fields by their labels, so the labels and
their order must not change.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from phylointersect.core.constants import NO_TAXID, NONE_FOUND

# Labels in output order; the summary step splits lines on these.
LABEL_QUERY = "Query: "
LABEL_TOP_HIT = ", first hit: "
LABEL_EVALUE = ", expect: "
LABEL_IDENTITY = ", identities: "
LABEL_CONTRASTING_HIT = ", next hit: "
LABEL_BOTTOM_HIT = ", last hit up to cap: "
LABEL_RANGE = ", phylogenetic range of hits up to cap: "
LABEL_HIT_COUNT = ", number of identifiable hits: "
LABEL_DISTINCT_TAXA = ", taxonomic diversity: "
LABEL_DIVERSITY_SCORE = ", taxonomic diversity score: "
LABEL_CLASSIFICATION = ", classification intersect: "


def format_number(value: float) -> str:
    """Compact numeric rendering: 1e-50, 98.5, 0.04, 0."""
    return f"{value:.10g}"


class TaxonLabel(BaseModel):
    """Taxon ID with its display name."""

    taxid: int = Field(default=NO_TAXID, ge=0)
    name: str = NONE_FOUND

    model_config = {"frozen": True}

    @classmethod
    def none(cls) -> TaxonLabel:
        return cls(taxid=NO_TAXID, name=NONE_FOUND)

    @property
    def is_identified(self) -> bool:
        return self.taxid != NO_TAXID

    def __str__(self) -> str:
        return f"{self.name} ({self.taxid})"


class ClassificationResult(BaseModel):
    """
    Classification of one read by phylogenetic intersection.

    Attributes:
        read_id: Query sequence identifier.
        top_hit: Best-ranked surviving hit.
        top_evalue: E-value of the read's first alignment.
        top_identity: Percent identity of the read's first alignment.
        raw_evalue: top_evalue as written in the hit file, echoed in output.
        raw_identity: top_identity as written in the hit file, echoed in output.
        contrasting_hit: Second-ranked surviving hit.
        bottom_hit: Lowest-ranked surviving hit.
        phylogenetic_range: Intersection of top and bottom hits.
        hit_count: Alignments examined for the read.
        distinct_taxa: Distinct taxa among those alignments.
        diversity_score: (distinct_taxa - 1) / cap.
        classification: Intersection of top and contrasting hits; the
            taxon the read is assigned to.
    """

    read_id: str
    top_hit: TaxonLabel
    top_evalue: float = Field(ge=0)
    top_identity: float = Field(ge=0)
    raw_evalue: str | None = None
    raw_identity: str | None = None
    contrasting_hit: TaxonLabel = Field(default_factory=TaxonLabel.none)
    bottom_hit: TaxonLabel = Field(default_factory=TaxonLabel.none)
    phylogenetic_range: TaxonLabel = Field(default_factory=TaxonLabel.none)
    hit_count: int = Field(ge=0)
    distinct_taxa: int = Field(ge=0)
    diversity_score: float
    classification: TaxonLabel = Field(default_factory=TaxonLabel.none)

    model_config = {"frozen": True}

    def to_intersects_line(self) -> str:
        """Render the result as one intersects file line (no newline)."""
        return (
            f"{LABEL_QUERY}{self.read_id}"
            f"{LABEL_TOP_HIT}{self.top_hit}"
            f"{LABEL_EVALUE}{self.raw_evalue or format_number(self.top_evalue)}"
            f"{LABEL_IDENTITY}{self.raw_identity or format_number(self.top_identity)}"
            f"{LABEL_CONTRASTING_HIT}{self.contrasting_hit}"
            f"{LABEL_BOTTOM_HIT}{self.bottom_hit}"
            f"{LABEL_RANGE}{self.phylogenetic_range}"
            f"{LABEL_HIT_COUNT}{self.hit_count}"
            f"{LABEL_DISTINCT_TAXA}{self.distinct_taxa}"
            f"{LABEL_DIVERSITY_SCORE}{format_number(self.diversity_score)}"
            f"{LABEL_CLASSIFICATION}{self.classification}"
        )


class SummaryEntry(BaseModel):
    """Number of reads assigned to one classification intersect."""

    taxid: int
    name: str
    read_count: int = Field(ge=1)


class SampleSummary(BaseModel):
    """
    Basic summary of a sample's intersects file.

    Attributes:
        sample_name: Name written in the '#Series:' header.
        min_diversity_score: Threshold applied to each read.
        reads_examined: Lines read from the intersects file.
        reads_passing: Lines at or above the threshold.
        entries: Counts per classification, most reads first.
    """

    sample_name: str
    min_diversity_score: float
    reads_examined: int = 0
    reads_passing: int = 0
    entries: list[SummaryEntry] = Field(default_factory=list)

    @property
    def total_assigned(self) -> int:
        return sum(entry.read_count for entry in self.entries)
