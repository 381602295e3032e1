"""
Streaming per-read classification by phylogenetic intersection.

QueryAggregator walks a hit stream in which all hits for a read are
contiguous and best-first. It keeps state for one read at a time and
finalizes that read as soon as a hit for a different read (or the end of
the stream) arrives:

    no active read --hit for new read--> open read (coverage gate)
    open read      --hit for same read--> consume hit
    open read      --hit for new read--> finalize, open next read
    open read      --end of stream----> finalize
    all expected reads finalized ------> stop reading

Finalizing a read:
    1. Hits sharing an E-value are collapsed to their intersection.
    2. If a taxon now appears under several E-values, only the best is kept.
    3. Survivors are ranked by E-value, best first.
    4. top = rank 1, contrasting = rank 2, bottom = last rank.
    5. classification = top ∩ contrasting; phylogenetic range = top ∩ bottom.
    6. diversity score = (distinct taxa seen - 1) / cap.
"""

from __future__ import annotations

import logging
from collections.abc import Collection, Iterable, Iterator, Mapping
from dataclasses import dataclass, field

from phylointersect.core.constants import NO_TAXID
from phylointersect.core.intersection import intersect, intersect_many
from phylointersect.core.lineage import LineageResolver
from phylointersect.core.taxonomy import TaxonomyStore
from phylointersect.models.classification import ClassificationResult, TaxonLabel
from phylointersect.models.config import ClassifierConfig
from phylointersect.models.hits import AlignmentHit

logger = logging.getLogger(__name__)


@dataclass
class ReadState:
    """
    Working state for the read currently being consumed.

    A new ReadState is created for every read and dropped once the read is
    finalized; nothing carries over between reads.
    """

    read_id: str
    read_length: int = 0
    skipped: bool = False
    hit_count: int = 0
    seen_taxa: set[int] = field(default_factory=set)
    # E-value -> taxa first seen at that E-value, in hit order
    evalue_buckets: dict[float, list[int]] = field(default_factory=dict)
    top_evalue: float = 0.0
    top_identity: float = 0.0
    raw_evalue: str | None = None
    raw_identity: str | None = None


@dataclass
class AggregatorStats:
    """Counters for one pass over a hit stream."""

    reads_expected: int = 0
    reads_classified: int = 0
    reads_low_coverage: int = 0
    reads_unrecognized: int = 0
    reads_without_hits: int = 0
    reads_not_found: int = 0
    hits_consumed: int = 0

    @property
    def reads_seen(self) -> int:
        return self.reads_expected - self.reads_not_found

    @classmethod
    def combine(cls, parts: list[AggregatorStats]) -> AggregatorStats:
        """
        Merge counters from passes over disjoint read subsets of one stream.

        Every pass reads the same hit stream, so hits_consumed and
        reads_unrecognized come from the longest pass rather than the sum.
        """
        return cls(
            reads_expected=sum(p.reads_expected for p in parts),
            reads_classified=sum(p.reads_classified for p in parts),
            reads_low_coverage=sum(p.reads_low_coverage for p in parts),
            reads_unrecognized=max((p.reads_unrecognized for p in parts), default=0),
            reads_without_hits=sum(p.reads_without_hits for p in parts),
            reads_not_found=sum(p.reads_not_found for p in parts),
            hits_consumed=max((p.hits_consumed for p in parts), default=0),
        )


def passes_coverage(hit: AlignmentHit, read_length: int, min_coverage_percent: float) -> bool:
    """
    True if hit spans at least min_coverage_percent of the read.

    Compared as alignment_length * 100 >= min_percent * read_length so
    that a hit exactly on the threshold is kept.
    """
    return hit.alignment_length * 100 >= min_coverage_percent * read_length


class QueryAggregator:
    """
    Classify reads from a read-grouped stream of alignment hits.

    Args:
        store: Taxonomy store for names and parent links.
        reads: Read ID -> read length for every read to classify.
        config: Classification settings (defaults if None).
        resolver: Lineage resolver; built from store and config if None.
        ignore_reads: Reads handled elsewhere (another partition); their
            hits are consumed silently and not counted as unrecognized.

    Example:
        aggregator = QueryAggregator(store, {"read_1": 150})
        for result in aggregator.classify(parser.iter_hits()):
            print(result.to_intersects_line())
    """

    def __init__(
        self,
        store: TaxonomyStore,
        reads: Mapping[str, int],
        config: ClassifierConfig | None = None,
        resolver: LineageResolver | None = None,
        ignore_reads: Collection[str] = (),
    ) -> None:
        self.store = store
        self.reads = dict(reads)
        self.ignore_reads = frozenset(ignore_reads)
        self.config = config or ClassifierConfig()
        self.resolver = resolver or LineageResolver(
            store,
            root_taxid=self.config.root_taxid,
            max_depth=self.config.max_lineage_depth,
        )
        self.stats = AggregatorStats()

    def classify(self, hits: Iterable[AlignmentHit]) -> Iterator[ClassificationResult]:
        """
        Consume hits and yield one result per classifiable read.

        Reads not in the manifest, reads whose first hit fails the coverage
        gate, and reads left with no usable hits are consumed without
        output. Iteration stops early once every manifest read is done.
        """
        self.stats = AggregatorStats(reads_expected=len(self.reads))
        pending = dict(self.reads)
        state: ReadState | None = None

        for hit in hits:
            if state is None or hit.read_id != state.read_id:
                if state is not None:
                    result = self._close(state, pending)
                    if result is not None:
                        yield result
                    state = None
                if not pending:
                    break
                state = self._open(hit, pending)
            self._consume(state, hit)

        if state is not None:
            result = self._close(state, pending)
            if result is not None:
                yield result

        self.stats.reads_not_found = len(pending)
        if pending:
            logger.info("%d manifest reads had no hits in the stream", len(pending))

    def _open(self, hit: AlignmentHit, pending: dict[str, int]) -> ReadState:
        read_id = hit.read_id
        if read_id not in pending:
            if read_id in self.ignore_reads:
                return ReadState(read_id, skipped=True)
            if read_id in self.reads:
                logger.warning(
                    "Hits for read %s are not contiguous; ignoring later block", read_id
                )
                return ReadState(read_id, skipped=True)
            self.stats.reads_unrecognized += 1
            logger.debug("Read %s is not in the manifest; skipping its hits", read_id)
            return ReadState(read_id, skipped=True)

        read_length = pending[read_id]
        position = self.stats.reads_expected - len(pending) + 1
        logger.debug("%d of %d: %s", position, self.stats.reads_expected, read_id)

        if not passes_coverage(hit, read_length, self.config.min_coverage_percent):
            self.stats.reads_low_coverage += 1
            logger.debug(
                "Top hit of %s covers %d of %d bases (< %.1f%%); skipping",
                read_id,
                hit.alignment_length,
                read_length,
                self.config.min_coverage_percent,
            )
            return ReadState(read_id, read_length=read_length, skipped=True)

        return ReadState(
            read_id,
            read_length=read_length,
            top_evalue=hit.evalue,
            top_identity=hit.percent_identity,
            raw_evalue=hit.raw_evalue,
            raw_identity=hit.raw_identity,
        )

    def _consume(self, state: ReadState, hit: AlignmentHit) -> None:
        state.hit_count += 1
        self.stats.hits_consumed += 1
        if state.skipped:
            return

        taxid = hit.taxid
        if taxid is None or taxid in state.seen_taxa:
            return
        if len(state.seen_taxa) >= self.config.cap:
            return

        state.seen_taxa.add(taxid)
        state.evalue_buckets.setdefault(hit.evalue, []).append(taxid)

    def _close(self, state: ReadState, pending: dict[str, int]) -> ClassificationResult | None:
        pending.pop(state.read_id, None)
        if state.skipped:
            return None
        result = self.finalize(state)
        if result is None:
            self.stats.reads_without_hits += 1
        else:
            self.stats.reads_classified += 1
        return result

    def rank_taxa(self, state: ReadState) -> list[int]:
        """
        Collapse E-value ties and rank the surviving taxa, best first.

        Each E-value with several taxa becomes the intersection of those
        taxa. A taxon left under more than one E-value keeps only its best
        (smallest) E-value.
        """
        collapsed: list[tuple[float, int]] = []
        for evalue, taxa in state.evalue_buckets.items():
            if len(taxa) > 1:
                taxid = intersect_many(taxa, self.resolver)
                logger.debug(
                    "%s: %d taxa at E-value %g collapse to %d",
                    state.read_id,
                    len(taxa),
                    evalue,
                    taxid,
                )
            else:
                taxid = taxa[0]
            collapsed.append((evalue, taxid))

        collapsed.sort(key=lambda item: item[0])

        ranked: list[int] = []
        kept: set[int] = set()
        for _, taxid in collapsed:
            if taxid not in kept:
                kept.add(taxid)
                ranked.append(taxid)
        return ranked

    def finalize(self, state: ReadState) -> ClassificationResult | None:
        """
        Build the classification for a fully consumed read.

        Returns:
            ClassificationResult, or None if no usable hits remain.
        """
        hits = [self._label(taxid) for taxid in self.rank_taxa(state)]
        if not hits:
            logger.warning(
                "No hits identified for read %s. Something might have gone wrong.",
                state.read_id,
            )
            return None

        diversity_score = (len(state.seen_taxa) - 1) / self.config.cap

        top = hits[0]
        contrasting = hits[1] if len(hits) > 1 else TaxonLabel.none()

        classification = TaxonLabel.none()
        if len(hits) > 1 and top.is_identified:
            classification = self._intersect_labels(top, contrasting)

        if len(hits) == 1:
            bottom = top
            phylogenetic_range = top
        elif len(hits) == 2:
            bottom = contrasting
            phylogenetic_range = classification
        else:
            bottom = hits[-1]
            phylogenetic_range = TaxonLabel.none()
            if bottom.is_identified:
                phylogenetic_range = self._intersect_labels(top, bottom)

        return ClassificationResult(
            read_id=state.read_id,
            top_hit=top,
            top_evalue=state.top_evalue,
            top_identity=state.top_identity,
            raw_evalue=state.raw_evalue,
            raw_identity=state.raw_identity,
            contrasting_hit=contrasting,
            bottom_hit=bottom,
            phylogenetic_range=phylogenetic_range,
            hit_count=state.hit_count,
            distinct_taxa=len(state.seen_taxa),
            diversity_score=diversity_score,
            classification=classification,
        )

    def _label(self, taxid: int) -> TaxonLabel:
        return TaxonLabel(taxid=taxid, name=self.store.name_of(taxid))

    def _intersect_labels(self, first: TaxonLabel, second: TaxonLabel) -> TaxonLabel:
        taxid = intersect(
            self.resolver.resolve(first.taxid), self.resolver.resolve(second.taxid)
        )
        if taxid == NO_TAXID:
            return TaxonLabel.none()
        return self._label(taxid)
