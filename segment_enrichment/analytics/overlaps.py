"""
Cross-Segment Overlap Analyzer

Intersects every identity label with every motivation label. The pair
space is sparse, so empty pairs are dropped; the rest are ordered with the
largest intersections first.
"""

from typing import Dict, List, Mapping, Optional, Sequence

import structlog

from segment_enrichment.tagging import TaggedReview
from segment_enrichment.tagging.patterns import IDENTITY_SEGMENT_PATTERNS, MOTIVATION_SEGMENT_PATTERNS
from .metrics import mean, pct
from .models import OverlapRecord, ProductShare, SegmentProfile
from .sales import SalesLinker

logger = structlog.get_logger(__name__)


def segment_totals(reviews: Sequence[TaggedReview]) -> Dict[str, int]:
    totals: Dict[str, int] = {}
    for review in reviews:
        for label in review.segments:
            totals[label] = totals.get(label, 0) + 1
    return totals


class OverlapAnalyzer:
    """
    Computes identity x motivation co-occurrence records.

    Example:
        overlaps = OverlapAnalyzer(linker).analyze(tagged_reviews)
    """

    def __init__(self, linker: Optional[SalesLinker] = None):
        self.linker = linker

    def analyze(
        self,
        reviews: Sequence[TaggedReview],
        profiles: Optional[Mapping[str, SegmentProfile]] = None,
    ) -> List[OverlapRecord]:
        """
        Args:
            reviews: All tagged reviews
            profiles: Segment profiles; their member lists and totals are
                reused when given

        Returns:
            Non-empty overlaps sorted by descending review count
        """
        if profiles:
            members = {label: p.reviews for label, p in profiles.items()}
            totals = {label: p.review_count for label, p in profiles.items()}
        else:
            members = {}
            for review in reviews:
                for label in review.identity_segments:
                    members.setdefault(label, []).append(review)
            totals = segment_totals(reviews)

        overlaps: List[OverlapRecord] = []
        for identity in IDENTITY_SEGMENT_PATTERNS:
            candidates = members.get(identity)
            if not candidates:
                continue
            for motivation in MOTIVATION_SEGMENT_PATTERNS:
                matching = [r for r in candidates if motivation in r.motivation_segments]
                if not matching:
                    continue
                overlaps.append(self._record(identity, motivation, matching, totals))

        # Stable sort keeps label declaration order among equal counts
        overlaps.sort(key=lambda o: -o.review_count)
        logger.info("Cross-segment overlaps computed", overlaps=len(overlaps))
        return overlaps

    def _record(
        self,
        identity: str,
        motivation: str,
        matching: List[TaggedReview],
        totals: Mapping[str, int],
    ) -> OverlapRecord:
        counts: Dict[str, int] = {}
        for review in matching:
            counts[review.product.value] = counts.get(review.product.value, 0) + 1

        record = OverlapRecord(
            identity=identity,
            motivation=motivation,
            review_count=len(matching),
            percent_of_identity=pct(len(matching), totals.get(identity, 0)),
            percent_of_motivation=pct(len(matching), totals.get(motivation, 0)),
            avg_rating=mean(r.rating for r in matching if r.rating > 0),
            by_product={
                product: ProductShare(count=count, pct=pct(count, len(matching)))
                for product, count in counts.items()
            },
        )
        if self.linker is not None:
            record.sales = self.linker.link(matching)
        return record
