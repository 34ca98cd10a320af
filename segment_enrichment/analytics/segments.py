"""
Segment Profile Builder

Groups tagged reviews by segment label and computes per-segment review
statistics, ranked sub-patterns, a quote bank and the sales rollup.
A review joins the group of every label it matched.
"""

from typing import Dict, List, Mapping, Optional, Sequence

import structlog

from segment_enrichment.config import PipelineSettings, get_settings
from segment_enrichment.tagging import SEGMENT_LAYER, SEGMENT_ORDER, TaggedReview, display_name
from segment_enrichment.tagging.patterns import BENEFIT_PATTERNS, PAIN_PATTERNS, TRANSFORMATION_PATTERNS
from .metrics import mean, pct, round2
from .models import CountPct, PatternCount, ProductBreakdown, Quote, SegmentMeta, SegmentProfile
from .sales import SalesLinker

logger = structlog.get_logger(__name__)


def group_by_segment(reviews: Sequence[TaggedReview]) -> Dict[str, List[TaggedReview]]:
    """Fan reviews out to every segment label they matched, in label order"""
    groups: Dict[str, List[TaggedReview]] = {label: [] for label in SEGMENT_ORDER}
    for review in reviews:
        for label in review.segments:
            groups[label].append(review)
    return {label: members for label, members in groups.items() if members}


def rating_stats(reviews: Sequence[TaggedReview]):
    """
    Average rating and five-star share over rated reviews only.

    Returns:
        (avg_rating, five_star_pct); both 0 when nothing is rated
    """
    ratings = [r.rating for r in reviews if r.rating > 0]
    five_star = sum(1 for r in ratings if r == 5)
    return mean(ratings), pct(five_star, len(ratings))


def top_patterns(
    reviews: Sequence[TaggedReview],
    field: str,
    table: Mapping,
    top_n: int,
) -> List[PatternCount]:
    """
    Rank the labels of a secondary table by how many reviews matched them.

    Zero counts are dropped; ties keep table declaration order.
    """
    counts = {name: 0 for name in table}
    for review in reviews:
        for name in getattr(review, field):
            counts[name] += 1
    ranked = sorted(
        ((name, count) for name, count in counts.items() if count > 0),
        key=lambda item: -item[1],
    )
    return [
        PatternCount(name=name, count=count, pct=pct(count, len(reviews)))
        for name, count in ranked[:top_n]
    ]


def truncate(text: str, limit: int) -> str:
    return text[:limit] + "..." if len(text) > limit else text


def pick_quotes(
    reviews: Sequence[TaggedReview],
    limit: int,
    min_length: int,
    max_length: int,
) -> List[Quote]:
    """Longer, higher-rated reviews first"""
    candidates = [r for r in reviews if len(r.text) >= min_length]
    candidates.sort(key=lambda r: (-r.rating, -len(r.text)))
    return [
        Quote(
            text=truncate(r.text, max_length),
            rating=r.rating,
            product=r.product.value,
            verified=r.verified,
        )
        for r in candidates[:limit]
    ]


def product_breakdown(reviews: Sequence[TaggedReview]) -> Dict[str, ProductBreakdown]:
    counts: Dict[str, int] = {}
    for review in reviews:
        counts[review.product.value] = counts.get(review.product.value, 0) + 1
    return {
        product: ProductBreakdown(review_count=count, review_pct=pct(count, len(reviews)))
        for product, count in counts.items()
    }


def segment_meta(reviews: Sequence[TaggedReview]) -> SegmentMeta:
    """Unsegmented and multi-segment review counts"""
    total = len(reviews)
    unsegmented = sum(1 for r in reviews if not r.segments)
    multi = sum(1 for r in reviews if len(r.segments) > 1)
    return SegmentMeta(
        total_reviews=total,
        unsegmented=CountPct(count=unsegmented, pct=pct(unsegmented, total)),
        multi_segment=CountPct(count=multi, pct=pct(multi, total)),
    )


class SegmentProfileBuilder:
    """
    Builds a SegmentProfile for every segment label with at least one review.

    Example:
        builder = SegmentProfileBuilder(SalesLinker(orders, profiles))
        profiles = builder.build(tagged_reviews)
    """

    def __init__(
        self,
        linker: Optional[SalesLinker] = None,
        settings: Optional[PipelineSettings] = None,
    ):
        self.linker = linker
        self.settings = settings or get_settings().pipeline

    def build_profile(
        self,
        label: str,
        members: Sequence[TaggedReview],
        total_reviews: int,
    ) -> SegmentProfile:
        """Compute the profile of one segment from its member reviews"""
        cfg = self.settings
        avg_rating, five_star_pct = rating_stats(members)

        profile = SegmentProfile(
            label=label,
            display_name=display_name(label),
            layer=SEGMENT_LAYER[label],
            review_count=len(members),
            review_pct=pct(len(members), total_reviews),
            avg_rating=avg_rating,
            five_star_pct=five_star_pct,
            by_product=product_breakdown(members),
            top_pains=top_patterns(members, "pains", PAIN_PATTERNS, cfg.top_patterns),
            top_benefits=top_patterns(members, "benefits", BENEFIT_PATTERNS, cfg.top_patterns),
            top_transformations=top_patterns(
                members, "transformations", TRANSFORMATION_PATTERNS, cfg.top_patterns
            ),
            quotes=pick_quotes(members, cfg.quote_bank_size, cfg.quote_min_length, cfg.quote_max_length),
        )
        profile._reviews = list(members)

        if self.linker is not None:
            profile.sales = self.linker.link(members)
            # Attribute linked revenue back to the product breakdown
            for product, revenue in profile.sales.revenue_by_category.items():
                entry = profile.by_product.setdefault(product, ProductBreakdown())
                entry.revenue = round2(revenue)
        return profile

    def build(self, reviews: Sequence[TaggedReview]) -> Dict[str, SegmentProfile]:
        """Profiles keyed by label, identity labels first"""
        groups = group_by_segment(reviews)
        profiles = {
            label: self.build_profile(label, members, len(reviews))
            for label, members in groups.items()
        }
        logger.info("Segment profiles built", segments=len(profiles), reviews=len(reviews))
        return profiles
