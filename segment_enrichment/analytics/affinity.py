"""
Product Affinity Analyzer

For each product, how prevalent each segment is among that product's
reviews and how concentrated it is relative to its overall prevalence.

    concentration_index = share_of_product / overall_share

An index above the over-index threshold means the segment gravitates to
the product; below the under-index threshold means it avoids it.
"""

from typing import Dict, List, Mapping, Optional, Sequence

import structlog

from segment_enrichment.config import PipelineSettings, get_settings
from segment_enrichment.tagging import TaggedReview
from segment_enrichment.transformation.cleaners import ProductCategory
from .metrics import pct, round2, safe_ratio, share_pct
from .models import AffinityEntry, SegmentProfile

logger = structlog.get_logger(__name__)


class Indexing:
    OVER = "over"
    UNDER = "under"
    NEUTRAL = "neutral"


class AffinityAnalyzer:
    """
    Example:
        affinity = AffinityAnalyzer().analyze(tagged_reviews, segment_profiles)
    """

    def __init__(self, settings: Optional[PipelineSettings] = None):
        self.settings = settings or get_settings().pipeline

    def classify(self, index: float) -> str:
        if index > self.settings.over_index_threshold:
            return Indexing.OVER
        if index < self.settings.under_index_threshold:
            return Indexing.UNDER
        return Indexing.NEUTRAL

    def concentration_index(self, in_product: int, product_total: int, segment_total: int, total: int) -> float:
        """Segment share within a product over its share of all reviews; 0 when undefined"""
        overall_share = safe_ratio(segment_total, total)
        if overall_share == 0:
            return 0.0
        return round2(safe_ratio(in_product, product_total) / overall_share)

    def analyze(
        self,
        reviews: Sequence[TaggedReview],
        profiles: Mapping[str, SegmentProfile],
    ) -> Dict[str, List[AffinityEntry]]:
        """
        Returns:
            Product name -> entries sorted by descending share of product,
            for every product with at least one review
        """
        total = len(reviews)
        product_totals: Dict[str, int] = {}
        for review in reviews:
            product_totals[review.product.value] = product_totals.get(review.product.value, 0) + 1

        affinity: Dict[str, List[AffinityEntry]] = {}
        for category in ProductCategory:
            product = category.value
            product_total = product_totals.get(product, 0)
            if product_total == 0:
                continue

            entries = []
            for label, profile in profiles.items():
                breakdown = profile.by_product.get(product)
                in_product = breakdown.review_count if breakdown else 0
                if in_product == 0:
                    continue

                index = self.concentration_index(in_product, product_total, profile.review_count, total)
                revenue = breakdown.revenue
                entries.append(
                    AffinityEntry(
                        segment=label,
                        display_name=profile.display_name,
                        layer=profile.layer,
                        review_count=in_product,
                        share_of_product=pct(in_product, product_total),
                        concentration_index=index,
                        indexing=self.classify(index),
                        revenue=round2(revenue),
                        revenue_share=share_pct(revenue, profile.sales.total_revenue),
                    )
                )

            # Sort on the exact share; stable for ties
            entries.sort(key=lambda e: -e.review_count)
            affinity[product] = entries

        logger.info("Product affinity computed", products=len(affinity))
        return affinity
