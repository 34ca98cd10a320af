"""
Customer Journey Selector

Picks the top-spending reviewers of each segment as anonymized,
narrative examples.
"""

from typing import Dict, List, Mapping, Optional, Sequence

import structlog

from segment_enrichment.config import PipelineSettings, get_settings
from segment_enrichment.tagging import SEGMENT_ORDER, TaggedReview
from segment_enrichment.transformation.aggregators import OrderAggregate, ProfileAggregate
from .metrics import round2
from .models import CustomerJourney
from .segments import truncate

logger = structlog.get_logger(__name__)


def email_hint(identity: str, prefix: int = 3) -> str:
    """Anonymize an identity: abcdef@example.com -> abc***@example.com"""
    local, at, domain = identity.partition("@")
    hint = local[:prefix] + "***"
    return f"{hint}@{domain}" if at else hint


class JourneySelector:
    """
    Example:
        journeys = JourneySelector(orders, profiles).select(tagged_reviews)
    """

    def __init__(
        self,
        orders: Mapping[str, OrderAggregate],
        profiles: Mapping[str, ProfileAggregate],
        settings: Optional[PipelineSettings] = None,
    ):
        self.orders = orders
        self.profiles = profiles
        self.settings = settings or get_settings().pipeline

    def _journey(self, identity: str, reviews: List[TaggedReview]) -> CustomerJourney:
        order = self.orders[identity]
        profile = self.profiles.get(identity)
        # max() keeps the first of equally long reviews
        best = max(reviews, key=lambda r: len(r.text))

        return CustomerJourney(
            email_hint=email_hint(identity, self.settings.email_hint_prefix),
            total_spend=round2(order.total_net_sales),
            order_lines=order.order_line_count,
            products_owned=[c.value for c in order.product_lines],
            first_order=order.earliest_date,
            last_order=order.latest_date,
            location=profile.location if profile else None,
            sample_quote=truncate(best.text, self.settings.journey_quote_length),
            review_count=len(reviews),
            review_products=list(dict.fromkeys(r.product.value for r in reviews)),
        )

    def select(self, reviews: Sequence[TaggedReview]) -> Dict[str, List[CustomerJourney]]:
        """
        Returns:
            Segment label -> up to N journeys, highest spend first
        """
        by_segment: Dict[str, Dict[str, List[TaggedReview]]] = {label: {} for label in SEGMENT_ORDER}
        for review in reviews:
            if not review.identity:
                continue
            for label in review.segments:
                by_segment[label].setdefault(review.identity, []).append(review)

        journeys: Dict[str, List[CustomerJourney]] = {}
        for label, reviewers in by_segment.items():
            if not reviewers:
                continue
            buyers = [identity for identity in reviewers if identity in self.orders]
            buyers.sort(key=lambda identity: (-self.orders[identity].total_net_sales, identity))
            journeys[label] = [
                self._journey(identity, reviewers[identity])
                for identity in buyers[: self.settings.journeys_per_segment]
            ]

        logger.info(
            "Customer journeys selected",
            journeys=sum(len(j) for j in journeys.values()),
            segments=len(journeys),
        )
        return journeys
