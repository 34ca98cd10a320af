"""
Sales Linker

Joins a set of tagged reviews to the order and profile aggregates through
the reviewers' identity keys and rolls their purchase behaviour up.
"""

from collections import defaultdict
from decimal import Decimal
from itertools import combinations
from typing import Dict, Iterable, List, Mapping, Optional

import structlog

from segment_enrichment.config import get_settings
from segment_enrichment.tagging import TaggedReview
from segment_enrichment.transformation.aggregators import OrderAggregate, ProfileAggregate
from .metrics import pct, round2, safe_ratio
from .models import CategoryCustomers, ComboCustomers, GeographyEntry, SalesRollup

logger = structlog.get_logger(__name__)


def reviewer_identities(reviews: Iterable[TaggedReview]) -> List[str]:
    """Distinct identity keys of the reviewers, in first-seen order"""
    return list(dict.fromkeys(r.identity for r in reviews if r.identity))


def combo_key(categories: Iterable) -> str:
    """Stable name of a category combination, e.g. Compression+EasyStretch"""
    return "+".join(sorted(getattr(c, "value", c) for c in categories))


def _geo_entries(counter: Dict[str, list], linked: int) -> List[GeographyEntry]:
    entries = [
        GeographyEntry(name=name, customers=customers, pct=pct(customers, linked), revenue=round2(revenue))
        for name, (customers, revenue) in counter.items()
    ]
    entries.sort(key=lambda e: (-e.customers, e.name))
    return entries


class SalesLinker:
    """
    Rolls up the purchase history of the customers behind a review set.

    A reviewer is linked when their identity appears in the order
    aggregates, the profile aggregates, or both.

    Example:
        linker = SalesLinker(orders, profiles)
        rollup = linker.link(segment_reviews)
    """

    def __init__(
        self,
        orders: Mapping[str, OrderAggregate],
        profiles: Mapping[str, ProfileAggregate],
        top_regions: Optional[int] = None,
    ):
        self.orders = orders
        self.profiles = profiles
        self.top_regions = top_regions if top_regions is not None else get_settings().pipeline.top_regions

    def link(self, reviews: Iterable[TaggedReview]) -> SalesRollup:
        """Build the sales rollup of the reviewers of a review set"""
        identities = reviewer_identities(reviews)

        linked = 0
        revenue = Decimal(0)
        gross_revenue = Decimal(0)
        order_lines = 0
        repeat_buyers = 0
        multi_line_buyers = 0
        used_discount = 0
        line_buyers: Dict[str, int] = defaultdict(int)
        combo_buyers: Dict[str, int] = defaultdict(int)
        revenue_by_category: Dict[str, Decimal] = defaultdict(Decimal)
        countries: Dict[str, list] = {}
        regions: Dict[str, list] = {}

        for identity in identities:
            order = self.orders.get(identity)
            profile = self.profiles.get(identity)
            if order is None and profile is None:
                continue
            linked += 1

            spend = Decimal(0)
            if order is not None:
                spend = order.total_net_sales
                revenue += order.total_net_sales
                gross_revenue += order.total_gross_sales
                order_lines += order.order_line_count
                if order.is_repeat_buyer:
                    repeat_buyers += 1
                lines = order.product_lines
                if len(lines) > 1:
                    multi_line_buyers += 1
                    for pair in combinations(lines, 2):
                        combo_buyers[combo_key(pair)] += 1
                for category in lines:
                    line_buyers[category.value] += 1
                if order.discount_codes:
                    used_discount += 1
                for category, amount in order.product_spend.items():
                    revenue_by_category[category.value] += amount

            if profile is not None and profile.country:
                for counter, key in (
                    (countries, profile.country),
                    (regions, f"{profile.country} - {profile.region or 'Unknown'}"),
                ):
                    entry = counter.setdefault(key, [0, Decimal(0)])
                    entry[0] += 1
                    entry[1] += spend

        penetration = [
            CategoryCustomers(category=category, customers=count, pct=pct(count, linked))
            for category, count in line_buyers.items()
        ]
        penetration.sort(key=lambda e: (-e.customers, e.category))
        combos = [
            ComboCustomers(combo=combo, customers=count, pct=pct(count, linked))
            for combo, count in combo_buyers.items()
        ]
        combos.sort(key=lambda e: (-e.customers, e.combo))

        return SalesRollup(
            reviewer_identities=len(identities),
            linked_reviewers=linked,
            link_rate=pct(linked, len(identities)),
            total_revenue=round2(revenue),
            total_gross_revenue=round2(gross_revenue),
            total_order_lines=order_lines,
            avg_lifetime_value=round2(safe_ratio(revenue, linked)),
            avg_order_lines=round2(safe_ratio(order_lines, linked)),
            avg_order_value=round2(safe_ratio(revenue, order_lines)),
            repeat_buyers=repeat_buyers,
            repeat_purchase_rate=pct(repeat_buyers, linked),
            multi_line_buyers=multi_line_buyers,
            cross_purchase_rate=pct(multi_line_buyers, linked),
            product_line_penetration=penetration,
            combos=combos,
            used_discount=used_discount,
            pct_used_discount=pct(used_discount, linked),
            geography=_geo_entries(countries, linked),
            top_regions=_geo_entries(regions, linked)[: self.top_regions],
            revenue_by_category={k: round2(v) for k, v in revenue_by_category.items()},
        )
