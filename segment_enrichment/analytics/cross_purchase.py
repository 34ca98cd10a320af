"""
Cross-Purchase Matrix Builder

Which product lines are bought together, across every customer with
orders (reviewers or not). OTHER never takes part in a combination.
"""

from decimal import Decimal
from itertools import combinations
from typing import Dict, List, Mapping

import structlog

from segment_enrichment.transformation.aggregators import OrderAggregate
from .metrics import pct, round2, safe_ratio
from .models import CategoryOwnership, ComboSpend, CrossPurchaseMatrix
from .sales import combo_key

logger = structlog.get_logger(__name__)


def build_cross_purchase_matrix(orders: Mapping[str, OrderAggregate]) -> CrossPurchaseMatrix:
    """
    Count category ownership and multi-category combinations.

    Each customer with two or more product lines adds to every pair of
    their lines; with three or more, also to the combination of all of
    them. The customer's total net spend is credited to each combination.
    """
    total_customers = 0
    ownership: Dict[str, int] = {}
    combo_customers: Dict[str, int] = {}
    combo_size: Dict[str, int] = {}
    combo_spend: Dict[str, Decimal] = {}

    def credit(categories, spend: Decimal) -> None:
        key = combo_key(categories)
        combo_customers[key] = combo_customers.get(key, 0) + 1
        combo_spend[key] = combo_spend.get(key, Decimal(0)) + spend
        combo_size[key] = len(categories)

    for order in orders.values():
        total_customers += 1
        lines = order.product_lines
        for category in lines:
            ownership[category.value] = ownership.get(category.value, 0) + 1
        if len(lines) < 2:
            continue
        for pair in combinations(lines, 2):
            credit(pair, order.total_net_sales)
        if len(lines) >= 3:
            credit(lines, order.total_net_sales)

    combos: List[ComboSpend] = [
        ComboSpend(
            combo=key,
            size=combo_size[key],
            customers=customers,
            pct_of_total=pct(customers, total_customers),
            avg_combined_spend=round2(safe_ratio(combo_spend[key], customers)),
        )
        for key, customers in combo_customers.items()
    ]
    combos.sort(key=lambda c: (-c.customers, c.combo))

    matrix = CrossPurchaseMatrix(
        total_customers=total_customers,
        product_ownership={
            category: CategoryOwnership(customers=count, pct=pct(count, total_customers))
            for category, count in ownership.items()
        },
        combos=combos,
    )
    logger.info(
        "Cross-purchase matrix computed",
        total_customers=total_customers,
        combos=len(combos),
    )
    return matrix
