"""
Analytical Result Models

Pydantic models for the enrichment artifact handed to the serializer/UI.
Money is reported as floats rounded to cents; percentages to one decimal.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, PrivateAttr


class CountPct(BaseModel):
    """A count and its percentage of a total"""
    count: int = 0
    pct: float = 0.0


class PatternCount(BaseModel):
    """One ranked pain/benefit/transformation pattern within a group"""
    name: str
    count: int
    pct: float


class Quote(BaseModel):
    """Representative quote"""
    text: str
    rating: int
    product: str
    verified: bool


class ProductBreakdown(BaseModel):
    """Reviews and attributed revenue of one product inside a segment"""
    review_count: int = 0
    review_pct: float = 0.0
    revenue: float = 0.0


class ProductShare(BaseModel):
    """Reviews of one product inside an overlap"""
    count: int
    pct: float


class CategoryCustomers(BaseModel):
    category: str
    customers: int
    pct: float


class ComboCustomers(BaseModel):
    combo: str
    customers: int
    pct: float


class GeographyEntry(BaseModel):
    """Customers and revenue in one country, or one "Country - Region" key"""
    name: str
    customers: int
    pct: float
    revenue: float


class SalesRollup(BaseModel):
    """Purchase behaviour of the linked reviewers of a review set"""
    reviewer_identities: int = 0
    linked_reviewers: int = 0
    link_rate: float = 0.0
    total_revenue: float = 0.0
    total_gross_revenue: float = 0.0
    total_order_lines: int = 0
    avg_lifetime_value: float = 0.0
    avg_order_lines: float = 0.0
    avg_order_value: float = 0.0
    repeat_buyers: int = 0
    repeat_purchase_rate: float = 0.0
    multi_line_buyers: int = 0
    cross_purchase_rate: float = 0.0
    product_line_penetration: List[CategoryCustomers] = Field(default_factory=list)
    combos: List[ComboCustomers] = Field(default_factory=list)
    used_discount: int = 0
    pct_used_discount: float = 0.0
    geography: List[GeographyEntry] = Field(default_factory=list)
    top_regions: List[GeographyEntry] = Field(default_factory=list)
    revenue_by_category: Dict[str, float] = Field(default_factory=dict)


class SegmentProfile(BaseModel):
    """Statistics of every review matching one segment label"""
    label: str
    display_name: str
    layer: str
    review_count: int
    review_pct: float
    avg_rating: float
    five_star_pct: float
    by_product: Dict[str, ProductBreakdown] = Field(default_factory=dict)
    top_pains: List[PatternCount] = Field(default_factory=list)
    top_benefits: List[PatternCount] = Field(default_factory=list)
    top_transformations: List[PatternCount] = Field(default_factory=list)
    quotes: List[Quote] = Field(default_factory=list)
    sales: SalesRollup = Field(default_factory=SalesRollup)

    # Member reviews; runtime only, never serialized
    _reviews: List[Any] = PrivateAttr(default_factory=list)

    @property
    def reviews(self) -> List[Any]:
        return self._reviews


class SegmentMeta(BaseModel):
    total_reviews: int = 0
    unsegmented: CountPct = Field(default_factory=CountPct)
    multi_segment: CountPct = Field(default_factory=CountPct)


class OverlapRecord(BaseModel):
    """Reviews matching one identity label and one motivation label"""
    identity: str
    motivation: str
    review_count: int
    percent_of_identity: float
    percent_of_motivation: float
    avg_rating: float
    by_product: Dict[str, ProductShare] = Field(default_factory=dict)
    sales: SalesRollup = Field(default_factory=SalesRollup)


class AffinityEntry(BaseModel):
    """Prevalence of one segment among one product's reviews"""
    segment: str
    display_name: str
    layer: str
    review_count: int
    share_of_product: float
    concentration_index: float
    indexing: str
    revenue: float = 0.0
    revenue_share: float = 0.0


class CategoryOwnership(BaseModel):
    customers: int
    pct: float


class ComboSpend(BaseModel):
    """Customers who bought every category of a combination"""
    combo: str
    size: int
    customers: int
    pct_of_total: float
    avg_combined_spend: float


class CrossPurchaseMatrix(BaseModel):
    total_customers: int = 0
    product_ownership: Dict[str, CategoryOwnership] = Field(default_factory=dict)
    combos: List[ComboSpend] = Field(default_factory=list)


class CustomerJourney(BaseModel):
    """An anonymized top-spending reviewer of a segment"""
    email_hint: str
    total_spend: float
    order_lines: int
    products_owned: List[str]
    first_order: Optional[str] = None
    last_order: Optional[str] = None
    location: Optional[str] = None
    sample_quote: Optional[str] = None
    review_count: int
    review_products: List[str]


class RunMeta(BaseModel):
    """Run metadata and counters"""
    generated_at: datetime
    app_version: str
    sources: Dict[str, Any] = Field(default_factory=dict)
    counters: Dict[str, Any] = Field(default_factory=dict)
    total_reviews: int = 0
    total_order_lines: int = 0
    total_revenue: float = 0.0
    total_customers_in_orders: int = 0
    total_customer_profiles: int = 0
    unique_reviewer_identities: int = 0
    reviewers_linked_to_orders: int = 0
    link_rate: float = 0.0


class EnrichmentArtifact(BaseModel):
    """The single structured result of a pipeline run"""
    meta: RunMeta
    segments: Dict[str, SegmentProfile] = Field(default_factory=dict)
    segment_meta: SegmentMeta = Field(default_factory=SegmentMeta)
    cross_segment_overlaps: List[OverlapRecord] = Field(default_factory=list)
    product_affinity: Dict[str, List[AffinityEntry]] = Field(default_factory=dict)
    cross_purchase_matrix: CrossPurchaseMatrix = Field(default_factory=CrossPurchaseMatrix)
    customer_journeys: Dict[str, List[CustomerJourney]] = Field(default_factory=dict)
