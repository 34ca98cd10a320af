"""
Streaming Aggregators

Folds the order and customer-profile ledgers into per-customer aggregates
one row at a time. Memory is bounded by the number of distinct customers,
never by the number of rows.

Each aggregator is an accumulator (a dict of aggregates keyed by identity)
plus three steps per row:
- parse: row -> typed record, or SkipRecord
- new_aggregate: first record seen for a key
- fold: (aggregate, record) -> aggregate
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, Generic, Iterable, Mapping, Optional, Set, TypeVar

import structlog
from prometheus_client import Counter

from segment_enrichment.config import get_settings
from .cleaners import (
    PRODUCT_LINES,
    REPLACEMENT_CHAR,
    ProductCategory,
    clean_field,
    map_product_type,
    normalize_identity,
    parse_amount,
    parse_count,
)

logger = structlog.get_logger(__name__)


# =============================================================================
# METRICS
# =============================================================================

ROWS_PROCESSED = Counter(
    "segment_enrichment_rows_total",
    "Rows consumed by the streaming aggregators",
    ["source", "status"],
)


# =============================================================================
# SKIP POLICY
# =============================================================================

class SkipReason:
    """Reasons a row is discarded without affecting any aggregate"""
    MISSING_IDENTITY = "missing_identity"
    MISSING_CATEGORY = "missing_category"
    NON_POSITIVE_QUANTITY = "non_positive_quantity"
    UNPARSEABLE_NUMBER = "unparseable_number"
    UNDECODABLE_TEXT = "undecodable_text"


class SkipRecord(ValueError):
    """Raised by a parse step for a row that must not be folded"""

    def __init__(self, reason: str, detail: str = ""):
        super().__init__(detail or reason)
        self.reason = reason


@dataclass
class AggregatorStats:
    """Running counters of one aggregator"""
    rows_seen: int = 0
    rows_skipped: int = 0
    rows_folded: int = 0
    skip_reasons: Dict[str, int] = field(default_factory=dict)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "rows_seen": self.rows_seen,
            "rows_skipped": self.rows_skipped,
            "rows_folded": self.rows_folded,
            "skip_reasons": dict(sorted(self.skip_reasons.items())),
        }


# =============================================================================
# RECORDS & AGGREGATES
# =============================================================================

@dataclass(frozen=True)
class OrderLine:
    """One parsed order-line row"""
    identity: str
    category: ProductCategory
    quantity: int
    net_sales: Decimal
    gross_sales: Decimal
    day: str
    discount_code: str


@dataclass
class OrderAggregate:
    """Purchase history of one customer"""
    total_net_sales: Decimal = Decimal(0)
    total_gross_sales: Decimal = Decimal(0)
    order_line_count: int = 0
    product_categories: Set[ProductCategory] = field(default_factory=set)
    product_spend: Dict[ProductCategory, Decimal] = field(default_factory=dict)
    product_qty: Dict[ProductCategory, int] = field(default_factory=dict)
    discount_codes: Set[str] = field(default_factory=set)
    earliest_date: Optional[str] = None
    latest_date: Optional[str] = None

    @property
    def product_lines(self) -> list:
        """Purchased categories excluding OTHER, in canonical order"""
        return [c for c in PRODUCT_LINES if c in self.product_categories]

    @property
    def is_repeat_buyer(self) -> bool:
        # Orders on more than one day. A single order logged across
        # adjacent days also counts; kept for compatibility.
        return self.earliest_date != self.latest_date

    @property
    def is_multi_line_buyer(self) -> bool:
        return len(self.product_lines) > 1


@dataclass(frozen=True)
class ProfileRow:
    """One parsed customer-profile row"""
    identity: str
    city: str
    region: str
    country: str
    first_order_date: str
    net_sales: Decimal
    gross_sales: Decimal
    orders: int
    day: str


@dataclass
class ProfileAggregate:
    """Location and lifetime totals of one customer"""
    city: str = ""
    region: str = ""
    country: str = ""
    first_order_date: Optional[str] = None
    total_net_sales: Decimal = Decimal(0)
    total_gross_sales: Decimal = Decimal(0)
    total_orders: int = 0
    latest_day: str = ""
    # Day each location field was last taken from
    location_days: Dict[str, str] = field(default_factory=dict)

    @property
    def location(self) -> Optional[str]:
        """Best available "city, region, country" string"""
        parts = [p for p in (self.city, self.region, self.country) if p]
        return ", ".join(parts) or None


# =============================================================================
# AGGREGATORS
# =============================================================================

RecordT = TypeVar("RecordT")
AggT = TypeVar("AggT")


class StreamingAggregator(ABC, Generic[RecordT, AggT]):
    """
    Base class for a left-to-right fold over a row source.

    Rows are pulled one at a time from any iterable; nothing beyond the
    current row is retained apart from the per-key aggregates.

    Example:
        aggregator = OrderAggregator()
        customers = aggregator.run(stream_csv_records(config))
    """

    source_name: str = "rows"
    required_columns: tuple = ()

    def __init__(self, progress_every: Optional[int] = None):
        self.aggregates: Dict[str, AggT] = {}
        self.stats = AggregatorStats()
        self.progress_every = progress_every or get_settings().pipeline.progress_every

    @abstractmethod
    def parse(self, row: Mapping[str, Any]) -> RecordT:
        """
        Turn a raw row into a typed record.

        Raises:
            SkipRecord: If the row must be discarded
        """
        pass

    @abstractmethod
    def new_aggregate(self, record: RecordT) -> AggT:
        """Create the aggregate for the first record of a key"""
        pass

    @abstractmethod
    def fold(self, aggregate: AggT, record: RecordT) -> AggT:
        """Fold a record into its key's aggregate"""
        pass

    @staticmethod
    def key(record: RecordT) -> str:
        return record.identity

    def check_decoded(self, row: Mapping[str, Any]) -> None:
        """
        Reject a row whose required values held bytes the reader could not
        decode; such values reach us with U+FFFD in place of those bytes.

        Raises:
            SkipRecord: If a required column value is undecodable
        """
        for column in self.required_columns:
            value = row.get(column)
            if isinstance(value, str) and REPLACEMENT_CHAR in value:
                raise SkipRecord(SkipReason.UNDECODABLE_TEXT, f"undecodable {column!r}")

    def consume(self, row: Mapping[str, Any]) -> bool:
        """
        Process a single row.

        Returns:
            True if the row was folded, False if it was skipped
        """
        self.stats.rows_seen += 1
        if self.stats.rows_seen % self.progress_every == 0:
            logger.info(
                "Streaming progress",
                source=self.source_name,
                rows_seen=self.stats.rows_seen,
                keys=len(self.aggregates),
            )

        try:
            self.check_decoded(row)
            record = self.parse(row)
        except SkipRecord as e:
            self.stats.rows_skipped += 1
            self.stats.skip_reasons[e.reason] = self.stats.skip_reasons.get(e.reason, 0) + 1
            ROWS_PROCESSED.labels(source=self.source_name, status="skipped").inc()
            return False

        key = self.key(record)
        aggregate = self.aggregates.get(key)
        if aggregate is None:
            aggregate = self.new_aggregate(record)
        self.aggregates[key] = self.fold(aggregate, record)

        self.stats.rows_folded += 1
        ROWS_PROCESSED.labels(source=self.source_name, status="folded").inc()
        return True

    def run(self, rows: Iterable[Mapping[str, Any]]) -> Dict[str, AggT]:
        """Consume every row of a source and return the aggregates"""
        logger.info("Starting aggregation", source=self.source_name)
        for row in rows:
            self.consume(row)
        logger.info(
            "Aggregation completed",
            source=self.source_name,
            keys=len(self.aggregates),
            **{k: v for k, v in self.stats.as_dict().items() if k != "skip_reasons"},
        )
        return self.aggregates


def _amount(row: Mapping[str, Any], column: str) -> Decimal:
    try:
        return parse_amount(row.get(column))
    except ValueError as e:
        raise SkipRecord(SkipReason.UNPARSEABLE_NUMBER, str(e)) from e


def _count(row: Mapping[str, Any], column: str) -> int:
    try:
        return parse_count(row.get(column))
    except ValueError as e:
        raise SkipRecord(SkipReason.UNPARSEABLE_NUMBER, str(e)) from e


class OrderAggregator(StreamingAggregator[OrderLine, OrderAggregate]):
    """
    Folds order lines into OrderAggregate per customer.

    Skips rows without an email, without a product (shipping charges and
    adjustments have no product title), or with a non-positive quantity.
    """

    source_name = "orders"
    required_columns = (
        "Customer email",
        "Product title",
        "Product type",
        "Quantity ordered",
        "Net sales",
        "Total sales",
        "Day",
    )

    def __init__(self, progress_every: Optional[int] = None):
        super().__init__(progress_every)
        self.total_net_sales = Decimal(0)

    def parse(self, row: Mapping[str, Any]) -> OrderLine:
        identity = normalize_identity(row.get("Customer email"))
        if identity is None:
            raise SkipRecord(SkipReason.MISSING_IDENTITY)

        category = map_product_type(row.get("Product type")) if clean_field(row.get("Product title")) else None
        if category is None:
            raise SkipRecord(SkipReason.MISSING_CATEGORY)

        quantity = _count(row, "Quantity ordered")
        if quantity <= 0:
            raise SkipRecord(SkipReason.NON_POSITIVE_QUANTITY)

        return OrderLine(
            identity=identity,
            category=category,
            quantity=quantity,
            net_sales=_amount(row, "Net sales"),
            gross_sales=_amount(row, "Total sales"),
            day=clean_field(row.get("Day")),
            discount_code=clean_field(row.get("Discount code")),
        )

    def new_aggregate(self, record: OrderLine) -> OrderAggregate:
        return OrderAggregate()

    def fold(self, aggregate: OrderAggregate, record: OrderLine) -> OrderAggregate:
        self.total_net_sales += record.net_sales

        aggregate.total_net_sales += record.net_sales
        aggregate.total_gross_sales += record.gross_sales
        aggregate.order_line_count += 1
        aggregate.product_categories.add(record.category)
        aggregate.product_spend[record.category] = (
            aggregate.product_spend.get(record.category, Decimal(0)) + record.net_sales
        )
        aggregate.product_qty[record.category] = (
            aggregate.product_qty.get(record.category, 0) + record.quantity
        )
        if record.discount_code:
            aggregate.discount_codes.add(record.discount_code)
        if record.day:
            if aggregate.earliest_date is None or record.day < aggregate.earliest_date:
                aggregate.earliest_date = record.day
            if aggregate.latest_date is None or record.day > aggregate.latest_date:
                aggregate.latest_date = record.day
        return aggregate


class ProfileAggregator(StreamingAggregator[ProfileRow, ProfileAggregate]):
    """
    Folds customer-report rows into ProfileAggregate per customer.

    Totals are summed; each location field comes from the most recent row
    that carries it.
    """

    source_name = "profiles"
    required_columns = ("Customer email",)

    def parse(self, row: Mapping[str, Any]) -> ProfileRow:
        identity = normalize_identity(row.get("Customer email"))
        if identity is None:
            raise SkipRecord(SkipReason.MISSING_IDENTITY)

        return ProfileRow(
            identity=identity,
            city=clean_field(row.get("Shipping city")),
            region=clean_field(row.get("Shipping region")),
            country=clean_field(row.get("Shipping country")),
            first_order_date=clean_field(row.get("Customer first order date")),
            net_sales=_amount(row, "Net sales"),
            gross_sales=_amount(row, "Total sales"),
            orders=_count(row, "Orders"),
            day=clean_field(row.get("Day")),
        )

    def new_aggregate(self, record: ProfileRow) -> ProfileAggregate:
        return ProfileAggregate()

    def fold(self, aggregate: ProfileAggregate, record: ProfileRow) -> ProfileAggregate:
        aggregate.total_net_sales += record.net_sales
        aggregate.total_gross_sales += record.gross_sales
        aggregate.total_orders += record.orders

        if record.first_order_date and (
            aggregate.first_order_date is None or record.first_order_date < aggregate.first_order_date
        ):
            aggregate.first_order_date = record.first_order_date

        if record.day > aggregate.latest_day:
            aggregate.latest_day = record.day

        # Each field keeps its value from the latest day that carried one;
        # same-day conflicts resolve to the greater value
        for name in ("city", "region", "country"):
            value = getattr(record, name)
            current = (aggregate.location_days.get(name, ""), getattr(aggregate, name))
            if value and (record.day, value) > current:
                setattr(aggregate, name, value)
                aggregate.location_days[name] = record.day
        return aggregate
