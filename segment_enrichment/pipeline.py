"""
Enrichment Pipeline

Orchestrates the batch run: stream the two ledgers into per-customer
aggregates, tag the reviews, then derive the segment analytics. Stages run
strictly one after another; a fatal error aborts the run.
"""

import time
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

import structlog
from prometheus_client import Histogram

from segment_enrichment.analytics import (
    AffinityAnalyzer,
    EnrichmentArtifact,
    JourneySelector,
    OverlapAnalyzer,
    SalesLinker,
    SegmentProfileBuilder,
    build_cross_purchase_matrix,
)
from segment_enrichment.analytics.metrics import pct, round2
from segment_enrichment.analytics.models import RunMeta
from segment_enrichment.analytics.sales import reviewer_identities
from segment_enrichment.analytics.segments import segment_meta
from segment_enrichment.config import Settings, get_settings
from segment_enrichment.ingestion import (
    BatchFileConfig,
    ReviewSource,
    SourceError,
    load_review_records,
    stream_csv_records,
)
from segment_enrichment.tagging import ReviewTagger, TaggedReview
from segment_enrichment.transformation import (
    OrderAggregate,
    OrderAggregator,
    ProfileAggregate,
    ProfileAggregator,
    ProductCategory,
)

logger = structlog.get_logger(__name__)

STAGE_DURATION = Histogram(
    "segment_enrichment_stage_seconds",
    "Time spent in each pipeline stage",
    ["stage"],
)

Rows = Iterable[Mapping[str, Any]]
ReviewPartition = Tuple[Rows, Optional[ProductCategory]]


class EnrichmentPipeline:
    """
    Review segmentation and sales enrichment pipeline.

    Aggregators and counters live on the instance; use one instance per run.

    Example:
        pipeline = EnrichmentPipeline()
        artifact = pipeline.run_files(
            "orders.csv",
            "customers.csv",
            [ReviewSource("Viasox Reviews EasyStretch.csv")],
        )
    """

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self.order_aggregator = OrderAggregator(self.settings.pipeline.progress_every)
        self.profile_aggregator = ProfileAggregator(self.settings.pipeline.progress_every)
        self.tagger = ReviewTagger()

    @contextmanager
    def _stage(self, name: str):
        started = time.perf_counter()
        logger.info("Stage started", stage=name)
        try:
            yield
        except Exception as e:
            logger.error("Stage failed", stage=name, error=str(e))
            raise
        finally:
            elapsed = time.perf_counter() - started
            STAGE_DURATION.labels(stage=name).observe(elapsed)
        logger.info("Stage completed", stage=name, duration_seconds=round(elapsed, 3))

    # -------------------------------------------------------------------------
    # Ingestion stages
    # -------------------------------------------------------------------------

    def aggregate_orders(self, rows: Rows) -> Dict[str, OrderAggregate]:
        with self._stage("orders"):
            return self.order_aggregator.run(rows)

    def aggregate_profiles(self, rows: Rows) -> Dict[str, ProfileAggregate]:
        with self._stage("profiles"):
            return self.profile_aggregator.run(rows)

    def tag_reviews(self, partitions: Iterable[ReviewPartition]) -> List[TaggedReview]:
        with self._stage("reviews"):
            reviews: List[TaggedReview] = []
            for rows, category in partitions:
                reviews.extend(self.tagger.tag_rows(rows, category))
            segmented = sum(1 for r in reviews if r.segments)
            logger.info(
                "Reviews tagged",
                reviews=len(reviews),
                skipped_empty=self.tagger.rows_skipped,
                undecodable=self.tagger.rows_undecodable,
                with_identity=sum(1 for r in reviews if r.identity),
                with_segments=segmented,
                segmented_pct=pct(segmented, len(reviews)),
            )
            return reviews

    # -------------------------------------------------------------------------
    # Analytics
    # -------------------------------------------------------------------------

    def analyze(
        self,
        reviews: Sequence[TaggedReview],
        orders: Mapping[str, OrderAggregate],
        profiles: Mapping[str, ProfileAggregate],
        sources: Optional[Dict[str, Any]] = None,
    ) -> EnrichmentArtifact:
        """Derive every analytical section from tagged reviews and aggregates"""
        cfg = self.settings.pipeline
        linker = SalesLinker(orders, profiles, top_regions=cfg.top_regions)

        with self._stage("segments"):
            profiles_by_label = SegmentProfileBuilder(linker, cfg).build(reviews)
        with self._stage("overlaps"):
            overlaps = OverlapAnalyzer(linker).analyze(reviews, profiles_by_label)
        with self._stage("affinity"):
            affinity = AffinityAnalyzer(cfg).analyze(reviews, profiles_by_label)
        with self._stage("cross_purchase"):
            matrix = build_cross_purchase_matrix(orders)
        with self._stage("journeys"):
            journeys = JourneySelector(orders, profiles, cfg).select(reviews)

        identities = reviewer_identities(reviews)
        linked_to_orders = sum(1 for identity in identities if identity in orders)
        logger.info(
            "Reviewers linked",
            linked=linked_to_orders,
            reviewers=len(identities),
            link_rate=pct(linked_to_orders, len(identities)),
        )

        meta = RunMeta(
            generated_at=datetime.now(timezone.utc),
            app_version=self.settings.version,
            sources=sources or {},
            counters={
                "orders": self.order_aggregator.stats.as_dict(),
                "profiles": self.profile_aggregator.stats.as_dict(),
                "reviews": {
                    "rows_seen": self.tagger.rows_seen,
                    "rows_skipped": self.tagger.rows_skipped,
                    "rows_undecodable": self.tagger.rows_undecodable,
                    "rows_tagged": len(reviews),
                },
            },
            total_reviews=len(reviews),
            total_order_lines=self.order_aggregator.stats.rows_folded,
            total_revenue=round2(self.order_aggregator.total_net_sales),
            total_customers_in_orders=len(orders),
            total_customer_profiles=len(profiles),
            unique_reviewer_identities=len(identities),
            reviewers_linked_to_orders=linked_to_orders,
            link_rate=pct(linked_to_orders, len(identities)),
        )

        return EnrichmentArtifact(
            meta=meta,
            segments=profiles_by_label,
            segment_meta=segment_meta(reviews),
            cross_segment_overlaps=overlaps,
            product_affinity=affinity,
            cross_purchase_matrix=matrix,
            customer_journeys=journeys,
        )

    # -------------------------------------------------------------------------
    # Entry points
    # -------------------------------------------------------------------------

    def run(
        self,
        order_rows: Rows,
        profile_rows: Rows,
        review_partitions: Iterable[ReviewPartition],
        sources: Optional[Dict[str, Any]] = None,
    ) -> EnrichmentArtifact:
        """Run every stage over already-opened row sources"""
        orders = self.aggregate_orders(order_rows)
        profiles = self.aggregate_profiles(profile_rows)
        reviews = self.tag_reviews(review_partitions)
        return self.analyze(reviews, orders, profiles, sources)

    def run_files(
        self,
        orders_path: Union[str, Path],
        customers_path: Union[str, Path],
        review_sources: Sequence[ReviewSource],
    ) -> EnrichmentArtifact:
        """
        Run the pipeline over CSV exports.

        Raises:
            SourceError: If any input is missing or structurally unusable
        """
        if not review_sources:
            raise SourceError("reviews", "no review sources given")
        # Reviews are read last; fail before streaming the ledgers
        for source in review_sources:
            if not source.file_path.is_file():
                raise SourceError(f"reviews:{source.file_path.name}", f"file not found: {source.file_path}")

        encoding = self.settings.data.encoding
        order_config = BatchFileConfig(
            file_path=orders_path,
            source_name="orders",
            required_columns=OrderAggregator.required_columns,
            encoding=encoding,
            batch_size=self.settings.pipeline.batch_size,
        )
        profile_config = BatchFileConfig(
            file_path=customers_path,
            source_name="profiles",
            required_columns=ProfileAggregator.required_columns,
            encoding=encoding,
            batch_size=self.settings.pipeline.batch_size,
        )

        partitions = (
            (load_review_records(source, encoding), source.category)
            for source in review_sources
        )
        sources = {
            "orders": Path(orders_path).name,
            "profiles": Path(customers_path).name,
            "reviews": {
                source.file_path.name: source.category.value if source.category else None
                for source in review_sources
            },
        }
        return self.run(
            stream_csv_records(order_config),
            stream_csv_records(profile_config),
            partitions,
            sources,
        )
