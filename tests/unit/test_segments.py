"""
Unit Tests - Metrics and Segment Profiles
"""
from decimal import Decimal

import pytest

from segment_enrichment.analytics import SalesLinker, SegmentProfileBuilder
from segment_enrichment.analytics.metrics import mean, pct, round1, round2, safe_ratio, share_pct
from segment_enrichment.analytics.segments import (
    group_by_segment,
    pick_quotes,
    rating_stats,
    segment_meta,
    top_patterns,
    truncate,
)
from segment_enrichment.config.settings import PipelineSettings
from segment_enrichment.tagging.patterns import PAIN_PATTERNS
from segment_enrichment.transformation import OrderAggregator, ProfileAggregator


class TestMetrics:
    """Tests for rounding and zero-safe ratios"""

    def test_pct_zero_total(self):
        assert pct(5, 0) == 0.0

    def test_pct_rounds_half_up(self):
        assert pct(1, 8) == 12.5
        assert pct(1, 3) == 33.3
        assert round1(0.25) == 0.3
        assert round2(Decimal("2.675")) == 2.68

    def test_safe_ratio(self):
        assert safe_ratio(1, 4) == Decimal("0.25")
        assert safe_ratio(1, 0) == 0
        assert safe_ratio(1, -2) == 0

    def test_share_pct_bounded(self):
        assert share_pct(Decimal("20"), Decimal("5")) == 100.0
        assert share_pct(Decimal("-15"), Decimal("5")) == 0.0
        assert share_pct(1, 8) == 12.5

    def test_mean(self):
        assert mean([]) == 0.0
        assert mean([5, 4, 4]) == 4.33


class TestSegmentStatistics:
    """Tests for per-segment review statistics"""

    def test_rating_stats(self, make_review):
        reviews = [make_review("nurse", rating=5) for _ in range(40)]
        reviews += [make_review("nurse", rating=4) for _ in range(60)]

        assert rating_stats(reviews) == (4.4, 40.0)

    def test_unrated_reviews_excluded(self, make_review):
        reviews = [make_review("nurse", rating=5), make_review("nurse", rating=0)]
        assert rating_stats(reviews) == (5.0, 100.0)

    def test_all_unrated(self, make_review):
        assert rating_stats([make_review("nurse", rating=0)]) == (0.0, 0.0)

    def test_group_by_segment_fans_out(self, make_review):
        both = make_review("My nurse friend said these are so comfortable")
        groups = group_by_segment([both, make_review("Fast shipping.")])

        assert list(groups) == ["healthcare_worker", "comfort_seeker"]
        assert groups["healthcare_worker"] == [both]
        assert groups["comfort_seeker"] == [both]

    def test_segment_meta(self, make_review):
        reviews = [
            make_review("My nurse friend said these are so comfortable"),
            make_review("nurse"),
            make_review("Fast shipping."),
            make_review("Arrived quickly."),
        ]
        meta = segment_meta(reviews)
        assert meta.total_reviews == 4
        assert meta.unsegmented.count == 2
        assert meta.unsegmented.pct == 50.0
        assert meta.multi_segment.count == 1


class TestTopPatterns:
    """Tests for top-N pattern ranking"""

    def test_ranked_by_count(self, make_review):
        reviews = [
            make_review("pain all day"),
            make_review("such pain"),
            make_review("swollen feet and pain"),
        ]
        ranked = top_patterns(reviews, "pains", PAIN_PATTERNS, 5)
        assert [(p.name, p.count) for p in ranked] == [("pain", 3), ("swelling", 1)]
        assert ranked[0].pct == 100.0

    def test_ties_keep_declaration_order(self, make_review):
        reviews = [make_review("swollen and tight and numb")]
        ranked = top_patterns(reviews, "pains", PAIN_PATTERNS, 2)
        assert [p.name for p in ranked] == ["swelling", "tightness"]

    def test_zero_counts_dropped(self, make_review):
        assert top_patterns([make_review("Fast shipping.")], "pains", PAIN_PATTERNS, 5) == []


class TestQuotes:
    """Tests for quote selection"""

    def test_short_reviews_excluded(self, make_review):
        assert pick_quotes([make_review("too short")], 25, 50, 400) == []

    def test_rating_then_length(self, make_review):
        long4 = make_review("a" * 200, rating=4)
        short5 = make_review("b" * 60, rating=5)
        long5 = make_review("c" * 120, rating=5)

        quotes = pick_quotes([long4, short5, long5], 2, 50, 400)
        assert [q.text[0] for q in quotes] == ["c", "b"]

    def test_truncation(self, make_review):
        quotes = pick_quotes([make_review("x" * 500)], 25, 50, 400)
        assert quotes[0].text == "x" * 400 + "..."
        assert truncate("short", 10) == "short"


class TestSegmentProfileBuilder:
    """Tests for SegmentProfileBuilder"""

    @pytest.fixture
    def linker(self, sample_order_rows, sample_profile_rows):
        return SalesLinker(
            OrderAggregator(1000).run(sample_order_rows),
            ProfileAggregator(1000).run(sample_profile_rows),
            top_regions=15,
        )

    def test_profiles_keyed_by_label(self, tagged_reviews, linker):
        profiles = SegmentProfileBuilder(linker, PipelineSettings()).build(tagged_reviews)

        assert list(profiles) == [
            "healthcare_worker",
            "diabetic_neuropathy",
            "comfort_seeker",
            "pain_symptom_relief",
        ]
        comfort = profiles["comfort_seeker"]
        assert comfort.review_count == 2
        assert comfort.review_pct == 66.7
        assert comfort.avg_rating == 4.5
        assert comfort.five_star_pct == 50.0
        assert comfort.layer == "motivation"
        assert comfort.display_name == "comfort seeker"
        assert len(comfort.reviews) == 2

    def test_sales_attached(self, tagged_reviews, linker):
        profiles = SegmentProfileBuilder(linker, PipelineSettings()).build(tagged_reviews)
        sales = profiles["comfort_seeker"].sales

        assert sales.reviewer_identities == 2
        assert sales.linked_reviewers == 2
        assert sales.total_revenue == 55.5

    def test_revenue_attributed_to_products(self, tagged_reviews, linker):
        profiles = SegmentProfileBuilder(linker, PipelineSettings()).build(tagged_reviews)
        by_product = profiles["healthcare_worker"].by_product

        assert by_product["EasyStretch"].review_count == 1
        assert by_product["EasyStretch"].revenue == 20.0
        # Bought but never reviewed in this segment
        assert by_product["Compression"].review_count == 0
        assert by_product["Compression"].revenue == 20.0

    def test_without_linker(self, tagged_reviews):
        profiles = SegmentProfileBuilder(None, PipelineSettings()).build(tagged_reviews)
        assert profiles["healthcare_worker"].sales.linked_reviewers == 0
