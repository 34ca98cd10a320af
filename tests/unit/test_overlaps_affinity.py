"""
Unit Tests - Cross-Segment Overlaps and Product Affinity
"""
import pytest

from segment_enrichment.analytics import AffinityAnalyzer, OverlapAnalyzer, SegmentProfileBuilder
from segment_enrichment.analytics.affinity import Indexing
from segment_enrichment.config.settings import PipelineSettings
from segment_enrichment.transformation import ProductCategory


@pytest.fixture
def overlap_reviews(make_review):
    return [
        make_review("My nurse friend said these are so comfortable", rating=5),
        make_review("nurse, so comfortable", rating=4),
        make_review("I am diabetic and these are so comfortable", rating=5),
        make_review("nurse", rating=3),
    ]


class TestOverlapAnalyzer:
    """Tests for OverlapAnalyzer"""

    def test_pairs_sorted_by_count(self, overlap_reviews):
        overlaps = OverlapAnalyzer().analyze(overlap_reviews)

        assert [(o.identity, o.motivation, o.review_count) for o in overlaps] == [
            ("healthcare_worker", "comfort_seeker", 2),
            ("diabetic_neuropathy", "comfort_seeker", 1),
        ]

    def test_percentages(self, overlap_reviews):
        top = OverlapAnalyzer().analyze(overlap_reviews)[0]

        assert top.percent_of_identity == 66.7
        assert top.percent_of_motivation == 66.7
        assert top.avg_rating == 4.5
        assert top.by_product["EasyStretch"].count == 2
        assert top.by_product["EasyStretch"].pct == 100.0

    def test_ties_keep_label_order(self, make_review):
        reviews = [make_review("a nurse and diabetic, so comfortable")]
        overlaps = OverlapAnalyzer().analyze(reviews)
        assert [o.identity for o in overlaps] == ["healthcare_worker", "diabetic_neuropathy"]

    def test_reuses_segment_profiles(self, overlap_reviews):
        profiles = SegmentProfileBuilder(None, PipelineSettings()).build(overlap_reviews)
        assert OverlapAnalyzer().analyze(overlap_reviews, profiles) == OverlapAnalyzer().analyze(overlap_reviews)

    def test_no_segments_no_overlaps(self, make_review):
        assert OverlapAnalyzer().analyze([make_review("Fast shipping.")]) == []


class TestAffinityAnalyzer:
    """Tests for AffinityAnalyzer"""

    @pytest.fixture
    def analyzer(self):
        return AffinityAnalyzer(PipelineSettings())

    def test_concentration_index(self, analyzer):
        # 1% of the product's reviews against 0.5% overall
        assert analyzer.concentration_index(10, 1000, 50, 10000) == 2.0

    def test_concentration_index_undefined(self, analyzer):
        assert analyzer.concentration_index(0, 10, 0, 100) == 0.0
        assert analyzer.concentration_index(1, 10, 5, 0) == 0.0

    @pytest.mark.parametrize("index,expected", [
        (2.0, Indexing.OVER),
        (1.2, Indexing.NEUTRAL),
        (1.0, Indexing.NEUTRAL),
        (0.8, Indexing.NEUTRAL),
        (0.5, Indexing.UNDER),
    ])
    def test_classify(self, analyzer, index, expected):
        assert analyzer.classify(index) == expected

    def test_analyze(self, analyzer, make_review):
        reviews = [
            make_review("My nurse friend said these are so comfortable", product=ProductCategory.EASY_STRETCH),
            make_review("so comfortable", product=ProductCategory.EASY_STRETCH),
            make_review("nurse", product=ProductCategory.COMPRESSION),
            make_review("Fast shipping.", product=ProductCategory.COMPRESSION),
        ]
        profiles = SegmentProfileBuilder(None, PipelineSettings()).build(reviews)
        affinity = analyzer.analyze(reviews, profiles)

        assert list(affinity) == ["EasyStretch", "Compression"]

        easy = affinity["EasyStretch"]
        assert [(e.segment, e.review_count) for e in easy] == [
            ("comfort_seeker", 2),
            ("healthcare_worker", 1),
        ]
        assert easy[0].share_of_product == 100.0
        assert easy[0].concentration_index == 2.0
        assert easy[0].indexing == Indexing.OVER
        assert easy[1].concentration_index == 1.0
        assert easy[1].indexing == Indexing.NEUTRAL

        compression = affinity["Compression"]
        assert [e.segment for e in compression] == ["healthcare_worker"]
        assert compression[0].share_of_product == 50.0
        assert compression[0].revenue == 0.0
        assert compression[0].revenue_share == 0.0
