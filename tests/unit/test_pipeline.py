"""
Unit Tests - Pipeline Orchestration and CLI
"""
import json

import pytest
from prometheus_client import REGISTRY

from segment_enrichment.config.settings import DataSettings
from segment_enrichment.ingestion import ReviewSource, SourceError
from segment_enrichment.main import main, parse_review_source
from segment_enrichment.pipeline import EnrichmentPipeline
from segment_enrichment.transformation import ProductCategory


PERCENT_FIELDS = {
    "pct",
    "pct_of_total",
    "pct_used_discount",
    "review_pct",
    "five_star_pct",
    "link_rate",
    "repeat_purchase_rate",
    "cross_purchase_rate",
    "percent_of_identity",
    "percent_of_motivation",
    "share_of_product",
    "revenue_share",
}


def _leaves(node, key=None):
    """(field name, value) for every scalar of a dumped model"""
    if isinstance(node, dict):
        for k, v in node.items():
            yield from _leaves(v, k)
    elif isinstance(node, list):
        for v in node:
            yield from _leaves(v, key)
    else:
        yield key, node


@pytest.fixture
def input_files(write_csv, sample_order_rows, sample_profile_rows, sample_review_rows):
    return {
        "orders": write_csv("orders.csv", sample_order_rows),
        "customers": write_csv("customers.csv", sample_profile_rows),
        "reviews": write_csv("Viasox Reviews EasyStretch.csv", sample_review_rows),
    }


class TestEnrichmentPipeline:
    """Tests for EnrichmentPipeline"""

    def test_settings(self, test_settings):
        assert test_settings.app_env == "testing"
        assert test_settings.pipeline.batch_size == 2

    def test_encoding_setting(self):
        assert DataSettings().encoding == "utf8-lossy"
        with pytest.raises(ValueError):
            DataSettings(encoding="latin-1")

    def test_run_files(self, test_settings, input_files):
        artifact = EnrichmentPipeline(test_settings).run_files(
            input_files["orders"],
            input_files["customers"],
            [ReviewSource(input_files["reviews"])],
        )
        meta = artifact.meta

        assert meta.total_reviews == 3
        assert meta.total_order_lines == 4
        assert meta.total_revenue == 55.5
        assert meta.total_customers_in_orders == 2
        assert meta.total_customer_profiles == 2
        assert meta.unique_reviewer_identities == 3
        assert meta.reviewers_linked_to_orders == 2
        assert meta.link_rate == 66.7
        assert meta.sources["reviews"] == {"Viasox Reviews EasyStretch.csv": "EasyStretch"}
        assert meta.counters["orders"]["skip_reasons"] == {
            "missing_category": 1,
            "missing_identity": 1,
        }
        assert meta.counters["reviews"]["rows_skipped"] == 1

    def test_artifact_sections(self, test_settings, input_files):
        artifact = EnrichmentPipeline(test_settings).run_files(
            input_files["orders"],
            input_files["customers"],
            [ReviewSource(input_files["reviews"])],
        )

        assert list(artifact.segments) == [
            "healthcare_worker",
            "diabetic_neuropathy",
            "comfort_seeker",
            "pain_symptom_relief",
        ]
        # File name category overrides the handles
        assert list(artifact.segments["diabetic_neuropathy"].by_product) == ["EasyStretch", "Ankle Compression"]
        assert artifact.segment_meta.unsegmented.count == 1
        assert artifact.cross_segment_overlaps[0].identity == "healthcare_worker"
        assert list(artifact.product_affinity) == ["EasyStretch"]
        assert artifact.cross_purchase_matrix.total_customers == 2
        assert artifact.customer_journeys["healthcare_worker"][0].email_hint == "a***@x.com"
        assert artifact.customer_journeys["healthcare_worker"][0].location == "Denver, Texas, United States"

    def test_in_memory_sources(self, test_settings, sample_order_rows, sample_profile_rows, sample_review_rows):
        artifact = EnrichmentPipeline(test_settings).run(
            sample_order_rows,
            sample_profile_rows,
            [(sample_review_rows, None)],
        )
        assert artifact.meta.total_reviews == 3
        assert artifact.segments["healthcare_worker"].by_product["EasyStretch"].review_count == 1
        assert artifact.segments["diabetic_neuropathy"].by_product["Ankle Compression"].review_count == 1

    def test_no_review_sources(self, test_settings, input_files):
        with pytest.raises(SourceError):
            EnrichmentPipeline(test_settings).run_files(input_files["orders"], input_files["customers"], [])

    def test_missing_orders_file(self, test_settings, input_files, tmp_path):
        with pytest.raises(SourceError) as exc_info:
            EnrichmentPipeline(test_settings).run_files(
                tmp_path / "absent.csv",
                input_files["customers"],
                [ReviewSource(input_files["reviews"])],
            )
        assert exc_info.value.source == "orders"

    def test_empty_review_partition(self, test_settings, sample_order_rows, sample_profile_rows):
        artifact = EnrichmentPipeline(test_settings).run(sample_order_rows, sample_profile_rows, [([], None)])

        assert artifact.meta.total_reviews == 0
        assert artifact.segments == {}
        assert artifact.cross_segment_overlaps == []
        assert artifact.product_affinity == {}
        assert artifact.segment_meta.unsegmented.pct == 0.0

    def test_missing_review_file_fails_before_streaming(self, test_settings, input_files, tmp_path):
        pipeline = EnrichmentPipeline(test_settings)
        with pytest.raises(SourceError) as exc_info:
            pipeline.run_files(
                input_files["orders"],
                input_files["customers"],
                [ReviewSource(input_files["reviews"]), ReviewSource(tmp_path / "absent.csv")],
            )

        assert exc_info.value.source == "reviews:absent.csv"
        assert pipeline.order_aggregator.stats.rows_seen == 0
        assert pipeline.profile_aggregator.stats.rows_seen == 0

    def test_failed_stage_is_timed(self, test_settings):
        def rows():
            yield {"Customer email": "a@x.com"}
            raise SourceError("orders", "unparseable file")

        labels = {"stage": "orders"}
        before = REGISTRY.get_sample_value("segment_enrichment_stage_seconds_count", labels) or 0
        with pytest.raises(SourceError):
            EnrichmentPipeline(test_settings).aggregate_orders(rows())

        assert REGISTRY.get_sample_value("segment_enrichment_stage_seconds_count", labels) == before + 1

    def test_bad_ledger_row_is_counted(self, test_settings, input_files):
        lines = input_files["orders"].read_bytes().splitlines()
        bad = b"c\xff@z.com,Compression Socks,Compression Socks,1,9.00,9.00,,2024-02-03"
        input_files["orders"].write_bytes(b"\n".join(lines[:3] + [bad] + lines[3:]) + b"\n")

        artifact = EnrichmentPipeline(test_settings).run_files(
            input_files["orders"],
            input_files["customers"],
            [ReviewSource(input_files["reviews"])],
        )

        assert artifact.meta.total_order_lines == 4
        assert artifact.meta.counters["orders"]["skip_reasons"]["undecodable_text"] == 1
        assert artifact.meta.counters["orders"]["rows_seen"] == 7
        assert artifact.meta.counters["reviews"]["rows_undecodable"] == 0


class TestArtifactBounds:
    """Tests for value ranges across a whole artifact"""

    def test_percentages_and_indices_in_range(
        self, test_settings, sample_order_rows, sample_profile_rows, sample_review_rows
    ):
        # A refund larger than the rest of the customer's Compression spend
        refund = dict(sample_order_rows[1], **{"Net sales": "-35.00", "Total sales": "-35.00"})
        artifact = EnrichmentPipeline(test_settings).run(
            sample_order_rows + [refund],
            sample_profile_rows,
            [(sample_review_rows, ProductCategory.EASY_STRETCH)],
        )

        leaves = list(_leaves(artifact.model_dump()))
        percentages = [value for key, value in leaves if key in PERCENT_FIELDS]
        indices = [value for key, value in leaves if key == "concentration_index"]

        assert percentages and indices
        assert all(0.0 <= value <= 100.0 for value in percentages)
        assert all(value >= 0.0 for value in indices)

        entry = next(e for e in artifact.product_affinity["EasyStretch"] if e.segment == "healthcare_worker")
        assert entry.revenue == 20.0
        assert entry.revenue_share == 100.0


class TestCommandLine:
    """Tests for the command line entry point"""

    def test_parse_review_source(self):
        source = parse_review_source("extra.csv=Compression")
        assert source.file_path.name == "extra.csv"
        assert source.category == ProductCategory.COMPRESSION

    def test_parse_review_source_unknown_suffix_is_path(self):
        source = parse_review_source("extra.csv=Shoes")
        assert source.file_path.name == "extra.csv=Shoes"
        assert source.category is None

    def test_parse_review_source_equals_in_path(self):
        source = parse_review_source("exports/run=3/reviews.csv")
        assert source.file_path.as_posix() == "exports/run=3/reviews.csv"
        assert source.category is None

    def test_parse_review_source_equals_in_path_with_category(self):
        source = parse_review_source("exports/run=3/reviews.csv=Ankle Compression")
        assert source.file_path.as_posix() == "exports/run=3/reviews.csv"
        assert source.category == ProductCategory.ANKLE_COMPRESSION

    def test_main_writes_artifact(self, input_files, tmp_path):
        output = tmp_path / "out" / "salesEnrichment.json"
        code = main([
            "--orders", str(input_files["orders"]),
            "--customers", str(input_files["customers"]),
            "--reviews", str(input_files["reviews"]),
            "--output", str(output),
        ])

        assert code == 0
        payload = json.loads(output.read_text(encoding="utf-8"))
        assert payload["meta"]["total_reviews"] == 3
        assert "healthcare_worker" in payload["segments"]
        assert "_reviews" not in payload["segments"]["healthcare_worker"]

    def test_main_missing_input(self, input_files, tmp_path):
        code = main([
            "--orders", str(tmp_path / "absent.csv"),
            "--customers", str(input_files["customers"]),
            "--reviews", str(input_files["reviews"]),
            "--output", str(tmp_path / "out.json"),
        ])
        assert code == 1
        assert not (tmp_path / "out.json").exists()
