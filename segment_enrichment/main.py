#!/usr/bin/env python
"""
Segment Enrichment Entry Point

Runs the batch pipeline over CSV exports and writes the enrichment artifact.
Usage:
    segment-enrichment \\
        --orders data/orders.csv \\
        --customers data/customers.csv \\
        --reviews "data/Viasox Reviews EasyStretch.csv" \\
        --reviews data/extra_reviews.csv=Compression \\
        --output data/salesEnrichment.json
"""

import argparse
import sys
from pathlib import Path
from typing import List, Optional, Sequence

import structlog

from segment_enrichment.config import get_settings
from segment_enrichment.config.logging import configure_logging
from segment_enrichment.ingestion import ReviewSource, SourceError
from segment_enrichment.pipeline import EnrichmentPipeline
from segment_enrichment.transformation import ProductCategory

logger = structlog.get_logger(__name__)


def parse_review_source(value: str) -> ReviewSource:
    """
    Parse PATH or PATH=Category into a ReviewSource.

    The suffix after the last "=" is a category only when it names one;
    otherwise the whole value is the path.
    """
    path, sep, suffix = value.rpartition("=")
    categories = {c.value: c for c in ProductCategory}
    if sep and path and suffix.strip() in categories:
        return ReviewSource(path, categories[suffix.strip()])
    return ReviewSource(value)


def build_parser() -> argparse.ArgumentParser:
    settings = get_settings()
    parser = argparse.ArgumentParser(
        prog="segment-enrichment",
        description="Review segmentation and sales enrichment pipeline",
    )
    parser.add_argument(
        "--orders",
        required=True,
        help="Order-line ledger CSV"
    )
    parser.add_argument(
        "--customers",
        required=True,
        help="Customer profile report CSV"
    )
    parser.add_argument(
        "--reviews",
        required=True,
        action="append",
        type=parse_review_source,
        metavar="PATH[=CATEGORY]",
        help="Review export CSV; repeat per file. The category defaults to one named in the file name"
    )
    parser.add_argument(
        "--output",
        default=settings.data.output_path,
        help=f"Artifact path, or - for stdout (default: {settings.data.output_path})"
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Override LOG_LEVEL"
    )
    parser.add_argument(
        "--log-format",
        choices=["console", "json"],
        default=None,
        help="Override LOG_FORMAT"
    )
    return parser


def write_artifact(payload: str, output: str) -> None:
    if output == "-":
        sys.stdout.write(payload + "\n")
        return
    path = Path(output)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(payload, encoding="utf-8")
    logger.info("Artifact written", path=str(path), size_kb=round(len(payload) / 1024, 1))


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level, args.log_format)

    review_sources: List[ReviewSource] = args.reviews
    pipeline = EnrichmentPipeline()
    try:
        artifact = pipeline.run_files(args.orders, args.customers, review_sources)
    except SourceError as e:
        logger.error("Pipeline aborted", source=e.source, error=str(e))
        return 1

    write_artifact(artifact.model_dump_json(indent=2), args.output)
    logger.info(
        "Pipeline completed",
        reviews=artifact.meta.total_reviews,
        segments=len(artifact.segments),
        link_rate=artifact.meta.link_rate,
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
