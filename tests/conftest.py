"""
Test Suite Configuration
"""
from pathlib import Path
from typing import Callable, Dict, List

import polars as pl
import pytest

from segment_enrichment.config import Settings
from segment_enrichment.config.settings import PipelineSettings
from segment_enrichment.tagging import ReviewTagger, TaggedReview
from segment_enrichment.transformation import ProductCategory


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    """Create test settings"""
    return Settings(
        APP_ENV="testing",
        pipeline=PipelineSettings(batch_size=2, progress_every=1000),
    )


@pytest.fixture
def sample_order_rows() -> List[Dict[str, str]]:
    """Order-line rows as exported (every value a string)"""
    return [
        {
            "Customer email": "A@X.com ",
            "Product title": "EasyStretch Socks",
            "Product type": "Easy Stretch",
            "Quantity ordered": "1",
            "Net sales": "10.00",
            "Total sales": "12.00",
            "Discount code": "",
            "Day": "2024-01-01",
        },
        {
            "Customer email": "a@x.com",
            "Product title": "Compression Socks",
            "Product type": "Compression Socks",
            "Quantity ordered": "2",
            "Net sales": "20.00",
            "Total sales": "20.00",
            "Discount code": "WELCOME10",
            "Day": "2024-01-03",
        },
        {
            "Customer email": "a@x.com",
            "Product title": "EasyStretch Socks",
            "Product type": "Easy Stretch",
            "Quantity ordered": "1",
            "Net sales": "10.00",
            "Total sales": "10.00",
            "Discount code": "",
            "Day": "2024-01-02",
        },
        {
            "Customer email": "b@y.com",
            "Product title": "Ankle Compression Socks",
            "Product type": "Ankle Compression Socks",
            "Quantity ordered": "1",
            "Net sales": "15.50",
            "Total sales": "15.50",
            "Discount code": "",
            "Day": "2024-02-01",
        },
        {
            # Shipping line: no product
            "Customer email": "b@y.com",
            "Product title": "",
            "Product type": "",
            "Quantity ordered": "1",
            "Net sales": "5.00",
            "Total sales": "5.00",
            "Discount code": "",
            "Day": "2024-02-01",
        },
        {
            "Customer email": "",
            "Product title": "Compression Socks",
            "Product type": "Compression Socks",
            "Quantity ordered": "1",
            "Net sales": "30.00",
            "Total sales": "30.00",
            "Discount code": "",
            "Day": "2024-02-02",
        },
    ]


@pytest.fixture
def sample_profile_rows() -> List[Dict[str, str]]:
    """Customer-report rows; a@x.com moved between reports"""
    return [
        {
            "Customer email": "a@x.com",
            "Shipping city": "Austin",
            "Shipping region": "Texas",
            "Shipping country": "United States",
            "Customer first order date": "2024-01-01",
            "Net sales": "10.00",
            "Total sales": "12.00",
            "Orders": "1",
            "Day": "2024-01-01",
        },
        {
            "Customer email": "a@x.com",
            "Shipping city": "Denver",
            "Shipping region": "",
            "Shipping country": "United States",
            "Customer first order date": "2024-01-01",
            "Net sales": "30.00",
            "Total sales": "30.00",
            "Orders": "2",
            "Day": "2024-01-03",
        },
        {
            "Customer email": "b@y.com",
            "Shipping city": "Toronto",
            "Shipping region": "Ontario",
            "Shipping country": "Canada",
            "Customer first order date": "2024-02-01",
            "Net sales": "15.50",
            "Total sales": "15.50",
            "Orders": "1",
            "Day": "2024-02-01",
        },
    ]


@pytest.fixture
def sample_review_rows() -> List[Dict[str, str]]:
    """Review export rows without a category in the file name"""
    return [
        {
            "Email": "a@x.com",
            "Review": "My nurse friend said these are so comfortable. I work 12 hour shifts at the hospital.",
            "Rating": "5",
            "Date": "2024-01-10",
            "Full Name": "Ann A",
            "Verified": "TRUE",
            "Product Handle": "viasox-easystretch-socks",
            "Variant": "L/XL",
        },
        {
            "Email": "B@Y.com",
            "Review": "My feet used to ache and swell. My diabetic feet feel great now.",
            "Rating": "4",
            "Date": "2024-02-10",
            "Full Name": "",
            "Nickname": "Bee",
            "Verified": "FALSE",
            "Product Handle": "viasox-ankle-compression-socks",
            "Variant": "S/M",
        },
        {
            "Email": "c@z.com",
            "Review": "Fast shipping.",
            "Rating": "5",
            "Date": "2024-02-11",
            "Full Name": "Cee",
            "Verified": "TRUE",
            "Product Handle": "viasox-compression-socks",
            "Variant": "S/M",
        },
        {
            "Email": "d@z.com",
            "Review": "   ",
            "Rating": "1",
            "Date": "2024-02-12",
            "Full Name": "Dee",
            "Verified": "TRUE",
            "Product Handle": "viasox-compression-socks",
            "Variant": "S/M",
        },
    ]


@pytest.fixture
def tagged_reviews(sample_review_rows) -> List[TaggedReview]:
    """Tagged sample reviews (the empty one is dropped)"""
    return ReviewTagger().tag_rows(sample_review_rows)


@pytest.fixture
def make_review() -> Callable[..., TaggedReview]:
    """Factory for a tagged review from text and a few overrides"""
    tagger = ReviewTagger()

    def _make(
        text: str,
        rating: int = 5,
        identity: str = "",
        product: ProductCategory = ProductCategory.EASY_STRETCH,
        verified: bool = True,
    ) -> TaggedReview:
        return tagger.tag_row(
            {
                "Email": identity,
                "Review": text,
                "Rating": str(rating),
                "Verified": "TRUE" if verified else "FALSE",
            },
            product,
        )

    return _make


@pytest.fixture
def write_csv(tmp_path) -> Callable[[str, List[Dict[str, str]]], Path]:
    """Write rows to a CSV under tmp_path and return its path"""

    def _write(name: str, rows: List[Dict[str, str]]) -> Path:
        path = tmp_path / name
        columns = list(dict.fromkeys(key for row in rows for key in row))
        df = pl.DataFrame(
            {col: [row.get(col, "") for row in rows] for col in columns},
            schema={col: pl.Utf8 for col in columns},
        )
        df.write_csv(path)
        return path

    return _write
