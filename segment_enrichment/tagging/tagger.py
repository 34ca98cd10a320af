"""
Review Tagger

Tags each review with every matching label of every pattern table.
Tagging is a pure function of the review text: no pattern table is
short-circuited by another, and nothing outside the text affects the result.
"""

from dataclasses import dataclass
from typing import Any, Iterable, List, Mapping, Optional, Pattern, Tuple

import structlog

from segment_enrichment.transformation.cleaners import (
    REPLACEMENT_CHAR,
    ProductCategory,
    categorize_product_handle,
    normalize_identity,
    parse_flag,
    parse_rating,
)
from .patterns import (
    BENEFIT_PATTERNS,
    IDENTITY_SEGMENT_PATTERNS,
    MOTIVATION_SEGMENT_PATTERNS,
    PAIN_PATTERNS,
    TRANSFORMATION_PATTERNS,
)

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class TagSet:
    """Labels matched by one text, each tuple in table declaration order"""
    identity_segments: Tuple[str, ...] = ()
    motivation_segments: Tuple[str, ...] = ()
    pains: Tuple[str, ...] = ()
    benefits: Tuple[str, ...] = ()
    transformations: Tuple[str, ...] = ()


@dataclass(frozen=True)
class TaggedReview:
    """A review with its resolved product and matched labels"""
    identity: Optional[str]
    text: str
    rating: int
    date: str
    name: str
    verified: bool
    product_handle: str
    variant: str
    product: ProductCategory
    tags: TagSet

    @property
    def identity_segments(self) -> Tuple[str, ...]:
        return self.tags.identity_segments

    @property
    def motivation_segments(self) -> Tuple[str, ...]:
        return self.tags.motivation_segments

    @property
    def segments(self) -> Tuple[str, ...]:
        """All segment labels, identity layer first"""
        return self.tags.identity_segments + self.tags.motivation_segments

    @property
    def pains(self) -> Tuple[str, ...]:
        return self.tags.pains

    @property
    def benefits(self) -> Tuple[str, ...]:
        return self.tags.benefits

    @property
    def transformations(self) -> Tuple[str, ...]:
        return self.tags.transformations


def match_labels(patterns: Mapping[str, Pattern], text: str) -> Tuple[str, ...]:
    """Every label of a table whose pattern occurs anywhere in the text"""
    return tuple(label for label, pattern in patterns.items() if pattern.search(text))


def tag_text(text: str) -> TagSet:
    """Evaluate all five pattern tables against a text"""
    return TagSet(
        identity_segments=match_labels(IDENTITY_SEGMENT_PATTERNS, text),
        motivation_segments=match_labels(MOTIVATION_SEGMENT_PATTERNS, text),
        pains=match_labels(PAIN_PATTERNS, text),
        benefits=match_labels(BENEFIT_PATTERNS, text),
        transformations=match_labels(TRANSFORMATION_PATTERNS, text),
    )


def _text(row: Mapping[str, Any], column: str) -> str:
    value = row.get(column)
    return value.strip() if isinstance(value, str) else ""


class ReviewTagger:
    """
    Turns raw review rows into TaggedReview objects.

    Example:
        tagger = ReviewTagger()
        reviews = tagger.tag_rows(rows, ProductCategory.COMPRESSION)
    """

    def __init__(self):
        self.rows_seen = 0
        self.rows_skipped = 0
        # Tagged rows that carried undecodable bytes
        self.rows_undecodable = 0

    def tag_row(
        self,
        row: Mapping[str, Any],
        category: Optional[ProductCategory] = None,
    ) -> Optional[TaggedReview]:
        """
        Tag a single review row.

        Args:
            row: Raw review record keyed by export column name
            category: Category of the row's source partition; when absent
                the product handle decides

        Returns:
            The tagged review, or None for an empty review body
        """
        self.rows_seen += 1
        text = _text(row, "Review")
        if not text:
            self.rows_skipped += 1
            return None
        if any(isinstance(v, str) and REPLACEMENT_CHAR in v for v in row.values()):
            self.rows_undecodable += 1

        handle = _text(row, "Product Handle")
        return TaggedReview(
            identity=normalize_identity(row.get("Email")),
            text=text,
            rating=parse_rating(row.get("Rating")),
            date=_text(row, "Date"),
            name=_text(row, "Full Name") or _text(row, "Nickname"),
            verified=parse_flag(row.get("Verified")),
            product_handle=handle,
            variant=_text(row, "Variant"),
            product=category or categorize_product_handle(handle),
            tags=tag_text(text),
        )

    def tag_rows(
        self,
        rows: Iterable[Mapping[str, Any]],
        category: Optional[ProductCategory] = None,
    ) -> List[TaggedReview]:
        """Tag every non-empty review of one source partition"""
        tagged = []
        for row in rows:
            review = self.tag_row(row, category)
            if review is not None:
                tagged.append(review)
        return tagged
