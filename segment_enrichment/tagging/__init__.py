"""
Review Tagging Module
"""
from .patterns import SEGMENT_LAYER, SEGMENT_ORDER, SegmentLayer, display_name
from .tagger import ReviewTagger, TaggedReview, TagSet, tag_text

__all__ = [
    "SEGMENT_LAYER",
    "SEGMENT_ORDER",
    "SegmentLayer",
    "display_name",
    "ReviewTagger",
    "TaggedReview",
    "TagSet",
    "tag_text",
]
