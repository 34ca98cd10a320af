"""
Review Segment Enrichment

Batch pipeline that tags product reviews into customer segments and links
the reviewers to their order and profile history.
"""

__version__ = "1.0.0"
