"""
Segment Analytics Module
"""
from .affinity import AffinityAnalyzer
from .cross_purchase import build_cross_purchase_matrix
from .journeys import JourneySelector
from .models import EnrichmentArtifact, OverlapRecord, SegmentProfile
from .overlaps import OverlapAnalyzer
from .sales import SalesLinker
from .segments import SegmentProfileBuilder

__all__ = [
    "AffinityAnalyzer",
    "build_cross_purchase_matrix",
    "JourneySelector",
    "EnrichmentArtifact",
    "OverlapRecord",
    "SegmentProfile",
    "OverlapAnalyzer",
    "SalesLinker",
    "SegmentProfileBuilder",
]
