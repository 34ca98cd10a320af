"""
Data Transformation Module
"""
from .cleaners import ProductCategory, map_product_type, normalize_identity
from .aggregators import (
    OrderAggregate,
    OrderAggregator,
    ProfileAggregate,
    ProfileAggregator,
    SkipRecord,
    StreamingAggregator,
)

__all__ = [
    "ProductCategory",
    "map_product_type",
    "normalize_identity",
    "OrderAggregate",
    "OrderAggregator",
    "ProfileAggregate",
    "ProfileAggregator",
    "SkipRecord",
    "StreamingAggregator",
]
