"""
Data Cleaning Module

Field-level cleaning for the order, profile and review ledgers.
Handles:
- Identity (email) normalization
- Product type to category mapping
- Currency and quantity parsing
- Quote stripping of exported CSV values
"""

from decimal import Decimal, InvalidOperation
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping, Optional
import re


class ProductCategory(str, Enum):
    """Closed set of product lines. Declaration order is the canonical ordering."""
    EASY_STRETCH = "EasyStretch"
    COMPRESSION = "Compression"
    ANKLE_COMPRESSION = "Ankle Compression"
    OTHER = "Other"


# Categories that take part in cross-purchase combinatorics
PRODUCT_LINES = (
    ProductCategory.EASY_STRETCH,
    ProductCategory.COMPRESSION,
    ProductCategory.ANKLE_COMPRESSION,
)

# Shopify "Product type" -> product line. Unlisted types fall into OTHER.
PRODUCT_TYPE_MAP: Mapping[str, ProductCategory] = MappingProxyType({
    "Easy Stretch": ProductCategory.EASY_STRETCH,
    "ES Bundle": ProductCategory.EASY_STRETCH,
    "ES Gripper": ProductCategory.EASY_STRETCH,
    "Diabetic Socks": ProductCategory.EASY_STRETCH,
    "Compression Socks": ProductCategory.COMPRESSION,
    "COM Bundle": ProductCategory.COMPRESSION,
    "COM Gripper": ProductCategory.COMPRESSION,
    "Ankle Compression Socks": ProductCategory.ANKLE_COMPRESSION,
    "AC Bundle": ProductCategory.ANKLE_COMPRESSION,
    "ACS Gripper": ProductCategory.ANKLE_COMPRESSION,
    "Ankle Socks": ProductCategory.ANKLE_COMPRESSION,
    "ANK Bundle": ProductCategory.ANKLE_COMPRESSION,
    "Mystery": ProductCategory.OTHER,
    "Bundle": ProductCategory.OTHER,
    "Subscription": ProductCategory.OTHER,
    "Pain Relief Gel": ProductCategory.OTHER,
    "Socks": ProductCategory.OTHER,
})

# Returned by normalize_identity when no usable identity remains
NO_IDENTITY = None

# Stands in for bytes the CSV reader could not decode
REPLACEMENT_CHAR = "\ufffd"

_STRIP_CHARS = " \t\r\n\"'"
_CURRENCY_PATTERN = re.compile(r"[$€£¥,\s]")


def clean_field(value: Any) -> str:
    """Trim whitespace and surrounding CSV quotes. Non-strings become ''."""
    if not isinstance(value, str):
        return ""
    return value.strip(_STRIP_CHARS)


def normalize_identity(raw: Any) -> Optional[str]:
    """
    Canonicalize a raw email into the identity key used for joins.

    Lower-cases and strips padding and quotes. Idempotent:
    normalize_identity(normalize_identity(x)) == normalize_identity(x).

    Returns:
        The identity key, or NO_IDENTITY for empty or non-string input
    """
    cleaned = clean_field(raw).lower()
    return cleaned or NO_IDENTITY


def map_product_type(raw: Any) -> Optional[ProductCategory]:
    """
    Map a raw product type to a product category.

    Total over non-empty input: anything missing from PRODUCT_TYPE_MAP is
    OTHER. Empty input has no category and returns None.
    """
    cleaned = clean_field(raw)
    if not cleaned:
        return None
    return PRODUCT_TYPE_MAP.get(cleaned, ProductCategory.OTHER)


def categorize_product_handle(handle: Any) -> ProductCategory:
    """Categorize a review by its storefront product handle"""
    h = clean_field(handle).lower()
    if not h:
        return ProductCategory.OTHER
    if "easystretch" in h:
        return ProductCategory.EASY_STRETCH
    # ankle-compression contains "compression"; test it first
    if "ankle-compression" in h:
        return ProductCategory.ANKLE_COMPRESSION
    if "compression" in h:
        return ProductCategory.COMPRESSION
    return ProductCategory.OTHER


def category_from_source_name(name: str) -> ProductCategory:
    """Infer the product category of a review export from its file name"""
    lower = name.lower()
    if "easystretch" in lower or "easy stretch" in lower:
        return ProductCategory.EASY_STRETCH
    if "ankle compression" in lower or "ankle-compression" in lower:
        return ProductCategory.ANKLE_COMPRESSION
    if "compression" in lower:
        return ProductCategory.COMPRESSION
    return ProductCategory.OTHER


def parse_amount(value: Any) -> Decimal:
    """
    Parse a currency amount exactly.

    Empty values are zero. Currency symbols and thousands separators are
    removed.

    Raises:
        ValueError: If the value is not a finite number
    """
    if value is None:
        return Decimal(0)
    if isinstance(value, (int, float)):
        value = str(value)
    cleaned = _CURRENCY_PATTERN.sub("", clean_field(value))
    if not cleaned:
        return Decimal(0)
    try:
        amount = Decimal(cleaned)
    except InvalidOperation as e:
        raise ValueError(f"Unparseable amount: {value!r}") from e
    if not amount.is_finite():
        raise ValueError(f"Non-finite amount: {value!r}")
    return amount


def parse_count(value: Any) -> int:
    """
    Parse a quantity or order count. Integral decimals such as "2.0" are
    accepted; empty values are zero.

    Raises:
        ValueError: If the value is not an integral number
    """
    amount = parse_amount(value)
    if amount != amount.to_integral_value():
        raise ValueError(f"Non-integral count: {value!r}")
    return int(amount)


def parse_rating(value: Any) -> int:
    """Parse a star rating, truncating fractions. Anything unusable is 0 (unrated)."""
    try:
        return max(int(parse_amount(value)), 0)
    except ValueError:
        return 0


def parse_flag(value: Any) -> bool:
    """Parse an exported boolean column ("TRUE"/"true")"""
    if isinstance(value, bool):
        return value
    return clean_field(value).upper() == "TRUE"
