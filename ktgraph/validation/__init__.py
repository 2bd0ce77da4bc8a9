"""
Pure schema checks shared by the document store and the XML codec.
"""

from .schema_validator import (
    ADDON_CODES,
    DISTINCT_TYPE_CODES,
    RELATION_TOKENS,
    is_valid_addon_code,
    is_valid_distinct_type,
    is_valid_relation,
    parse_addon_types,
    parse_distinct_type,
    parse_relation,
)

__all__ = [
    "ADDON_CODES",
    "DISTINCT_TYPE_CODES",
    "RELATION_TOKENS",
    "is_valid_addon_code",
    "is_valid_distinct_type",
    "is_valid_relation",
    "parse_addon_types",
    "parse_distinct_type",
    "parse_relation",
]
