"""Sender rule storage and matching."""

from .matcher import find_stale_categories, match_category
from .store import RuleStore, table_from_dict

__all__ = [
    "RuleStore",
    "find_stale_categories",
    "match_category",
    "table_from_dict",
]
