"""
Retrieval package for catalog search.

Components:
- search: conjunctive term matching over the flat item list
- lookup: category breadcrumb path by slug
"""

from .search import search_items, find_matches, MatchSpan, DEFAULT_LIMIT
from .lookup import find_category_path, flatten_category_items

__all__ = [
    'search_items',
    'find_matches',
    'MatchSpan',
    'DEFAULT_LIMIT',
    'find_category_path',
    'flatten_category_items',
]
