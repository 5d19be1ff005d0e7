"""
Term search over the catalog's flat item list.

Matching rules:
1. The query is split on whitespace into lower-cased terms
2. An item matches when EVERY term is a substring of its haystack
   (title, description, category, subcategory joined by spaces)
3. Results keep catalog list order; there is no scoring

Usage:
    from retrieval.search import search_items

    results = search_items(catalog, "fast text", limit=20)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from catalog import Catalog, Item

DEFAULT_LIMIT = 20
HIGHLIGHT_FIELDS = ("title", "description")


def query_terms(query: Optional[str]) -> List[str]:
    """Split a query into lower-cased terms."""
    return (query or "").lower().split()


def item_haystack(item: Item) -> str:
    parts = [item.title, item.description, item.category, item.subcategory]
    return " ".join(part for part in parts if part).lower()


def matches_terms(item: Item, terms: List[str]) -> bool:
    """Check if an item matches all search terms."""
    haystack = item_haystack(item)
    return all(term in haystack for term in terms)


def search_items(catalog: Catalog, query: str, limit: int = DEFAULT_LIMIT) -> List[Item]:
    """Search catalog items with conjunctive substring matching.

    Args:
        catalog: Catalog to search
        query: Whitespace-separated search terms
        limit: Maximum number of results (positive)

    Returns:
        Matching items in catalog order; empty for a blank query

    Raises:
        ValueError: If limit is not positive

    Example:
        >>> [item.title for item in search_items(catalog, "code editor")]
        ['VSCode']
    """
    if limit < 1:
        raise ValueError(f"limit must be a positive integer, got: {limit}")

    terms = query_terms(query)
    if not terms:
        return []

    results: List[Item] = []
    for item in catalog.list:
        if matches_terms(item, terms):
            results.append(item)
            if len(results) >= limit:
                break
    return results


@dataclass
class MatchSpan:
    """Where query terms occur in one item field.

    indices are (start, end) pairs with an inclusive end.
    """
    field: str
    value: str
    indices: List[Tuple[int, int]] = field(default_factory=list)

    def to_dict(self) -> Dict:
        return {
            "field": self.field,
            "indices": [list(pair) for pair in self.indices],
            "value": self.value,
        }


def find_matches(item: Item, query: str) -> List[MatchSpan]:
    """Locate every term occurrence in an item's title and description.

    Args:
        item: Matched item
        query: Original query string

    Returns:
        One MatchSpan per field that contains at least one term
    """
    terms = query_terms(query)
    spans = []
    for field_name in HIGHLIGHT_FIELDS:
        value = getattr(item, field_name)
        if not value:
            continue
        indices = _term_indices(value.lower(), terms)
        if indices:
            spans.append(MatchSpan(field=field_name, value=value, indices=indices))
    return spans


def _term_indices(text: str, terms: List[str]) -> List[Tuple[int, int]]:
    """Sorted, merged (start, end) ranges of term occurrences in text."""
    ranges = []
    for term in terms:
        start = text.find(term)
        while start != -1:
            ranges.append((start, start + len(term) - 1))
            start = text.find(term, start + 1)

    merged: List[Tuple[int, int]] = []
    for start, end in sorted(ranges):
        if merged and start <= merged[-1][1] + 1:
            merged[-1] = (merged[-1][0], max(merged[-1][1], end))
        else:
            merged.append((start, end))
    return merged
