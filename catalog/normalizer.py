"""
Catalog normalizer.

Repairs a stored catalog value into the canonical Catalog shape. The value may
have been written by an older schema:

    Version 2 (canonical):
        {"tree": [...], "list": [...], "meta": {"updatedAt", "totalItems", "version"}}

    Legacy list shape:
        {"categories": [{"title", "items", "children"}], "updatedAt": "..."}

    Version 1 mapping shape:
        {"categories": {"Tools": {"title": "Tools", "items": [...],
                                  "subcategories": {"Editors": [...]}}},
         "meta": {...}}

Decoding is tried in that order; anything without a usable "tree" or
"categories" field is unrecognizable and yields None.
"""

from __future__ import annotations

import json
import logging
import math
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Set

from .models import (
    CURRENT_VERSION,
    Catalog,
    CatalogMeta,
    Category,
    Item,
    flatten_tree,
    utc_now_iso,
)
from .slugger import Slugger

logger = logging.getLogger(__name__)


def normalize_catalog(raw: Any) -> Optional[Catalog]:
    """Normalize a stored catalog value into a canonical Catalog.

    Args:
        raw: Decoded JSON value (dict), or a JSON string/bytes

    Returns:
        Catalog object, or None if the value has no recognizable hierarchy

    Example:
        >>> catalog = normalize_catalog({
        ...     "categories": [{"title": "Tools", "items": [
        ...         {"title": "Git", "url": "https://git-scm.com/"}]}],
        ...     "updatedAt": "2023-01-01T00:00:00Z",
        ... })
        >>> catalog.meta.updated_at, len(catalog.list)
        ('2023-01-01T00:00:00Z', 1)
    """
    data = _decode_json(raw)
    if not isinstance(data, Mapping):
        return None

    tree = _decode_canonical_tree(data)
    if tree is None:
        tree = _decode_legacy_tree(data)
    if tree is None:
        logger.debug("Stored value has no recognizable catalog hierarchy")
        return None

    items = _decode_list(data.get("list"), tree)
    if not items:
        items = flatten_tree(tree)

    meta = data.get("meta") if isinstance(data.get("meta"), Mapping) else {}
    return Catalog(tree=tree, list=items, meta=_compose_meta(meta, data, items))


def _decode_json(raw: Any) -> Any:
    if isinstance(raw, (bytes, bytearray)):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError:
            return None
    if isinstance(raw, str):
        try:
            return json.loads(raw)
        except ValueError:
            return None
    return raw


def _is_nonempty_sequence(value: Any) -> bool:
    return isinstance(value, list) and len(value) > 0


def _decode_canonical_tree(data: Mapping) -> Optional[List[Category]]:
    if not _is_nonempty_sequence(data.get("tree")):
        return None
    return _decode_tree(data["tree"])


def _decode_legacy_tree(data: Mapping) -> Optional[List[Category]]:
    categories = data.get("categories")
    if _is_nonempty_sequence(categories):
        return _decode_tree(categories)
    if isinstance(categories, Mapping) and categories:
        return _decode_tree(_v1_category_nodes(categories))
    return None


def _decode_tree(nodes: List[Any]) -> List[Category]:
    """Decode top-level nodes with one slug namespace for the whole tree.

    Stored slugs are reserved before any slug is generated, so a generated
    slug never takes a stored one. A stored slug seen a second time is
    replaced with a fresh one.
    """
    slugger = Slugger()
    _reserve_stored_slugs(nodes, slugger)
    return _decode_nodes(nodes, slugger, claimed=set())


def _reserve_stored_slugs(nodes: List[Any], slugger: Slugger) -> None:
    for node in nodes:
        if not isinstance(node, Mapping):
            continue
        slug = node.get("slug")
        if isinstance(slug, str) and slug:
            slugger.reserve(slug)
        _reserve_stored_slugs(_child_nodes(node), slugger)


def _decode_nodes(
    nodes: List[Any],
    slugger: Slugger,
    claimed: Set[str],
    parent: Optional[Category] = None,
    root_title: Optional[str] = None,
) -> List[Category]:
    """Decode category dicts recursively, dropping nodes without a title."""
    categories: List[Category] = []
    for node in nodes:
        if not isinstance(node, Mapping) or not isinstance(node.get("title"), str):
            continue
        title = node["title"].strip()
        if not title:
            continue

        category = Category(title=title, slug=_node_slug(node, title, parent, slugger, claimed))
        top_title = root_title or title
        category.items = _decode_items(
            node.get("items"),
            default_category=top_title,
            default_subcategory=title if root_title else None,
        )
        category.children = _decode_nodes(
            _child_nodes(node), slugger, claimed, category, top_title
        )
        categories.append(category)
    return categories


def _v1_category_nodes(categories: Mapping) -> List[Dict]:
    """Version 1 stored categories as {title: node}."""
    return [
        {**node, "title": node.get("title") or key}
        for key, node in categories.items()
        if isinstance(node, Mapping)
    ]


def _child_nodes(node: Mapping) -> List[Any]:
    children = node.get("children")
    if isinstance(children, list):
        return children
    return _v1_subcategory_nodes(node.get("subcategories"))


def _v1_subcategory_nodes(subcategories: Any) -> List[Dict]:
    """Version 1 stored subcategories as {title: [items]}."""
    if isinstance(subcategories, Mapping):
        return [
            {"title": title, "items": items}
            for title, items in subcategories.items()
            if isinstance(title, str)
        ]
    if isinstance(subcategories, list):
        return subcategories
    return []


def _node_slug(
    node: Mapping,
    title: str,
    parent: Optional[Category],
    slugger: Slugger,
    claimed: Set[str],
) -> str:
    slug = node.get("slug")
    if isinstance(slug, str) and slug:
        if slug not in claimed:
            claimed.add(slug)
            return slug
        logger.debug(f"Duplicate stored slug '{slug}' for '{title}', issuing a new one")
        slug = slugger.slug(slug)
    elif parent is not None:
        slug = slugger.slug(f"{parent.title}-{title}")
    else:
        slug = slugger.slug(title)
    claimed.add(slug)
    return slug


def _decode_list(values: Any, tree: List[Category]) -> List[Item]:
    """Decode the stored flat list, keeping only items placed in the tree.

    An item whose category names no top-level category takes its placement
    from the tree item with the same url; without one it is dropped.
    """
    titles = {category.title for category in tree}
    placed: Dict[str, Item] = {}
    for item in flatten_tree(tree):
        placed.setdefault(item.url, item)

    items = []
    for item in _decode_items(values, default_category=""):
        if item.category not in titles:
            match = placed.get(item.url)
            if match is None:
                logger.debug(f"Dropping list item outside the tree: {item.title}")
                continue
            item.category = match.category
            item.subcategory = match.subcategory
        items.append(item)
    return items


def _decode_items(
    values: Any,
    default_category: str,
    default_subcategory: Optional[str] = None,
) -> List[Item]:
    if not isinstance(values, list):
        return []
    items = []
    for value in values:
        item = _decode_item(value, default_category, default_subcategory)
        if item is not None:
            items.append(item)
    return items


def _decode_item(
    value: Any,
    default_category: str,
    default_subcategory: Optional[str],
) -> Optional[Item]:
    if not isinstance(value, Mapping):
        return None
    title = value.get("title")
    url = value.get("url")
    if not isinstance(title, str) or not title.strip() or not isinstance(url, str):
        return None

    description = value.get("description")
    if isinstance(description, str):
        description = description.strip() or None
    else:
        description = None
    category = value.get("category")
    subcategory = value.get("subcategory")
    return Item(
        title=title.strip(),
        url=url,
        description=description,
        category=category if isinstance(category, str) else default_category,
        subcategory=subcategory if isinstance(subcategory, str) else default_subcategory,
    )


def _compose_meta(meta: Mapping, data: Mapping, items: List[Item]) -> CatalogMeta:
    updated_at = _iso_timestamp(meta.get("updatedAt")) or _iso_timestamp(data.get("updatedAt"))

    total_items = meta.get("totalItems")
    if not _is_number(total_items) or total_items < 0:
        total_items = len(items)

    version = meta.get("version")
    if not _is_number(version):
        version = CURRENT_VERSION

    return CatalogMeta(
        updated_at=updated_at or utc_now_iso(),
        total_items=int(total_items),
        version=int(version),
    )


def _is_number(value: Any) -> bool:
    """True for finite ints/floats (bool excluded)."""
    return (
        isinstance(value, (int, float))
        and not isinstance(value, bool)
        and math.isfinite(value)
    )


def _iso_timestamp(value: Any) -> Optional[str]:
    """Return value unchanged if it is an ISO-8601 timestamp string."""
    if not isinstance(value, str) or not value.strip():
        return None
    try:
        datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except ValueError:
        return None
    return value
