"""
Structural parser for awesome-list markdown.

Tokenizes the document with markdown-it-py and reduces the top-level block
stream to the events the catalog builder cares about:

- HeadingEvent(level, text)   for level-2 and level-3 headings
- LinkListEvent(entries)      for each top-level bullet list holding links

A list entry is taken from the first paragraph of a list item when that
paragraph starts with a link:

    - [VSCode](https://code.visualstudio.com/) - Free code editor
      ^ title  ^ url                             ^ trailing text

Anything else (other heading levels, prose, tables, block quotes, nested
lists, items without a leading link) is ignored.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Union

from markdown_it import MarkdownIt
from markdown_it.token import Token

logger = logging.getLogger(__name__)

STRUCTURAL_HEADING_LEVELS = (2, 3)
TEXT_TOKEN_TYPES = ("text", "text_special", "code_inline")
BREAK_TOKEN_TYPES = ("softbreak", "hardbreak")

_markdown = MarkdownIt("commonmark").enable(["table", "strikethrough"])


class MarkdownParseError(ValueError):
    """Exception raised when a document cannot be tokenized as markdown."""
    pass


@dataclass
class LinkEntry:
    title: str
    url: str
    trailing_text: str = ""


@dataclass
class HeadingEvent:
    level: int
    text: str


@dataclass
class LinkListEvent:
    entries: List[LinkEntry] = field(default_factory=list)


BlockEvent = Union[HeadingEvent, LinkListEvent]


def tokenize(content: str) -> List[Token]:
    """Tokenize markdown into markdown-it block tokens.

    Raises:
        MarkdownParseError: If content is not text or the tokenizer fails
    """
    if not isinstance(content, str):
        raise MarkdownParseError(
            f"Markdown content must be str, got: {type(content).__name__}"
        )
    try:
        return _markdown.parse(content.lstrip("\ufeff"))
    except Exception as exc:
        raise MarkdownParseError(f"Failed to tokenize markdown: {exc}") from exc


def parse_blocks(content: str) -> List[BlockEvent]:
    """Parse markdown into an ordered list of structural events.

    Args:
        content: Full markdown document

    Returns:
        HeadingEvent / LinkListEvent objects in document order

    Raises:
        MarkdownParseError: If the document cannot be tokenized

    Example:
        >>> events = parse_blocks("## Tools\\n- [Git](https://git-scm.com/) - VCS\\n")
        >>> [type(e).__name__ for e in events]
        ['HeadingEvent', 'LinkListEvent']
    """
    tokens = tokenize(content)
    events: List[BlockEvent] = []

    i = 0
    while i < len(tokens):
        token = tokens[i]

        # Only top-level blocks carry structure
        if token.level != 0:
            i += 1
            continue

        if token.type == "heading_open":
            level = int(token.tag[1:])
            if level in STRUCTURAL_HEADING_LEVELS:
                inline = tokens[i + 1] if i + 1 < len(tokens) else None
                text = _inline_text(inline.children or []) if inline is not None else ""
                events.append(HeadingEvent(level=level, text=text.strip()))
            i += 1
            continue

        if token.type == "bullet_list_open":
            end = _find_block_close(tokens, i)
            entries = _collect_entries(tokens[i + 1:end], token.level + 1)
            if entries:
                events.append(LinkListEvent(entries=entries))
            i = end + 1
            continue

        i += 1

    return events


def _find_block_close(tokens: Sequence[Token], open_index: int) -> int:
    """Index of the close token matching tokens[open_index]."""
    opener = tokens[open_index]
    close_type = opener.type.replace("_open", "_close")
    for j in range(open_index + 1, len(tokens)):
        if tokens[j].type == close_type and tokens[j].level == opener.level:
            return j
    return len(tokens) - 1


def _collect_entries(list_tokens: Sequence[Token], item_level: int) -> List[LinkEntry]:
    """Build link entries from the tokens inside one bullet list."""
    entries: List[LinkEntry] = []
    for index, token in enumerate(list_tokens):
        if token.type != "list_item_open" or token.level != item_level:
            continue
        entry = _entry_from_item(list_tokens, index)
        if entry is None:
            logger.debug(f"Skipping list item without a leading link (line {_line_of(token)})")
            continue
        entries.append(entry)
    return entries


def _entry_from_item(list_tokens: Sequence[Token], item_index: int) -> Optional[LinkEntry]:
    """Return the link entry of one list item, or None if it has none.

    The item's first child must be a paragraph whose first non-blank
    inline node is a link with a non-empty URL.
    """
    if item_index + 2 >= len(list_tokens):
        return None
    paragraph = list_tokens[item_index + 1]
    inline = list_tokens[item_index + 2]
    if paragraph.type != "paragraph_open" or inline.type != "inline":
        return None

    children = inline.children or []
    start = 0
    while (
        start < len(children)
        and children[start].type == "text"
        and not children[start].content.strip()
    ):
        start += 1
    if start >= len(children) or children[start].type != "link_open":
        return None

    url = (children[start].attrGet("href") or "").strip()
    if not url:
        return None

    close = start + 1
    while close < len(children) and children[close].type != "link_close":
        close += 1

    return LinkEntry(
        title=_inline_text(children[start + 1:close]).strip(),
        url=url,
        trailing_text=_inline_text(children[close + 1:]),
    )


def _inline_text(children: Sequence[Token]) -> str:
    """Concatenate the visible text of inline tokens (images and HTML excluded)."""
    parts = []
    for child in children:
        if child.type in TEXT_TOKEN_TYPES:
            parts.append(child.content)
        elif child.type in BREAK_TOKEN_TYPES:
            parts.append(" ")
    return "".join(parts)


def _line_of(token: Token) -> str:
    return str(token.map[0] + 1) if token.map else "?"
