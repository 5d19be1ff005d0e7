# tests/conftest.py
"""Shared pytest fixtures and test helpers."""

from typing import List, Optional, Tuple

import pytest

from catalog import parse_awesome_list
from sync import FetchResult

SAMPLE_MARKDOWN = """
# Awesome Dev

## Development Tools

A curated list of awesome development tools.

### Code Editors

- [VSCode](https://code.visualstudio.com/) - Free and open source code editor
- [Sublime Text](https://www.sublimetext.com/) - A sophisticated text editor for code

### Version Control

- [Git](https://git-scm.com/) - Distributed version control system
- [GitHub Desktop](https://desktop.github.com/) - GitHub Desktop client

## Learning Resources

### Tutorials

- [FreeCodeCamp](https://www.freecodecamp.org/) - Learn to code for free
- [MDN Web Docs](https://developer.mozilla.org/) - Resources for developers, by developers
"""

SEARCH_MARKDOWN = """
## Tools
### Editors
- [VSCode](https://code.visualstudio.com/) - Visual Studio Code editor
- [Sublime](https://www.sublimetext.com/) - Fast text editor
### Git Tools
- [GitHub](https://github.com) - Code hosting platform
"""


@pytest.fixture
def sample_catalog():
    """Catalog parsed from SAMPLE_MARKDOWN (2 categories, 6 items)."""
    return parse_awesome_list(SAMPLE_MARKDOWN)


@pytest.fixture
def search_catalog():
    """Catalog parsed from SEARCH_MARKDOWN (1 category, 3 items)."""
    return parse_awesome_list(SEARCH_MARKDOWN)


class FakeFetcher:
    """Fetcher returning queued results and recording its calls.

    Usage:
        fetcher = FakeFetcher([FetchResult("## A", '"e1"', True, "raw")])
        fetcher(None, False)
        assert fetcher.calls == [(None, False)]
    """

    def __init__(self, results: List[FetchResult]):
        self.results = list(results)
        self.calls: List[Tuple[Optional[str], bool]] = []

    def __call__(self, previous_fingerprint: Optional[str], force: bool) -> FetchResult:
        self.calls.append((previous_fingerprint, force))
        if len(self.results) > 1:
            return self.results.pop(0)
        return self.results[0]


@pytest.fixture
def fetch_result_factory():
    """Factory for FetchResult instances with sensible defaults."""
    def _make_fetch_result(
        text: str = SEARCH_MARKDOWN,
        fingerprint: Optional[str] = '"etag-1"',
        modified: bool = True,
        source: str = "raw",
    ) -> FetchResult:
        return FetchResult(text=text, fingerprint=fingerprint, modified=modified, source=source)
    return _make_fetch_result
