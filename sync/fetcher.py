"""
Source fetchers for the awesome-list markdown.

GitHubReadmeFetcher performs a conditional request against GitHub:
1. raw.githubusercontent.com (cheap, returns plain text)
2. GitHub contents API as fallback (base64 JSON payload)

Both honour If-None-Match so an unchanged README answers 304 and the sync
cycle can stop early. LocalFileFetcher reads a file from disk for offline runs.

Usage:
    from sync.fetcher import GitHubReadmeFetcher

    fetcher = GitHubReadmeFetcher()
    result = fetcher(previous_fingerprint='"abc123"', force=False)
    if result.modified:
        print(len(result.text))
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional

import requests

logger = logging.getLogger(__name__)

# ============================================================================
# Configuration from environment variables
# ============================================================================

AWESOME_RAW_URL = os.environ.get(
    "AWESOME_RAW_URL",
    "https://raw.githubusercontent.com/sindresorhus/awesome/main/readme.md",
)
AWESOME_API_URL = os.environ.get(
    "AWESOME_API_URL",
    "https://api.github.com/repos/sindresorhus/awesome/contents/readme.md?ref=main",
)
GITHUB_TOKEN = os.environ.get("GITHUB_TOKEN", "").strip()
FETCH_TIMEOUT = float(os.environ.get("FETCH_TIMEOUT", "30"))
USER_AGENT = "awesome-catalog-sync-bot"


class SourceFetchError(RuntimeError):
    """Exception raised when the source document cannot be fetched."""
    pass


@dataclass
class FetchResult:
    """Outcome of one conditional fetch.

    text is empty when modified is False.
    """
    text: str
    fingerprint: Optional[str]
    modified: bool
    source: str


class GitHubReadmeFetcher:
    """Fetch the awesome-list README from GitHub with ETag support."""

    def __init__(
        self,
        raw_url: str = AWESOME_RAW_URL,
        api_url: str = AWESOME_API_URL,
        token: Optional[str] = None,
        timeout: float = FETCH_TIMEOUT,
        session: Optional[requests.Session] = None,
    ):
        """Initialize fetcher.

        Args:
            raw_url: Raw content URL tried first
            api_url: GitHub contents API URL used as fallback
            token: GitHub token (default: GITHUB_TOKEN env variable)
            timeout: Request timeout in seconds
            session: Optional requests session (for connection reuse or tests)
        """
        self.raw_url = raw_url
        self.api_url = api_url
        self.token = GITHUB_TOKEN if token is None else token
        self.timeout = timeout
        self.session = session or requests.Session()

    def __call__(self, previous_fingerprint: Optional[str] = None, force: bool = False) -> FetchResult:
        return self.fetch(previous_fingerprint, force)

    def fetch(self, previous_fingerprint: Optional[str] = None, force: bool = False) -> FetchResult:
        """Fetch the README, conditionally unless force is set.

        Args:
            previous_fingerprint: ETag stored by the last successful sync
            force: Skip If-None-Match and always download

        Returns:
            FetchResult

        Raises:
            SourceFetchError: On network errors, non-2xx answers from both
                endpoints, or an unexpected API payload
        """
        headers = self._headers(None if force else previous_fingerprint)

        raw_response = self._get(self.raw_url, headers)
        etag = raw_response.headers.get("etag")
        if raw_response.status_code == 304:
            logger.info("Source not modified (raw)")
            return FetchResult(text="", fingerprint=etag, modified=False, source="raw")
        if raw_response.ok:
            return FetchResult(text=raw_response.text, fingerprint=etag, modified=True, source="raw")

        logger.warning(
            f"Raw fetch failed with {raw_response.status_code}, falling back to GitHub API"
        )
        api_response = self._get(self.api_url, headers)
        api_etag = api_response.headers.get("etag")
        if api_response.status_code == 304:
            logger.info("Source not modified (api)")
            return FetchResult(text="", fingerprint=api_etag, modified=False, source="api")
        if not api_response.ok:
            raise SourceFetchError(
                f"GitHub fetch failed: {api_response.status_code} {api_response.reason} "
                f"{api_response.text[:200]}"
            )

        return FetchResult(
            text=_decode_contents_payload(api_response),
            fingerprint=api_etag,
            modified=True,
            source="api",
        )

    def _headers(self, etag: Optional[str]) -> Dict[str, str]:
        headers = {"User-Agent": USER_AGENT}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        if etag:
            headers["If-None-Match"] = etag
        return headers

    def _get(self, url: str, headers: Dict[str, str]) -> requests.Response:
        try:
            return self.session.get(url, headers=headers, timeout=self.timeout)
        except requests.RequestException as exc:
            raise SourceFetchError(f"Request to {url} failed: {exc}") from exc


def _decode_contents_payload(response: requests.Response) -> str:
    """Decode the base64 README body of a GitHub contents API response."""
    try:
        payload = response.json()
    except ValueError as exc:
        raise SourceFetchError("GitHub API returned invalid JSON") from exc

    if (
        not isinstance(payload, dict)
        or not payload.get("content")
        or payload.get("encoding") != "base64"
    ):
        raise SourceFetchError("Unexpected GitHub API response shape for README content.")

    try:
        return base64.b64decode(payload["content"]).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError) as exc:
        raise SourceFetchError(f"Failed to decode README content: {exc}") from exc


class LocalFileFetcher:
    """Read markdown from a local file; the fingerprint is its SHA-256."""

    def __init__(self, path: Path):
        self.path = Path(path)

    def __call__(self, previous_fingerprint: Optional[str] = None, force: bool = False) -> FetchResult:
        if not self.path.exists():
            raise SourceFetchError(f"Source file not found: {self.path}")

        data = self.path.read_bytes()
        fingerprint = hashlib.sha256(data).hexdigest()
        if not force and previous_fingerprint == fingerprint:
            return FetchResult(text="", fingerprint=fingerprint, modified=False, source="file")

        try:
            text = data.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise SourceFetchError(f"Source file is not UTF-8: {self.path}") from exc
        return FetchResult(text=text, fingerprint=fingerprint, modified=True, source="file")
