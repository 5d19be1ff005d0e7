"""
Key-value persistence for the catalog and its source fingerprint.

Backends:
- MemoryCatalogStore   in-process dictionary
- FileCatalogStore     catalog.json + etag.txt in a directory
- UpstashCatalogStore  Upstash / Vercel KV over the Redis REST protocol

All stores expose the same four operations:
    get() -> raw value | None
    put(catalog)
    get_fingerprint() -> str | None
    put_fingerprint(fingerprint)

get() returns the decoded JSON value as stored; callers run it through
catalog.normalize_catalog() before use.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, Optional
from urllib.parse import quote

import requests

from catalog import Catalog

logger = logging.getLogger(__name__)

# ============================================================================
# Configuration from environment variables
# ============================================================================

CATALOG_KEY = "awesome:catalog"
ETAG_KEY = "awesome:etag"

BASE_DIR = Path(__file__).resolve().parents[1]
CATALOG_DIR = Path(os.environ.get("CATALOG_DIR", str(BASE_DIR / "output" / "catalog")))
STORE_TIMEOUT = float(os.environ.get("STORE_TIMEOUT", "10"))


class StoreError(RuntimeError):
    """Exception raised when the catalog store fails or is misconfigured."""
    pass


class CatalogStore:
    """Interface shared by all catalog stores."""

    def get(self) -> Optional[Any]:
        raise NotImplementedError

    def put(self, catalog: Catalog) -> None:
        raise NotImplementedError

    def get_fingerprint(self) -> Optional[str]:
        raise NotImplementedError

    def put_fingerprint(self, fingerprint: str) -> None:
        raise NotImplementedError


class MemoryCatalogStore(CatalogStore):
    """Store kept in process memory."""

    def __init__(self, catalog: Optional[Any] = None, fingerprint: Optional[str] = None):
        self.data: Dict[str, Any] = {}
        if catalog is not None:
            self.data[CATALOG_KEY] = catalog.to_dict() if isinstance(catalog, Catalog) else catalog
        if fingerprint is not None:
            self.data[ETAG_KEY] = fingerprint

    def get(self) -> Optional[Any]:
        return self.data.get(CATALOG_KEY)

    def put(self, catalog: Catalog) -> None:
        # Round-trip through JSON so callers never share objects with the store
        self.data[CATALOG_KEY] = json.loads(json.dumps(catalog.to_dict()))

    def get_fingerprint(self) -> Optional[str]:
        return self.data.get(ETAG_KEY)

    def put_fingerprint(self, fingerprint: str) -> None:
        self.data[ETAG_KEY] = fingerprint


class FileCatalogStore(CatalogStore):
    """File-based store.

    File structure:
        <catalog_dir>/
            catalog.json   - serialized catalog
            etag.txt       - source fingerprint
    """

    def __init__(self, catalog_dir: Path = CATALOG_DIR):
        """Initialize file store.

        Args:
            catalog_dir: Directory to store catalog (e.g., output/catalog)
        """
        self.catalog_dir = Path(catalog_dir)
        self.catalog_file = self.catalog_dir / "catalog.json"
        self.etag_file = self.catalog_dir / "etag.txt"

    def get(self) -> Optional[Any]:
        if not self.catalog_file.exists():
            return None
        try:
            return json.loads(self.catalog_file.read_text(encoding='utf-8'))
        except ValueError:
            logger.warning(f"Catalog file is not valid JSON: {self.catalog_file}")
            return None
        except OSError as exc:
            raise StoreError(f"Failed to read {self.catalog_file}: {exc}") from exc

    def put(self, catalog: Catalog) -> None:
        self._write_atomic(
            self.catalog_file,
            json.dumps(catalog.to_dict(), indent=2, ensure_ascii=False),
        )

    def get_fingerprint(self) -> Optional[str]:
        if not self.etag_file.exists():
            return None
        try:
            return self.etag_file.read_text(encoding='utf-8').strip() or None
        except OSError as exc:
            raise StoreError(f"Failed to read {self.etag_file}: {exc}") from exc

    def put_fingerprint(self, fingerprint: str) -> None:
        self._write_atomic(self.etag_file, fingerprint)

    def _write_atomic(self, path: Path, content: str) -> None:
        """Write through a temp file and rename so readers never see partial data."""
        try:
            self.catalog_dir.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self.catalog_dir, prefix=f".{path.name}.")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    handle.write(content)
                os.replace(tmp_name, path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as exc:
            raise StoreError(f"Failed to write {path}: {exc}") from exc


class UpstashCatalogStore(CatalogStore):
    """Upstash Redis REST store (also serves Vercel KV).

    Protocol:
        GET  <url>/get/<key>          -> {"result": "<string>" | null}
        POST <url>/set/<key>  body    -> {"result": "OK"}
    """

    def __init__(
        self,
        url: str,
        token: str,
        timeout: float = STORE_TIMEOUT,
        session: Optional[requests.Session] = None,
    ):
        if not url or not token:
            raise StoreError(
                "KV REST URL or TOKEN is missing. Ensure KV is connected and envs are set."
            )
        self.url = url.rstrip("/")
        self.token = token
        self.timeout = timeout
        self.session = session or requests.Session()

    def get(self) -> Optional[Any]:
        value = self._get_string(CATALOG_KEY)
        if value is None:
            return None
        try:
            return json.loads(value)
        except ValueError:
            logger.warning(f"Stored value under '{CATALOG_KEY}' is not valid JSON")
            return None

    def put(self, catalog: Catalog) -> None:
        self._set_string(CATALOG_KEY, json.dumps(catalog.to_dict(), ensure_ascii=False))

    def get_fingerprint(self) -> Optional[str]:
        return self._get_string(ETAG_KEY)

    def put_fingerprint(self, fingerprint: str) -> None:
        self._set_string(ETAG_KEY, fingerprint)

    def _get_string(self, key: str) -> Optional[str]:
        response = self._request("GET", f"/get/{quote(key, safe='')}")
        try:
            result = response.json().get("result")
        except (ValueError, AttributeError) as exc:
            raise StoreError(f"KV returned an unexpected payload for '{key}'") from exc
        return result or None

    def _set_string(self, key: str, value: str) -> None:
        self._request("POST", f"/set/{quote(key, safe='')}", data=value.encode("utf-8"))

    def _request(self, method: str, path: str, data: Optional[bytes] = None) -> requests.Response:
        try:
            response = self.session.request(
                method,
                f"{self.url}{path}",
                data=data,
                headers={"Authorization": f"Bearer {self.token}"},
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise StoreError(f"KV request failed: {exc}") from exc

        if not response.ok:
            raise StoreError(
                f"KV fetch failed: {response.status_code} {response.reason} {response.text[:200]}"
            )
        return response


def build_store_from_env() -> CatalogStore:
    """Pick a store from environment variables.

    Upstash when KV_REST_API_URL/UPSTASH_REDIS_REST_URL and the matching
    token are set, otherwise a FileCatalogStore in CATALOG_DIR.

    Raises:
        StoreError: If only one of URL / token is configured
    """
    url = (os.environ.get("KV_REST_API_URL") or os.environ.get("UPSTASH_REDIS_REST_URL") or "").strip()
    token = (os.environ.get("KV_REST_API_TOKEN") or os.environ.get("UPSTASH_REDIS_REST_TOKEN") or "").strip()

    if url or token:
        logger.info("Using Upstash KV catalog store")
        return UpstashCatalogStore(url, token)

    logger.info(f"Using file catalog store at {CATALOG_DIR}")
    return FileCatalogStore(CATALOG_DIR)
