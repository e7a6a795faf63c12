"""
adapters/repo/client.py — plugin repository HTTP client.

Endpoints (relative to the repository base URL):
    GET   <base>             catalog document: list of plugin descriptors
    POST  <base>stats        usage stats (only when explicitly requested)
    GET   <downloadUrl>      plugin artifact, absolute URL from the catalog

Uses ``httpx.Client`` with one timeout for every request.
"""

from __future__ import annotations

import logging
import os
from typing import Callable, Optional

import httpx

from core.errors import ApplyFailure, CatalogError

logger = logging.getLogger(__name__)

_CHUNK = 64 * 1024


class RepoClient:
    """HTTP client for the plugin repository."""

    def __init__(self, base_url: str, timeout: float = 30.0,
                 transport: Optional[httpx.BaseTransport] = None):
        self.base_url = base_url if base_url.endswith("/") else base_url + "/"
        self.timeout = timeout
        self._transport = transport

    def _client(self) -> httpx.Client:
        return httpx.Client(timeout=self.timeout, follow_redirects=True,
                            transport=self._transport)

    # ── catalog ───────────────────────────────────────────────────────────

    def fetch_catalog(self, installed: Optional[dict[str, str]] = None) -> list[dict]:
        """GET the catalog document.

        When ``installed`` is given, the installed ``id=version`` pairs are
        reported to the repository with the request.
        """
        params = {}
        if installed is not None:
            params["installed"] = ",".join(
                f"{pid}={ver}" for pid, ver in sorted(installed.items()))

        logger.debug("Fetching plugin catalog from %s", self.base_url)
        try:
            with self._client() as client:
                resp = client.get(self.base_url, params=params)
                resp.raise_for_status()
                data = resp.json()
        except httpx.TimeoutException:
            raise CatalogError(
                f"Timed out after {self.timeout:.0f}s loading {self.base_url}")
        except httpx.HTTPStatusError as e:
            raise CatalogError(
                f"Repository returned HTTP {e.response.status_code}: {self.base_url}")
        except httpx.HTTPError as e:
            raise CatalogError(f"Failed to load repository {self.base_url}: {e}")
        except ValueError as e:
            raise CatalogError(f"Repository did not return JSON: {e}")

        if not isinstance(data, list):
            raise CatalogError("Repository document must be a list of plugins")
        logger.info("Loaded %d plugin descriptors", len(data))
        return data

    # ── downloads ─────────────────────────────────────────────────────────

    def download(self, url: str, dest: str,
                 on_progress: Optional[Callable[[int], None]] = None) -> str:
        """Stream ``url`` into ``dest``.

        ``on_progress(percent)`` is called whenever the whole-number percent
        changes, if the server sends a content length.
        """
        os.makedirs(os.path.dirname(dest) or ".", exist_ok=True)
        tmp = dest + ".part"
        try:
            with self._client() as client:
                with client.stream("GET", url) as resp:
                    resp.raise_for_status()
                    total = int(resp.headers.get("content-length") or 0)
                    done = 0
                    last = -1
                    with open(tmp, "wb") as f:
                        for chunk in resp.iter_bytes(_CHUNK):
                            f.write(chunk)
                            done += len(chunk)
                            if total and on_progress:
                                pct = min(100, done * 100 // total)
                                if pct != last:
                                    last = pct
                                    on_progress(pct)
            os.replace(tmp, dest)
        except httpx.HTTPError as e:
            _discard(tmp)
            raise ApplyFailure(f"Failed to download {url}: {e}")
        except OSError as e:
            _discard(tmp)
            raise ApplyFailure(f"Failed to write {dest}: {e}")
        logger.debug("Downloaded %s → %s", url, dest)
        return dest

    # ── stats ─────────────────────────────────────────────────────────────

    def report_stats(self, payload: dict):
        """POST usage stats. Failures are logged, never raised."""
        try:
            with self._client() as client:
                resp = client.post(self.base_url + "stats", json=payload)
                resp.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning("Failed to send repo stats: %s", e)


def _discard(path: str):
    if os.path.exists(path):
        os.remove(path)
