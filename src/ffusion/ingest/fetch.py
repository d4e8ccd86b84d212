"""Payload fetchers for local files and remote feeds."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Awaitable, Callable

import httpx

from ffusion.errors import SourceUnreadable


logger = logging.getLogger(__name__)

Fetcher = Callable[[], Awaitable[bytes]]

_USER_AGENT = "ffusion/0.1 (+https://github.com/nflverse/nflverse-data)"


def file_fetcher(source_id: str, path: Path) -> Fetcher:
    async def fetch() -> bytes:
        try:
            return await asyncio.to_thread(path.read_bytes)
        except OSError as exc:
            raise SourceUnreadable(source_id, f"cannot read {path}: {exc}") from exc

    return fetch


def http_fetcher(source_id: str, url: str, client: httpx.AsyncClient) -> Fetcher:
    async def fetch() -> bytes:
        try:
            response = await client.get(url, headers={"User-Agent": _USER_AGENT}, follow_redirects=True)
            response.raise_for_status()
        except httpx.TimeoutException as exc:
            raise SourceUnreadable(source_id, f"timed out fetching {url}") from exc
        except httpx.HTTPStatusError as exc:
            raise SourceUnreadable(source_id, f"HTTP {exc.response.status_code} from {url}") from exc
        except httpx.HTTPError as exc:
            raise SourceUnreadable(source_id, f"network error fetching {url}: {exc}") from exc
        except httpx.InvalidURL as exc:
            raise SourceUnreadable(source_id, f"invalid URL {url!r}: {exc}") from exc
        logger.debug("Fetched %d bytes for %s from %s", len(response.content), source_id, url)
        return response.content

    return fetch
