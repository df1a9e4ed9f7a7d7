from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path

import httpx

from shorts_pipeline import config
from shorts_pipeline.services.errors import FrameFetchError

logger = logging.getLogger(__name__)


def frame_filename(index: int) -> str:
    """0-based index -> frame-001.png"""
    return f"frame-{index + 1:03d}.png"


class FrameFetcher:
    def __init__(self, client: httpx.Client | None = None, max_workers: int | None = None):
        self._client = client
        self.max_workers = max_workers or config.FRAME_DOWNLOAD_WORKERS

    def download(self, url: str) -> bytes:
        try:
            if self._client is not None:
                r = self._client.get(url)
            else:
                with httpx.Client(timeout=config.FRAME_DOWNLOAD_TIMEOUT, follow_redirects=True) as client:
                    r = client.get(url)
        except httpx.HTTPError as e:
            raise FrameFetchError(f"Failed to download image {url}: {e}") from e

        if r.status_code >= 400:
            raise FrameFetchError(f"Failed to download image {url}: {r.status_code} {r.reason_phrase}")
        return r.content

    def fetch_one(self, url: str, index: int, dest_dir: Path) -> Path:
        started = time.monotonic()
        path = dest_dir / frame_filename(index)
        path.write_bytes(self.download(url))
        logger.debug("Downloaded frame %d in %.3fs", index + 1, time.monotonic() - started)
        return path

    def fetch_all(self, urls: list[str], dest_dir: Path) -> list[Path]:
        """
        Download every frame in parallel. Paths come back in input order.
        The first failure cancels whatever has not started and is re-raised.
        """
        if not urls:
            return []

        paths: list[Path | None] = [None] * len(urls)
        workers = max(1, min(self.max_workers, len(urls)))
        with ThreadPoolExecutor(max_workers=workers) as pool:
            futures = {pool.submit(self.fetch_one, url, i, dest_dir): i for i, url in enumerate(urls)}
            try:
                for fut in as_completed(futures):
                    paths[futures[fut]] = fut.result()
            except Exception:
                for fut in futures:
                    fut.cancel()
                raise

        return [p for p in paths if p is not None]
