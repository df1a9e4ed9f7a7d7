from __future__ import annotations

import logging
from typing import Any

import httpx

from shorts_pipeline import config
from shorts_pipeline.services.errors import JobDataError, PipelineError

logger = logging.getLogger(__name__)


class FrameRenderer:
    """
    Client for the external frame rendering service.

    POST {url} with the job's content; the service answers
    {"frameUrls": [...], "layoutType": "...", "themeName": "..."}.
    """

    def __init__(self, url: str | None = None, client: httpx.Client | None = None, timeout: float = 120.0):
        self.url = url or config.FRAME_RENDERER_URL
        self._client = client
        self.timeout = timeout

    def render(self, job) -> dict[str, Any]:
        if not self.url:
            raise PipelineError("FRAME_RENDERER_URL is not set")

        payload = {
            "jobId": str(job.id),
            "accountId": job.account_id,
            "persona": job.persona,
            "topic": job.topic,
            "format": job.content_format,
            "content": (job.data or {}).get("content"),
        }

        try:
            if self._client is not None:
                r = self._client.post(self.url, json=payload)
            else:
                with httpx.Client(timeout=self.timeout) as client:
                    r = client.post(self.url, json=payload)
        except httpx.HTTPError as e:
            raise PipelineError(f"Failed to reach frame renderer: {e}") from e

        if r.status_code >= 400:
            raise PipelineError(f"Frame renderer rejected request: {r.status_code} {r.text[:200]}")

        body = r.json()
        frame_urls = body.get("frameUrls") if isinstance(body, dict) else None
        if not isinstance(frame_urls, list) or not frame_urls:
            raise JobDataError("Frame renderer returned no frame URLs")

        out: dict[str, Any] = {"frameUrls": [str(u) for u in frame_urls]}
        for key in ("layoutType", "themeName"):
            if body.get(key):
                out[key] = body[key]
        return out
