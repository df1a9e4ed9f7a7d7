from __future__ import annotations

import logging
import re
import threading
from concurrent.futures import Future

from shorts_pipeline.services.errors import PlatformError, PlaylistError

logger = logging.getLogger(__name__)

MANAGER_TAG_PREFIX = "[managed-by:shorts-pipeline; key:"
MANAGER_TAG_SUFFIX = "]"
DESCRIPTION_MAX_LENGTH = 5000


def canonical_key(*parts: str) -> str:
    """
    Lowercase, URL-safe slug of the parts. Empty and repeated parts are dropped,
    so ("acct", "english", "english") and ("acct", "english") map to the same key.
    """
    slugs: list[str] = []
    for part in parts:
        slug = re.sub(r"[^a-z0-9]+", "-", (part or "").strip().lower()).strip("-")
        if slug and slug not in slugs:
            slugs.append(slug)
    return "-".join(slugs)


def playlist_key_for_job(job) -> str:
    content = (job.data or {}).get("content")
    topic = content.get("topic") if isinstance(content, dict) and content.get("topic") else job.topic
    return canonical_key(job.account_id, job.persona, topic, job.content_format)


def manager_tag(key: str) -> str:
    return f"{MANAGER_TAG_PREFIX}{key}{MANAGER_TAG_SUFFIX}"


def parse_manager_tag(description: str | None) -> str | None:
    if not description:
        return None
    start = description.find(MANAGER_TAG_PREFIX)
    if start == -1:
        return None
    key_start = start + len(MANAGER_TAG_PREFIX)
    end = description.find(MANAGER_TAG_SUFFIX, key_start)
    if end == -1:
        return None
    return description[key_start:end] or None


def tagged_description(description: str, key: str) -> str:
    tag = manager_tag(key)
    room = DESCRIPTION_MAX_LENGTH - len(tag) - 2
    body = (description or "")[:room].rstrip()
    return f"{body}\n\n{tag}" if body else tag


class PlaylistResolver:
    """
    Maps canonical keys to remote playlist ids, creating each playlist at most
    once per process.

    One instance per pipeline run. `snapshot` is seeded from the manager tags of
    the channel's existing playlists; `inflight` coalesces concurrent creations
    of the same key. Both maps are guarded by one lock since resolve() may be
    called from several threads.
    """

    def __init__(self, platform):
        self.platform = platform
        self.snapshot: dict[str, str] = {}
        self.inflight: dict[str, Future] = {}
        self.loaded = False
        self._lock = threading.Lock()

    def load_snapshot(self) -> dict[str, str]:
        logger.info("Fetching and mapping managed playlists...")
        try:
            playlists = self.platform.list_collections()
        except PlatformError as exc:
            raise PlaylistError(f"Playlist listing failed: {exc}") from exc

        found: dict[str, str] = {}
        for item in playlists:
            key = parse_manager_tag(item.get("description"))
            if key and item.get("id"):
                found[key] = item["id"]

        with self._lock:
            for key, playlist_id in found.items():
                self.snapshot.setdefault(key, playlist_id)
            self.loaded = True
            snapshot = dict(self.snapshot)

        logger.info("Found %d existing managed playlists.", len(found))
        return snapshot

    def resolve(self, key: str, title: str, description: str) -> str:
        with self._lock:
            existing = self.snapshot.get(key)
            if existing:
                return existing

            future = self.inflight.get(key)
            owner = future is None
            if owner:
                future = Future()
                self.inflight[key] = future

        if not owner:
            logger.info('Waiting for existing playlist creation for key "%s"...', key)
            return future.result()

        try:
            playlist_id = self._create(key, title, description)
        except BaseException as exc:
            # waiters must be released even on KeyboardInterrupt/SystemExit
            with self._lock:
                self.inflight.pop(key, None)
            future.set_exception(exc)
            raise

        with self._lock:
            self.snapshot[key] = playlist_id
            self.inflight.pop(key, None)
        future.set_result(playlist_id)
        return playlist_id

    def _create(self, key: str, title: str, description: str) -> str:
        logger.info('Creating new playlist "%s" for key "%s"', title, key)
        try:
            playlist_id = self.platform.create_collection(title, tagged_description(description, key))
        except PlatformError as exc:
            raise PlaylistError(f'Failed to create playlist "{title}": {exc}') from exc

        if not playlist_id:
            raise PlaylistError(f'No id returned for new playlist "{title}"')
        logger.info("Created playlist %s", playlist_id)
        return playlist_id
