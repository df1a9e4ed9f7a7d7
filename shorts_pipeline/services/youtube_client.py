from __future__ import annotations

import io
import logging
from typing import Any

from google.auth.exceptions import GoogleAuthError
from google.auth.transport.requests import Request as GoogleAuthRequest
from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError
from googleapiclient.http import MediaIoBaseUpload
from httplib2 import HttpLib2Error

from shorts_pipeline import config
from shorts_pipeline.config import required
from shorts_pipeline.services.errors import PlatformError
from shorts_pipeline.services.video_metadata import VideoMetadata

logger = logging.getLogger(__name__)

YOUTUBE_SCOPES = ["https://www.googleapis.com/auth/youtube"]
UPLOAD_CHUNK_SIZE = 1024 * 1024 * 8

# OSError covers socket timeouts and connection resets
TRANSPORT_ERRORS = (HttpError, HttpLib2Error, GoogleAuthError, OSError)


def build_youtube_service():
    creds = Credentials(
        token=None,
        refresh_token=required("YT_REFRESH_TOKEN"),
        token_uri="https://oauth2.googleapis.com/token",
        client_id=required("YT_CLIENT_ID"),
        client_secret=required("YT_CLIENT_SECRET"),
        scopes=YOUTUBE_SCOPES,
    )
    try:
        creds.refresh(GoogleAuthRequest())
    except GoogleAuthError as e:
        raise PlatformError(f"YouTube authentication failed: {e}") from e
    return build("youtube", "v3", credentials=creds, cache_discovery=False)


class YouTubeClient:
    """Remote video platform: playlists are the managed collections."""

    def __init__(self, service=None):
        self._service = service

    @property
    def service(self):
        if self._service is None:
            self._service = build_youtube_service()
        return self._service

    def _execute(self, request, action: str) -> dict[str, Any]:
        try:
            return request.execute()
        except TRANSPORT_ERRORS as e:
            raise PlatformError(f"YouTube {action} failed: {e}") from e

    def list_collections(self) -> list[dict[str, Any]]:
        out: list[dict[str, Any]] = []
        page_token = None
        while True:
            resp = self._execute(
                self.service.playlists().list(part="snippet", mine=True, maxResults=50, pageToken=page_token),
                "playlist listing",
            )
            for item in resp.get("items", []):
                out.append({"id": item.get("id"), "description": (item.get("snippet") or {}).get("description")})
            page_token = resp.get("nextPageToken")
            if not page_token:
                return out

    def create_collection(self, title: str, description: str) -> str:
        resp = self._execute(
            self.service.playlists().insert(
                part="snippet,status",
                body={
                    "snippet": {"title": title, "description": description},
                    "status": {"privacyStatus": config.PLAYLIST_PRIVACY},
                },
            ),
            "playlist creation",
        )
        return resp.get("id")

    def upload_video(self, video: bytes, metadata: VideoMetadata) -> str:
        body = {
            "snippet": {
                "title": metadata.title,
                "description": metadata.description,
                "tags": metadata.tags,
                "categoryId": config.YOUTUBE_CATEGORY_ID,
            },
            "status": {"privacyStatus": "public", "selfDeclaredMadeForKids": False},
        }
        media = MediaIoBaseUpload(io.BytesIO(video), mimetype="video/mp4", resumable=True, chunksize=UPLOAD_CHUNK_SIZE)
        request = self.service.videos().insert(part="snippet,status", body=body, media_body=media)

        response = None
        try:
            while response is None:
                status, response = request.next_chunk()
                if status:
                    logger.debug("Upload progress: %.1f%%", status.progress() * 100)
        except TRANSPORT_ERRORS as e:
            raise PlatformError(f"YouTube video upload failed: {e}") from e

        video_id = (response or {}).get("id")
        if not video_id:
            raise PlatformError("YouTube API did not return a video ID.")
        return str(video_id)

    def add_to_collection(self, playlist_id: str, video_id: str) -> None:
        self._execute(
            self.service.playlistItems().insert(
                part="snippet",
                body={
                    "snippet": {
                        "playlistId": playlist_id,
                        "resourceId": {"kind": "youtube#video", "videoId": video_id},
                    }
                },
            ),
            "playlist insert",
        )

    def set_thumbnail(self, video_id: str, image: bytes, mimetype: str = "image/png") -> None:
        media = MediaIoBaseUpload(io.BytesIO(image), mimetype=mimetype, resumable=False)
        self._execute(self.service.thumbnails().set(videoId=video_id, media_body=media), "thumbnail upload")
