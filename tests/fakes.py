import threading
import time
from pathlib import Path

from shorts_pipeline.services.errors import PlatformError, StorageError
from shorts_pipeline.services.storage import StoredObject

CDN = "https://cdn.test"

CONTENT = {
    "question": "Which phrasal verb means 'to postpone'?",
    "options": {"A": "put off", "B": "put on", "C": "put up", "D": "put out"},
    "answer": "A",
    "explanation": "To put off something is to postpone it.",
    "topic": "phrasal_verbs",
}


class FakeStorage:
    def __init__(self, fail_upload=False):
        self.uploads = []
        self.deleted = []
        self.blobs = {}
        self.fail_upload = fail_upload

    def upload(self, data, key, content_type):
        if self.fail_upload:
            raise StorageError(f"Upload of {key} failed: boom")
        url = f"{CDN}/{key}"
        self.uploads.append((key, content_type, len(data)))
        self.blobs[url] = data
        return StoredObject(url=url, size=len(data))

    def download(self, url):
        return self.blobs.get(url, b"bytes-of-" + url.encode())

    def delete(self, url):
        self.deleted.append(url)
        return True


class FakeFetcher:
    def __init__(self, error=None):
        self.error = error
        self.calls = []

    def fetch_all(self, urls, dest_dir):
        self.calls.append(list(urls))
        if self.error is not None:
            raise self.error
        paths = []
        for i, _url in enumerate(urls):
            path = Path(dest_dir) / f"frame-{i + 1:03d}.png"
            path.write_bytes(b"png")
            paths.append(path)
        return paths


class FakeTranscoder:
    """Records every invocation and creates the output file ffmpeg would have written."""

    def __init__(self, fail_label=None, error=None):
        self.calls = []
        self.fail_label = fail_label
        self.error = error

    def __call__(self, args, *, timeout, label, binary=None, cwd=None):
        self.calls.append({"args": list(args), "timeout": timeout, "label": label, "cwd": cwd})
        if label == self.fail_label:
            raise self.error
        Path(args[-1]).write_bytes(b"mp4:" + label.encode())

    def clip_durations(self):
        return [c["args"][c["args"].index("-t") + 1] for c in self.calls if c["label"].startswith("Frame")]


class FakeContentSource:
    def __init__(self, content=None):
        self.content = content or dict(CONTENT)
        self.calls = []

    def generate(self, persona, topic, content_format):
        self.calls.append((persona, topic, content_format))
        return dict(self.content)


class FakeFrameRenderer:
    def __init__(self, urls=None):
        self.urls = urls or [f"{CDN}/frames/1.png", f"{CDN}/frames/2.png", f"{CDN}/frames/3.png"]

    def render(self, job):
        return {"frameUrls": list(self.urls), "layoutType": "standard", "themeName": "neon"}


class FakePlatform:
    def __init__(self, collections=None, create_delay=0.0, fail_create=False, release=None):
        self.collections = list(collections or [])
        self.create_delay = create_delay
        self.fail_create = fail_create
        self.release = release
        self.created = []
        self.uploaded = []
        self.playlist_items = []
        self.thumbnails = []
        self._lock = threading.Lock()

    def list_collections(self):
        return list(self.collections)

    def create_collection(self, title, description):
        if self.release is not None:
            self.release.wait(5)
        if self.create_delay:
            time.sleep(self.create_delay)
        with self._lock:
            self.created.append((title, description))
            n = len(self.created)
        if self.fail_create:
            raise PlatformError("YouTube playlist creation failed: quota exceeded")
        playlist_id = f"PL{n}"
        self.collections.append({"id": playlist_id, "description": description})
        return playlist_id

    def upload_video(self, video, metadata):
        self.uploaded.append((len(video), metadata))
        return f"yt-{len(self.uploaded)}"

    def add_to_collection(self, playlist_id, video_id):
        self.playlist_items.append((playlist_id, video_id))

    def set_thumbnail(self, video_id, image, mimetype="image/png"):
        self.thumbnails.append(video_id)
