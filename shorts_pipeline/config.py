import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()


def env_bool(name: str, default: bool = False) -> bool:
    return str(os.getenv(name, str(default))).strip().lower() in {"1", "true", "yes", "on"}


def env_int(name: str, default: int) -> int:
    v = os.getenv(name, "").strip()
    return int(v) if v else default


def env_float(name: str, default: float) -> float:
    v = os.getenv(name, "").strip()
    return float(v) if v else default


def required(name: str) -> str:
    v = os.getenv(name, "").strip()
    if not v:
        raise RuntimeError(f"{name} is not set")
    return v


# ---------- Database ----------
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./shorts_pipeline.db")

# ---------- Entry point ----------
CRON_SECRET = os.getenv("CRON_SECRET", "").strip()
DEBUG_MODE = env_bool("DEBUG_MODE", False)
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").strip().upper()
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "").split(",") if o.strip()]

# ---------- Job processing ----------
MAX_ERROR_MESSAGE_LENGTH = 500
# 0 disables the limit; failed jobs are re-queued for as long as their data allows
JOB_RETRY_LIMIT = env_int("JOB_RETRY_LIMIT", 0)
FRAME_DOWNLOAD_WORKERS = env_int("FRAME_DOWNLOAD_WORKERS", 8)
FRAME_DOWNLOAD_TIMEOUT = env_float("FRAME_DOWNLOAD_TIMEOUT", 30.0)
CLEANUP_REMOTE_ASSETS = env_bool("CLEANUP_REMOTE_ASSETS", True)

# ---------- Video assembly ----------
FFMPEG_BIN = os.getenv("FFMPEG_BIN", "ffmpeg").strip()
VIDEO_WIDTH = 1080
VIDEO_HEIGHT = 1920
VIDEO_FPS = 25
CLIP_TIMEOUT_SECONDS = 40
CONCAT_TIMEOUT_SECONDS = 30
AUDIO_VOLUME = 0.3
AUDIO_TRACKS = ["1.mp3", "2.mp3", "3.mp3"]
AUDIO_DIR = Path(os.getenv("AUDIO_DIR", str(Path.cwd() / "public" / "audio")))
SCRATCH_ROOT = os.getenv("SCRATCH_ROOT", "").strip() or None
DEBUG_VIDEO_DIR = Path(os.getenv("DEBUG_VIDEO_DIR", "/tmp/generated-videos-debug"))

# ---------- Object storage (DigitalOcean Spaces / S3) ----------
DO_SPACES_REGION = os.getenv("DO_SPACES_REGION", "fra1").strip()
VIDEOS_PREFIX = os.getenv("VIDEOS_PREFIX", "quiz-videos").strip().strip("/")

# ---------- Content + frames ----------
OPENAI_MODEL = os.getenv("OPENAI_MODEL", "gpt-4o-mini").strip()
FRAME_RENDERER_URL = os.getenv("FRAME_RENDERER_URL", "").strip()

# ---------- YouTube ----------
YOUTUBE_CATEGORY_ID = os.getenv("YOUTUBE_CATEGORY_ID", "27").strip()  # 27 = Education
PLAYLIST_PRIVACY = os.getenv("PLAYLIST_PRIVACY", "public").strip()
