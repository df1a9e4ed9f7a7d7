from __future__ import annotations

import random
import re
from typing import Any

from pydantic import BaseModel, Field

TITLE_MAX_LENGTH = 100
TAG_MAX_LENGTH = 40
MAX_TAGS = 18

_TITLE_TEMPLATES = [
    "🧠 {topic} Quiz | Can You Answer This?",
    "🏆 Daily {topic} Challenge",
    "🤔 9/10 Get This Wrong | {topic}",
    "⚡ {topic} in 15 Seconds",
]

_HOOKS = [
    "🤔 Think you know this one?",
    "⚡ Test yourself in 15 seconds!",
    "🧠 Only 10% get this right!",
    "🎯 Can you beat this quiz?",
]

BASE_HASHTAGS = ["#shorts", "#quiz", "#education", "#learning"]
BASE_TAGS = ["shorts", "quiz", "education", "daily quiz", "challenge"]


class VideoMetadata(BaseModel):
    title: str
    description: str = ""
    tags: list[str] = Field(default_factory=list)


def humanize(value: str) -> str:
    return re.sub(r"[_\-]+", " ", value or "").strip().title()


def topic_label(job) -> str:
    data = job.data or {}
    return job.topic_display_name or data.get("topic_display_name") or humanize(job.topic)


def build_hashtags(persona: str, topic: str) -> str:
    tags = list(BASE_HASHTAGS)
    for part in (persona, topic):
        word = re.sub(r"[^A-Za-z0-9]", "", humanize(part))
        if len(word) > 2:
            tags.append(f"#{word}")
    return " ".join(dict.fromkeys(tags))


def dedupe_tags(tags: list[str]) -> list[str]:
    seen: set[str] = set()
    out: list[str] = []
    for t in tags:
        clean = re.sub(r"\s+", " ", str(t)).strip()[:TAG_MAX_LENGTH].rstrip()
        key = clean.lower()
        if clean and key not in seen:
            seen.add(key)
            out.append(clean)
    return out[:MAX_TAGS]


def _question_block(content: Any) -> str:
    if not isinstance(content, dict):
        return ""

    lines = []
    question = content.get("question") or content.get("assertion")
    if question:
        lines.append(f"📚 QUESTION:\n{question}")

    options = content.get("options")
    if isinstance(options, dict) and options:
        lines.append("🔤 OPTIONS:\n" + "\n".join(f"{k}) {v}" for k, v in options.items()))
    elif isinstance(options, list) and options:
        lines.append("🔤 OPTIONS:\n" + "\n".join(str(o) for o in options))

    lines.append("✅ ANSWER:\nThe correct answer is revealed in the video!")
    lines.append(f"💡 EXPLANATION:\n{content.get('explanation') or 'Watch the video for a detailed explanation!'}")
    return "\n\n".join(lines)


def build_video_metadata(job, playlist_id: str | None = None, rng: random.Random | None = None) -> VideoMetadata:
    rng = rng or random.Random()
    label = topic_label(job)
    data = job.data or {}

    title = rng.choice(_TITLE_TEMPLATES).format(topic=label)[:TITLE_MAX_LENGTH]

    playlist_link = ""
    if playlist_id:
        playlist_link = (
            f"📺 More questions on {label}, full playlist:\n"
            f"https://www.youtube.com/playlist?list={playlist_id}\n\n"
            "-------------------------------------------------\n"
        )

    parts = [rng.choice(_HOOKS), playlist_link + _question_block(data.get("content"))]
    parts.append("💬 Comment your answer below!\n🔔 Subscribe for a new quiz every day!")
    parts.append(build_hashtags(job.persona, job.topic))
    description = "\n\n".join(p for p in parts if p.strip())

    tags = dedupe_tags(
        BASE_TAGS
        + [
            humanize(job.persona).lower(),
            humanize(job.topic).lower(),
            label.lower(),
            humanize(job.content_format).lower(),
        ]
    )
    return VideoMetadata(title=title, description=description, tags=tags)


def build_playlist_title(job) -> str:
    return f"{humanize(job.persona)}: {topic_label(job)} Quizzes"[:150]


def build_playlist_description(job) -> str:
    label = topic_label(job)
    return (
        f"🚀 Master {label} one short at a time.\n\n"
        f"✅ Quick quizzes with explanations\n"
        f"🔔 New videos uploaded daily\n\n"
        f"{build_hashtags(job.persona, job.topic)}"
    )
