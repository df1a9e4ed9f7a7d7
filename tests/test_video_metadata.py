import random
from types import SimpleNamespace

from fakes import CONTENT
from shorts_pipeline.services.video_metadata import (
    build_playlist_title,
    build_video_metadata,
    dedupe_tags,
    humanize,
)


def _job(**kw):
    values = {
        "persona": "english",
        "topic": "phrasal_verbs",
        "topic_display_name": None,
        "content_format": "multiple_choice",
        "data": {"content": CONTENT},
    }
    values.update(kw)
    return SimpleNamespace(**values)


def test_humanize():
    assert humanize("phrasal_verbs") == "Phrasal Verbs"
    assert humanize("word-of-the-day") == "Word Of The Day"


def test_title_is_bounded():
    meta = build_video_metadata(_job(topic_display_name="T" * 300), rng=random.Random(0))
    assert len(meta.title) <= 100


def test_description_links_playlist_and_lists_options():
    meta = build_video_metadata(_job(), playlist_id="PL42", rng=random.Random(0))
    assert "https://www.youtube.com/playlist?list=PL42" in meta.description
    assert "A) put off" in meta.description
    assert "#shorts" in meta.description


def test_description_without_playlist():
    meta = build_video_metadata(_job(data={}), rng=random.Random(0))
    assert "playlist?list=" not in meta.description


def test_tags_are_deduplicated():
    meta = build_video_metadata(_job(), rng=random.Random(0))
    lowered = [t.lower() for t in meta.tags]
    assert len(lowered) == len(set(lowered))
    assert "phrasal verbs" in lowered
    assert dedupe_tags(["Quiz", "quiz", "  ", "x" * 60]) == ["Quiz", "x" * 40]


def test_playlist_title_uses_display_name():
    assert build_playlist_title(_job(topic_display_name="Everyday Phrasal Verbs")) == (
        "English: Everyday Phrasal Verbs Quizzes"
    )
