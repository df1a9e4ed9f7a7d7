from __future__ import annotations

import json
import logging
import re
from typing import Any, Dict

from openai import OpenAI, OpenAIError

from shorts_pipeline import config
from shorts_pipeline.config import required
from shorts_pipeline.services.errors import ContentSourceError

logger = logging.getLogger(__name__)

_FENCE = re.compile(r"^```(?:json)?\s*|\s*```$", re.MULTILINE)


def _instructions(persona: str, content_format: str) -> str:
    return f"""
You write one short-form quiz for the "{persona}" channel.
Format: {content_format}.
Return ONLY a JSON object with keys:
question, options (object A-D), answer, explanation, topic, cta.
""".strip()


def parse_content(text: str) -> Dict[str, Any]:
    """Pull the JSON object out of the model's reply (tolerates ``` fences)."""
    cleaned = _FENCE.sub("", (text or "").strip()).strip()
    start, end = cleaned.find("{"), cleaned.rfind("}")
    if start == -1 or end <= start:
        raise ContentSourceError("Content source returned no JSON object")
    try:
        out = json.loads(cleaned[start : end + 1])
    except json.JSONDecodeError as e:
        raise ContentSourceError(f"Content source returned invalid JSON: {e}") from e
    if not isinstance(out, dict) or not out:
        raise ContentSourceError("Content source returned an empty payload")
    return out


class ContentSource:
    """
    Opaque generation service: (persona, topic, format) -> content payload.
    """

    def __init__(self, client: OpenAI | None = None, model: str | None = None):
        self._client = client
        self.model = model or config.OPENAI_MODEL

    @property
    def client(self) -> OpenAI:
        if self._client is None:
            self._client = OpenAI(api_key=required("OPENAI_API_KEY"))
        return self._client

    def generate(self, persona: str, topic: str, content_format: str) -> Dict[str, Any]:
        try:
            resp = self.client.responses.create(
                model=self.model,
                instructions=_instructions(persona, content_format),
                input=f"TOPIC:\n{topic}",
            )
        except OpenAIError as e:
            raise ContentSourceError(f"Content generation request failed: {e}") from e

        content = parse_content(resp.output_text or "")
        content.setdefault("topic", topic)
        return content
