"""Gemini-backed oracle over the public generateContent REST endpoint."""

from __future__ import annotations

import json
import logging
from collections.abc import Sequence

import httpx
from pydantic import ValidationError

from karmaledger.config import Settings
from karmaledger.errors import OracleError
from karmaledger.oracle.base import EventScore, EventSummary, SuggestionBatch

logger = logging.getLogger(__name__)

SCORE_PROMPT = """You are a kind but honest reflection coach.
A person logged this act:
Action: {action}
Reflection: {reflection}

Rate how positive and impactful the act is on an integer scale from -1 (harmful)
to 10 (exceptionally kind), and write two or three sentences of encouraging feedback.
Reply with JSON only: {{"intensity": <int>, "feedback": "<text>"}}"""

SUGGESTION_PROMPT = """You are a reflection coach preparing weekly suggestions.
Here are the person's recent karma events, newest first:
{events}

Suggest a few small, concrete kind acts for the coming week that build on these.
Reply with JSON only: {{"suggestions": ["<text>", ...]}}"""


def _format_events(events: Sequence[EventSummary]) -> str:
    if not events:
        return "(no recent events)"
    lines = []
    for e in events:
        score = "unscored" if e.intensity is None else str(e.intensity)
        line = f"- {e.occurred_at:%Y-%m-%d}: {e.action} (intensity {score})"
        if e.reflection:
            line += f" | reflection: {e.reflection}"
        lines.append(line)
    return "\n".join(lines)


def _strip_fences(text: str) -> str:
    text = text.strip()
    if text.startswith("```"):
        text = text.split("\n", 1)[1] if "\n" in text else ""
        if text.rstrip().endswith("```"):
            text = text.rstrip()[:-3]
    return text.strip()


class GeminiOracle:
    """KarmaOracle implementation calling Google's Gemini API with httpx."""

    def __init__(self, settings: Settings, client: httpx.AsyncClient | None = None) -> None:
        self.api_key = settings.gemini_api_key
        self._headers = {"x-goog-api-key": self.api_key}
        self.model = settings.gemini_model
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(
            base_url=settings.gemini_base_url,
            timeout=settings.oracle_timeout_seconds,
        )

    async def aclose(self) -> None:
        if self._owns_client:
            await self.client.aclose()

    async def _generate(self, prompt: str) -> dict:
        """Send one prompt and return the JSON object the model replied with."""
        body = {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": {"responseMimeType": "application/json"},
        }
        try:
            response = await self.client.post(
                f"/models/{self.model}:generateContent",
                headers=self._headers,
                json=body,
            )
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise OracleError(f"gemini request failed: {exc}") from exc

        try:
            text = response.json()["candidates"][0]["content"]["parts"][0]["text"]
            data = json.loads(_strip_fences(text))
        except (KeyError, IndexError, TypeError, ValueError) as exc:
            raise OracleError("gemini returned an unexpected payload") from exc
        if not isinstance(data, dict):
            raise OracleError("gemini reply is not a JSON object")
        return data

    async def score_event(self, action: str, reflection: str | None) -> EventScore:
        data = await self._generate(SCORE_PROMPT.format(action=action, reflection=reflection or "(none)"))
        try:
            return EventScore.model_validate(data)
        except ValidationError as exc:
            raise OracleError(f"malformed score: {exc.error_count()} validation errors") from exc

    async def generate_suggestions(self, user_id: int, events: Sequence[EventSummary]) -> list[str]:
        data = await self._generate(SUGGESTION_PROMPT.format(events=_format_events(events)))
        try:
            batch = SuggestionBatch.model_validate(data)
        except ValidationError as exc:
            raise OracleError(f"malformed suggestions: {exc.error_count()} validation errors") from exc
        logger.debug("Gemini produced %d suggestions for user %s", len(batch.suggestions), user_id)
        return batch.suggestions
