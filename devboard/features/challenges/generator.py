"""AI-assisted coding challenge generation with a static fallback catalog."""
from __future__ import annotations

import logging
import random
import re
from datetime import datetime, time, timedelta
from typing import Optional

import httpx

from devboard.core.clock import Clock, default_clock
from devboard.core.config import Settings, settings as default_settings
from devboard.core.errors import ProviderUnavailableError
from devboard.features.external.http import request_json
from devboard.models.challenge import GeneratedChallenge

logger = logging.getLogger("devboard")

PROVIDER = "huggingface"

DIFFICULTIES = ("easy", "medium", "hard")
DAILY_WEIGHTS = (0.4, 0.4, 0.2)
WEEKLY_DIFFICULTIES = ("medium", "hard")

# Static catalog used whenever the text-generation provider is unavailable
FALLBACK_CATALOG = {
    "easy": [
        (
            "Sum of Two Numbers",
            "Write a function that takes two numbers as input and returns their sum.\n\nExample:\nInput: 5, 3\nOutput: 8",
            "math",
        ),
        (
            "Reverse a String",
            'Write a function that reverses a string.\n\nExample:\nInput: "hello"\nOutput: "olleh"',
            "strings",
        ),
    ],
    "medium": [
        (
            "Find the Missing Number",
            "Given an array containing n distinct numbers taken from 0, 1, 2, ..., n, find the one that is missing."
            "\n\nExample:\nInput: [3, 0, 1]\nOutput: 2",
            "arrays",
        ),
        (
            "Valid Parentheses",
            "Given a string containing just the characters '(', ')', '{', '}', '[' and ']', determine if the input "
            "string is valid. Open brackets must be closed by the same type of brackets, in the correct order."
            '\n\nExample:\nInput: "()[]{}"\nOutput: true',
            "stacks",
        ),
    ],
    "hard": [
        (
            "Longest Substring Without Repeating Characters",
            "Given a string, find the length of the longest substring without repeating characters."
            '\n\nExample:\nInput: "abcabcbb"\nOutput: 3\nExplanation: The answer is "abc", with the length of 3.',
            "strings",
        ),
        (
            "Merge k Sorted Lists",
            "Merge k sorted linked lists and return it as one sorted list."
            "\n\nExample:\nInput: [\n  1->4->5,\n  1->3->4,\n  2->6\n]\nOutput: 1->1->2->3->4->4->5->6",
            "linked lists",
        ),
    ],
}

TITLE_RE = re.compile(r"Title:\s*([^\n]+)")
EXAMPLES_RE = re.compile(r"Examples?:[\s\S]*")


def build_prompt(difficulty: str, language: str, topic: Optional[str] = None) -> str:
    about = f" about {topic}" if topic else ""
    return (
        f"Create a {difficulty} level coding challenge for {language}{about}. "
        "Include a title, description, example input/output, and constraints.\n\nTitle:\n"
    )


def parse_generated_text(text: str, difficulty: str, language: str, topic: Optional[str] = None) -> GeneratedChallenge:
    title_match = TITLE_RE.search(text)
    title = title_match.group(1).strip() if title_match else f"{difficulty} {language} challenge"

    description = text
    if title_match:
        description = description[title_match.end():].strip()
    description = EXAMPLES_RE.sub("", description).strip()
    if not description:
        about = f" about {topic}" if topic else ""
        description = f"Solve this {difficulty} {language} coding challenge{about}."

    examples_match = EXAMPLES_RE.search(text)
    examples = examples_match.group(0).strip() if examples_match else ""

    return GeneratedChallenge(
        title=title,
        description=f"{description}\n\n{examples}".strip(),
        difficulty=difficulty,
        language=language,
        tags=[language, difficulty] + ([topic] if topic else []),
    )


class ChallengeGenerator:
    def __init__(
        self,
        *,
        settings_obj: Optional[Settings] = None,
        clock: Optional[Clock] = None,
        rng: Optional[random.Random] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._settings = settings_obj or default_settings
        self._clock = clock or default_clock
        self._rng = rng or random.Random()
        self._transport = transport

    async def generate(
        self,
        *,
        difficulty: Optional[str] = None,
        language: Optional[str] = None,
        topic: Optional[str] = None,
        model: Optional[str] = None,
    ) -> GeneratedChallenge:
        difficulty = difficulty if difficulty in DIFFICULTIES else "medium"
        language = language or "javascript"
        try:
            text = await self._generate_text(build_prompt(difficulty, language, topic), model)
        except ProviderUnavailableError as exc:
            logger.warning(f"[challenges] generation failed, using fallback catalog: {exc.message}", extra={"provider": PROVIDER})
            return self.fallback(difficulty, language, topic)
        return parse_generated_text(text, difficulty, language, topic)

    def fallback(self, difficulty: str, language: str, topic: Optional[str] = None) -> GeneratedChallenge:
        entries = FALLBACK_CATALOG.get(difficulty) or FALLBACK_CATALOG["medium"]
        title, description, tag = self._rng.choice(entries)
        return GeneratedChallenge(
            title=title,
            description=description,
            difficulty=difficulty,
            language=language,
            tags=[language, difficulty, tag],
        )

    async def generate_daily(self, language: Optional[str] = None) -> GeneratedChallenge:
        difficulty = self._rng.choices(DIFFICULTIES, weights=DAILY_WEIGHTS, k=1)[0]
        challenge = await self.generate(difficulty=difficulty, language=language)
        challenge.expires_at = self._end_of_day(days_ahead=0)
        challenge.tags.append("daily")
        return challenge

    async def generate_weekly(self, language: Optional[str] = None) -> GeneratedChallenge:
        difficulty = self._rng.choice(WEEKLY_DIFFICULTIES)
        challenge = await self.generate(difficulty=difficulty, language=language)
        challenge.expires_at = self._end_of_day(days_ahead=7)
        challenge.tags.append("weekly")
        return challenge

    # Internal helpers -------------------------------------------------
    async def _generate_text(self, prompt: str, model: Optional[str]) -> str:
        headers = {"Content-Type": "application/json"}
        if self._settings.HUGGINGFACE_API_TOKEN:
            headers["Authorization"] = f"Bearer {self._settings.HUGGINGFACE_API_TOKEN}"
        body = await request_json(
            "POST",
            f"{self._settings.HUGGINGFACE_API_URL}{model or self._settings.HUGGINGFACE_MODEL}",
            provider=PROVIDER,
            headers=headers,
            json={
                "inputs": prompt,
                "parameters": {"max_length": 500, "temperature": 0.7, "top_p": 0.9, "do_sample": True},
            },
            transport=self._transport,
        )
        if isinstance(body, list) and body:
            body = body[0]
        text = body.get("generated_text") if isinstance(body, dict) else None
        if not text:
            raise ProviderUnavailableError("Failed to generate challenge text", provider=PROVIDER)
        return text

    def _end_of_day(self, *, days_ahead: int) -> datetime:
        day = self._clock.today() + timedelta(days=days_ahead)
        return datetime.combine(day, time(23, 59, 59, 999000), tzinfo=self._clock.tz)


def get_challenge_generator() -> ChallengeGenerator:
    return ChallengeGenerator()
