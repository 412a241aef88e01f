"""StackExchange API client routed through the shared profile cache."""
from __future__ import annotations

from typing import Any, Optional

import httpx
from fastapi import Depends

from devboard.core.config import Settings, settings as default_settings
from devboard.core.errors import ProviderUnavailableError
from devboard.features.external.cache import CompositeResult, ExternalProfileCache, Facet, ProviderCall, get_profile_cache
from devboard.features.external.http import request_json

PROVIDER = "stackoverflow"
QUOTA_ERROR_ID = 502

# Custom StackExchange filters
QUESTIONS_FILTER = "!-*f(6s6U8Q9b"  # vote counts, view counts
ANSWERS_FILTER = "!-*f(6sFKmVSCD"  # vote counts, is_accepted
TAGS_FILTER = "!-.7zntT7S7"


def _translate_error(response: httpx.Response) -> Optional[str]:
    try:
        body = response.json()
    except ValueError:
        return None
    if isinstance(body, dict) and body.get("error_id") == QUOTA_ERROR_ID:
        return "StackOverflow API quota exceeded"
    if isinstance(body, dict) and body.get("error_message"):
        return f"StackOverflow API error: {body['error_message']}"
    return None


class StackOverflowClient:
    def __init__(
        self,
        cache: ExternalProfileCache,
        *,
        settings_obj: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._cache = cache
        self._settings = settings_obj or default_settings
        self._transport = transport

    def _default_params(self) -> dict:
        params = {"site": "stackoverflow"}
        if self._settings.STACKOVERFLOW_API_KEY:
            params["key"] = self._settings.STACKOVERFLOW_API_KEY
        return params

    def _facet(self, name: str, endpoint: str, params: dict) -> Facet:
        # The key is built from caller parameters; site/app key are added on the wire only
        call = ProviderCall(endpoint=endpoint, params=params)

        async def fetch() -> Any:
            body = await request_json(
                "GET",
                f"{self._settings.STACKOVERFLOW_API_URL}{endpoint}",
                provider=PROVIDER,
                params={**self._default_params(), **params},
                transport=self._transport,
                translate_error=_translate_error,
            )
            if not isinstance(body, dict) or "items" not in body:
                raise ProviderUnavailableError("StackOverflow returned a malformed payload", provider=PROVIDER)
            return body

        return Facet(name=name, call=call, fetch=fetch)

    async def _get(self, facet: Facet) -> dict:
        return await self._cache.get_cached(facet.call, facet.fetch)

    def _profile_facet(self, user_id: str) -> Facet:
        return self._facet("profile", f"/users/{user_id}", {"filter": "withbadges"})

    def _questions_facet(self, user_id: str, page: int = 1, page_size: int = 10) -> Facet:
        return self._facet(
            "questions",
            f"/users/{user_id}/questions",
            {"page": page, "pagesize": page_size, "order": "desc", "sort": "activity", "filter": QUESTIONS_FILTER},
        )

    def _answers_facet(self, user_id: str, page: int = 1, page_size: int = 10) -> Facet:
        return self._facet(
            "answers",
            f"/users/{user_id}/answers",
            {"page": page, "pagesize": page_size, "order": "desc", "sort": "activity", "filter": ANSWERS_FILTER},
        )

    def _top_tags_facet(self, user_id: str) -> Facet:
        return self._facet("topTags", f"/users/{user_id}/top-tags", {"filter": TAGS_FILTER})

    def _reputation_facet(self, user_id: str) -> Facet:
        return self._facet("reputationHistory", f"/users/{user_id}/reputation-history", {"filter": TAGS_FILTER})

    async def get_user_profile(self, user_id: str) -> Optional[dict]:
        body = await self._get(self._profile_facet(user_id))
        items = body.get("items") or []
        return items[0] if items else None

    async def get_user_questions(self, user_id: str, page: int = 1, page_size: int = 10) -> dict:
        return await self._get(self._questions_facet(user_id, page, page_size))

    async def get_user_answers(self, user_id: str, page: int = 1, page_size: int = 10) -> dict:
        return await self._get(self._answers_facet(user_id, page, page_size))

    async def get_user_top_tags(self, user_id: str) -> dict:
        return await self._get(self._top_tags_facet(user_id))

    async def get_user_reputation_history(self, user_id: str) -> dict:
        return await self._get(self._reputation_facet(user_id))

    async def get_comprehensive_profile(self, user_id: str) -> CompositeResult:
        result = await self._cache.get_composite(
            [
                self._profile_facet(user_id),
                self._questions_facet(user_id),
                self._answers_facet(user_id),
                self._top_tags_facet(user_id),
                self._reputation_facet(user_id),
            ]
        )
        profile_items = result.payload["profile"].get("items") or []
        payload = {
            "profile": profile_items[0] if profile_items else None,
            "questions": result.payload["questions"]["items"],
            "answers": result.payload["answers"]["items"],
            "topTags": result.payload["topTags"]["items"],
            "reputationHistory": result.payload["reputationHistory"]["items"],
        }
        return CompositeResult(payload=payload, degraded=result.degraded)


def get_stackoverflow_client(cache: ExternalProfileCache = Depends(get_profile_cache)) -> StackOverflowClient:
    return StackOverflowClient(cache)
