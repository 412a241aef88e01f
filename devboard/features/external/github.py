"""GitHub REST + GraphQL client routed through the shared profile cache."""
from __future__ import annotations

import base64
import logging
from datetime import datetime, timezone
from typing import Any, List, Optional

import httpx
from fastapi import Depends

from devboard.core.config import Settings, settings as default_settings
from devboard.core.errors import ProviderUnavailableError
from devboard.features.external.cache import CompositeResult, ExternalProfileCache, Facet, ProviderCall, get_profile_cache
from devboard.features.external.http import request_json

logger = logging.getLogger("devboard")

PROVIDER = "github"
PINNED_LIMIT = 6

PINNED_QUERY = """
query($login: String!, $first: Int!) {
  user(login: $login) {
    pinnedItems(first: $first, types: REPOSITORY) {
      nodes {
        ... on Repository {
          name
          description
          url
          stargazerCount
          forkCount
          primaryLanguage { name color }
        }
      }
    }
  }
}
"""

CONTRIBUTIONS_QUERY = """
query($login: String!) {
  user(login: $login) {
    contributionsCollection {
      contributionCalendar {
        totalContributions
        weeks {
          contributionDays { date contributionCount color }
        }
      }
    }
  }
}
"""


def _translate_rest_error(response: httpx.Response) -> Optional[str]:
    if response.status_code == 403 and response.headers.get("x-ratelimit-remaining") == "0":
        reset = response.headers.get("x-ratelimit-reset")
        if reset and reset.isdigit():
            reset_at = datetime.fromtimestamp(int(reset), timezone.utc).isoformat()
            return f"GitHub API rate limit exceeded. Resets at {reset_at}"
        return "GitHub API rate limit exceeded"
    if response.status_code == 404:
        return "GitHub user not found"
    return None


class GitHubClient:
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

    def headers(self, token: Optional[str] = None) -> dict:
        headers = {"Accept": "application/vnd.github.v3+json"}
        if token:
            headers["Authorization"] = f"token {token}"
        elif self._settings.GITHUB_CLIENT_ID and self._settings.GITHUB_CLIENT_SECRET:
            # App credentials raise the anonymous rate limit without user scope
            raw = f"{self._settings.GITHUB_CLIENT_ID}:{self._settings.GITHUB_CLIENT_SECRET}"
            headers["Authorization"] = "Basic " + base64.b64encode(raw.encode()).decode()
        return headers

    # REST ------------------------------------------------------------
    def _profile_call(self, username: str, token: Optional[str]) -> ProviderCall:
        return ProviderCall(endpoint=f"/users/{username}", credential=token)

    def _repos_call(self, username: str, token: Optional[str], limit: int) -> ProviderCall:
        return ProviderCall(
            endpoint=f"/users/{username}/repos",
            params={"sort": "updated", "per_page": limit},
            credential=token,
        )

    def _rest_fetch(self, call: ProviderCall):
        async def fetch() -> Any:
            return await request_json(
                "GET",
                f"{self._settings.GITHUB_API_URL}{call.endpoint}",
                provider=PROVIDER,
                headers=self.headers(call.credential),
                params=dict(call.params) or None,
                transport=self._transport,
                translate_error=_translate_rest_error,
            )

        return fetch

    async def get_user_profile(self, username: str, token: Optional[str] = None) -> dict:
        call = self._profile_call(username, token)
        return await self._cache.get_cached(call, self._rest_fetch(call))

    async def get_user_repositories(self, username: str, token: Optional[str] = None, limit: int = 10) -> List[dict]:
        call = self._repos_call(username, token, limit)
        return await self._cache.get_cached(call, self._rest_fetch(call))

    # GraphQL ---------------------------------------------------------
    def _graphql_fetch(self, query: str, variables: dict, token: Optional[str], extract):
        async def fetch() -> Any:
            body = await request_json(
                "POST",
                self._settings.GITHUB_GRAPHQL_URL,
                provider=PROVIDER,
                headers={**self.headers(token), "Content-Type": "application/json"},
                json={"query": query, "variables": variables},
                transport=self._transport,
                translate_error=_translate_rest_error,
            )
            errors = body.get("errors") if isinstance(body, dict) else None
            if errors:
                entries = errors if isinstance(errors, list) else [errors]
                details = [err for err in entries if isinstance(err, dict)]
                not_found = any(err.get("type") == "NOT_FOUND" for err in details)
                message = details[0].get("message") if details else None
                raise ProviderUnavailableError(
                    message or "GitHub GraphQL error",
                    provider=PROVIDER,
                    upstream_status=404 if not_found else None,
                )
            try:
                return extract(body["data"]["user"])
            except (KeyError, TypeError) as exc:
                raise ProviderUnavailableError("GitHub returned a malformed payload", provider=PROVIDER) from exc

        return fetch

    def _pinned_facet(self, username: str, token: Optional[str]) -> Facet:
        variables = {"login": username, "first": PINNED_LIMIT}
        return Facet(
            name="pinnedRepositories",
            call=ProviderCall(endpoint="graphql:pinnedItems", params=variables, credential=token),
            fetch=self._graphql_fetch(PINNED_QUERY, variables, token, lambda user: user["pinnedItems"]["nodes"]),
            fallback=self._repos_facet(username, token, PINNED_LIMIT, name="pinnedRepositories"),
        )

    def _contributions_facet(self, username: str, token: Optional[str]) -> Facet:
        variables = {"login": username}
        return Facet(
            name="contributions",
            call=ProviderCall(endpoint="graphql:contributionCalendar", params=variables, credential=token),
            fetch=self._graphql_fetch(
                CONTRIBUTIONS_QUERY,
                variables,
                token,
                lambda user: user["contributionsCollection"]["contributionCalendar"],
            ),
        )

    def _repos_facet(self, username: str, token: Optional[str], limit: int, *, name: str = "repositories") -> Facet:
        call = self._repos_call(username, token, limit)
        return Facet(name=name, call=call, fetch=self._rest_fetch(call))

    def _profile_facet(self, username: str, token: Optional[str]) -> Facet:
        call = self._profile_call(username, token)
        return Facet(name="profile", call=call, fetch=self._rest_fetch(call))

    async def get_pinned_repositories(self, username: str, token: Optional[str] = None) -> List[dict]:
        """Pinned repositories, or the most recently updated ones if GraphQL is unavailable."""
        result = await self._cache.get_composite([self._pinned_facet(username, token)])
        return result.payload["pinnedRepositories"]

    async def get_contribution_calendar(self, username: str, token: Optional[str] = None) -> dict:
        facet = self._contributions_facet(username, token)
        return await self._cache.get_cached(facet.call, facet.fetch)

    async def get_comprehensive_profile(self, username: str, token: Optional[str] = None) -> CompositeResult:
        return await self._cache.get_composite(
            [
                self._profile_facet(username, token),
                self._repos_facet(username, token, 10),
                self._pinned_facet(username, token),
                self._contributions_facet(username, token),
            ]
        )


def get_github_client(cache: ExternalProfileCache = Depends(get_profile_cache)) -> GitHubClient:
    return GitHubClient(cache)
