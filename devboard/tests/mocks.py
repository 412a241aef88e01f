import asyncio
import json
from datetime import datetime, timedelta

import httpx

from devboard.core.clock import Clock


class ManualClock(Clock):
    """Clock whose 'now' only moves when a test moves it."""

    def __init__(self, start: datetime, tz_name: str = "UTC"):
        super().__init__(tz_name)
        self._now = start

    def now(self) -> datetime:
        return self._now.astimezone(self.tz)

    def advance(self, **kwargs) -> None:
        self._now = self._now + timedelta(**kwargs)

    def set(self, moment: datetime) -> None:
        self._now = moment


def off_loop_recorder(fn, seen: list):
    """Wrap a sync function to record whether it ran on the event loop thread."""

    def wrapper(*args, **kwargs):
        try:
            asyncio.get_running_loop()
            seen.append("loop")
        except RuntimeError:
            seen.append("thread")
        return fn(*args, **kwargs)

    return wrapper


class CountingFetch:
    """Async fetch function that records calls and returns (or raises) a canned result."""

    def __init__(self, result=None, error: Exception = None):
        self.result = result
        self.error = error
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.result


class RecordingTransport(httpx.MockTransport):
    """MockTransport that keeps every request it served."""

    def __init__(self, handler):
        self.requests = []

        def _record(request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            return handler(request)

        super().__init__(_record)


REPOS = [{"name": "hello-world", "stargazers_count": 3}]
CALENDAR = {
    "totalContributions": 3,
    "weeks": [{"contributionDays": [{"date": "2024-03-14", "contributionCount": 3, "color": "#fff"}]}],
}


def github_handler(*, graphql_errors=None):
    """Route GitHub REST and GraphQL requests for user 'octocat'; everything else is 404."""

    def handler(request: httpx.Request) -> httpx.Response:
        path = request.url.path
        if path == "/users/octocat":
            return httpx.Response(200, json={"login": "octocat", "public_repos": 8})
        if path == "/users/octocat/repos":
            return httpx.Response(200, json=REPOS)
        if path == "/graphql":
            if graphql_errors:
                return httpx.Response(200, json={"errors": graphql_errors})
            body = json.loads(request.content)
            if "pinnedItems" in body["query"]:
                return httpx.Response(
                    200, json={"data": {"user": {"pinnedItems": {"nodes": [{"name": "pinned-repo"}]}}}}
                )
            return httpx.Response(
                200,
                json={"data": {"user": {"contributionsCollection": {"contributionCalendar": CALENDAR}}}},
            )
        return httpx.Response(404, json={"message": "Not Found"})

    return handler


def stackoverflow_handler(request: httpx.Request) -> httpx.Response:
    path = request.url.path
    if path.endswith("/users/22656"):
        return httpx.Response(200, json={"items": [{"user_id": 22656, "reputation": 1000000}]})
    if path.endswith("/users/1"):
        return httpx.Response(200, json={"items": []})
    if path.endswith("/questions"):
        return httpx.Response(200, json={"items": [{"question_id": 1}], "has_more": False})
    if path.endswith("/answers"):
        return httpx.Response(200, json={"items": [{"answer_id": 2}]})
    if path.endswith("/top-tags"):
        return httpx.Response(200, json={"items": [{"tag_name": "c#"}]})
    if path.endswith("/reputation-history"):
        return httpx.Response(200, json={"items": []})
    return httpx.Response(404)
