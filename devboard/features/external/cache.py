"""Time-bucketed read-through cache for third-party profile APIs.

One instance per process, shared by the GitHub and StackOverflow clients.
Entries live for the process lifetime: a key is Empty until its first
successful fetch, Fresh for ``duration`` seconds after each store, then Stale
until the next successful fetch overwrites it. Failed fetches propagate and
are never stored. Concurrent misses on one key may both fetch; the later write
wins.
"""
from __future__ import annotations

import asyncio
import hashlib
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Sequence

from starlette.requests import Request

from devboard.core.clock import Clock, default_clock
from devboard.core.config import settings

logger = logging.getLogger("devboard")

FetchFn = Callable[[], Awaitable[Any]]


@dataclass(frozen=True)
class ProviderCall:
    """Identifies one provider request for caching purposes."""

    endpoint: str
    params: Mapping[str, Any] = field(default_factory=dict)
    credential: Optional[str] = None


@dataclass
class CacheEntry:
    key: str
    payload: Any
    stored_at: float


@dataclass
class Facet:
    """One sub-resource of a composite profile."""

    name: str
    call: ProviderCall
    fetch: FetchFn
    fallback: Optional["Facet"] = None


@dataclass
class CompositeResult:
    payload: Dict[str, Any]
    degraded: List[str] = field(default_factory=list)


def credential_identity(credential: Optional[str]) -> str:
    if not credential:
        return "anonymous"
    # Fingerprint only; raw tokens never appear in keys or logs
    return "cred:" + hashlib.sha256(credential.encode("utf-8")).hexdigest()[:16]


def cache_key(call: ProviderCall) -> str:
    params = json.dumps(dict(call.params), sort_keys=True, separators=(",", ":"), default=str)
    return f"{call.endpoint}|{params}|{credential_identity(call.credential)}"


class ExternalProfileCache:
    def __init__(self, duration: Optional[float] = None, clock: Optional[Clock] = None):
        self.duration = float(settings.CACHE_DURATION if duration is None else duration)
        self._clock = clock or default_clock
        self._entries: Dict[str, CacheEntry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def peek(self, call: ProviderCall) -> Optional[CacheEntry]:
        return self._entries.get(cache_key(call))

    def is_fresh(self, entry: CacheEntry) -> bool:
        return self._clock.timestamp() - entry.stored_at < self.duration

    async def get_cached(self, call: ProviderCall, fetch: FetchFn) -> Any:
        """Return a fresh cached payload, or fetch, store and return a new one."""
        key = cache_key(call)
        entry = self._entries.get(key)
        if entry is not None and self.is_fresh(entry):
            logger.debug("external.cache.hit", extra={"cache_key": key})
            return entry.payload

        logger.debug("external.cache.miss", extra={"cache_key": key})
        payload = await fetch()
        self._entries[key] = CacheEntry(key=key, payload=payload, stored_at=self._clock.timestamp())
        return payload

    async def get_composite(self, facets: Sequence[Facet]) -> CompositeResult:
        """
        Fetch every facet concurrently and assemble them by name.

        Any facet failure fails the whole composite. A facet with a declared
        fallback is resolved through it whenever its primary path raises,
        and is reported in ``degraded``.
        """
        degraded: List[str] = []

        async def resolve(facet: Facet) -> Any:
            try:
                return await self.get_cached(facet.call, facet.fetch)
            except Exception as exc:
                if facet.fallback is None:
                    raise
                logger.warning(
                    f"external.fallback_used facet={facet.name}: {exc!r}",
                    extra={"facet": facet.name, "provider": getattr(exc, "provider", None)},
                )
                degraded.append(facet.name)
                return await self.get_cached(facet.fallback.call, facet.fallback.fetch)

        results = await asyncio.gather(*(resolve(facet) for facet in facets))
        payload = {facet.name: result for facet, result in zip(facets, results)}
        return CompositeResult(payload=payload, degraded=degraded)


def get_profile_cache(request: Request) -> ExternalProfileCache:
    """FastAPI dependency returning the cache created in the app lifespan."""
    cache = getattr(request.app.state, "profile_cache", None)
    if cache is None:
        cache = ExternalProfileCache()
        request.app.state.profile_cache = cache
    return cache
