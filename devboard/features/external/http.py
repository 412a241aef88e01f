"""Shared async HTTP plumbing for provider clients."""
from __future__ import annotations

import logging
from typing import Any, Callable, Optional

import httpx

from devboard.core.config import settings
from devboard.core.errors import ProviderUnavailableError

logger = logging.getLogger("devboard")

# Inspects a non-2xx response and returns a provider-specific message, or None
ErrorTranslator = Callable[[httpx.Response], Optional[str]]


async def request_json(
    method: str,
    url: str,
    *,
    provider: str,
    headers: Optional[dict] = None,
    params: Optional[dict] = None,
    json: Optional[dict] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    translate_error: Optional[ErrorTranslator] = None,
) -> Any:
    """
    Perform one bounded-timeout request and decode its JSON body.

    Every failure mode (transport error, timeout, non-2xx, undecodable body)
    surfaces as ProviderUnavailableError. No retries.
    """
    try:
        async with httpx.AsyncClient(timeout=settings.HTTP_TIMEOUT_SECONDS, transport=transport) as client:
            response = await client.request(method, url, headers=headers, params=params, json=json)
    except httpx.TimeoutException as exc:
        logger.warning(f"[{provider}] request timed out: {url}", extra={"provider": provider})
        raise ProviderUnavailableError(f"{provider} request timed out", provider=provider) from exc
    except httpx.HTTPError as exc:
        logger.warning(f"[{provider}] request failed: {exc}", extra={"provider": provider})
        raise ProviderUnavailableError(f"{provider} request failed: {exc}", provider=provider) from exc

    if response.status_code >= 400:
        message = translate_error(response) if translate_error else None
        logger.warning(
            f"[{provider}] upstream error {response.status_code}: {url}",
            extra={"provider": provider, "status": response.status_code},
        )
        raise ProviderUnavailableError(
            message or f"{provider} API error {response.status_code}",
            provider=provider,
            upstream_status=response.status_code,
        )

    try:
        return response.json()
    except ValueError as exc:
        raise ProviderUnavailableError(f"{provider} returned a malformed payload", provider=provider) from exc
