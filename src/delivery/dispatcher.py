"""Webhook dispatcher -- one POST per chunk, failures mapped to delays.

``send_batch()`` never raises. Every job outcome becomes the delay the
DeliveryQueue waits before its next job:

    2xx          -> base interval
    no response  -> 0, marked local warning
    400 / 404    -> 0, plugin disabled for good
    429          -> Retry-After seconds (at most 60), marked local warning
    other status -> 0, marked local warning

Local warnings carry the plugin's do-not-propagate marker so they are
filtered before they can reach the batcher again.
"""

from __future__ import annotations

import asyncio
import contextlib
import json
import math
from typing import TYPE_CHECKING, Any, Protocol

import aiohttp
from loguru import logger

from src.core.common import choose, strip_prefix_delimiters
from src.delivery.exceptions import (
    DeliveryError,
    EndpointError,
    RateLimitedError,
    RemoteError,
    TransportError,
)
from src.delivery.queue import BASE_INTERVAL

if TYPE_CHECKING:
    from collections.abc import Sequence

    from src.core.plugin import LoggerHost
    from src.delivery.models import DeliveryUnit
    from src.delivery.options import WebhookOptions

# HTTP statuses
INVALID_URL_STATUSES = (400, 404)
RATE_LIMIT_STATUS = 429
# Fallback wait when a 429 carries no usable Retry-After (seconds)
DEFAULT_RETRY_AFTER = 5.0
# Longest wait honoured from a 429 (seconds); the queue is shared
MAX_RETRY_AFTER = 60.0

# Prefix of the plugin's own log lines
INTERNAL_PREFIX = "[aya]"


class DispatchOwner(Protocol):
    """Plugin side of the dispatcher: enable flag and permanent disable."""

    @property
    def enabled(self) -> bool: ...

    def disable(self, reason: str) -> None: ...


class WebhookDispatcher:
    """Posts delivery chunks to a webhook endpoint.

    Args:
        options: Plugin options (url, identity, timeout)
        host: Logger used for local warnings
        owner: Plugin owning the enable flag
        marker: Do-not-propagate marker appended to local warnings
        base_interval: Delay reported after a successful request (seconds)
        session: Existing aiohttp session (optional, created lazily if None)
    """

    def __init__(
        self,
        options: WebhookOptions,
        host: LoggerHost,
        *,
        owner: DispatchOwner,
        marker: str,
        base_interval: float = BASE_INTERVAL,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        self._options = options
        self._host = host
        self._owner = owner
        self._marker = marker
        self._base_interval = base_interval
        self._session = session
        self._owns_session = session is None

    @property
    def base_interval(self) -> float:
        return self._base_interval

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create aiohttp session."""
        if self._session is None:
            self._session = aiohttp.ClientSession()
        return self._session

    async def close(self) -> None:
        """Close the aiohttp session if we own it."""
        if self._owns_session and self._session is not None:
            await self._session.close()
            self._session = None

    # -------------------------------------------------------------------------
    # Payload
    # -------------------------------------------------------------------------

    @property
    def username(self) -> str:
        return self._options.username or strip_prefix_delimiters(self._host.display_prefix)

    def pick_avatar(self) -> str | None:
        """Configured avatar, or a random one from the configured list."""
        avatar = self._options.avatar_url
        if not avatar:
            return None
        if isinstance(avatar, str):
            return avatar
        return choose(avatar)

    def build_payload(self, chunk: Sequence[DeliveryUnit]) -> dict[str, Any]:
        """Webhook request body for one chunk."""
        payload: dict[str, Any] = {
            "username": self.username,
            "embeds": [unit.to_payload() for unit in chunk],
        }
        avatar = self.pick_avatar()
        if avatar:
            payload["avatar_url"] = avatar
        return payload

    # -------------------------------------------------------------------------
    # Sending
    # -------------------------------------------------------------------------

    async def _post(self, payload: dict[str, Any]) -> None:
        """POST ``payload``; raises a DeliveryError subclass on failure."""
        session = await self._get_session()
        try:
            async with session.post(
                self._options.url,
                json=payload,
                timeout=aiohttp.ClientTimeout(total=self._options.request_timeout),
            ) as response:
                status = response.status
                if 200 <= status < 300:
                    return
                reason = response.reason or ""
                body = await _read_body(response)
                if status in INVALID_URL_STATUSES:
                    msg = "Webhook endpoint rejected the request"
                    raise EndpointError(msg, status=status)
                if status == RATE_LIMIT_STATUS:
                    msg = "Webhook endpoint is rate limiting"
                    raise RateLimitedError(
                        msg,
                        retry_after=_retry_after(response.headers, body),
                        reason=reason,
                        body=body,
                    )
                msg = "Webhook endpoint returned an error"
                raise RemoteError(msg, status=status, reason=reason, body=body)
        except (aiohttp.ClientError, TimeoutError) as e:
            msg = "No response from webhook endpoint"
            raise TransportError(msg, context={"error": type(e).__name__}) from e

    async def _attempt(self, chunk: Sequence[DeliveryUnit]) -> DeliveryError | None:
        try:
            await self._post(self.build_payload(chunk))
        except DeliveryError as e:
            return e
        return None

    async def send_batch(self, chunks: Sequence[Sequence[DeliveryUnit]]) -> float:
        """Deliver the chunks of one job concurrently.

        Failures are reported once per job: an invalid endpoint wins over any
        other failure, otherwise the first failing chunk decides the delay.

        Args:
            chunks: Chunks of up to 10 units each

        Returns:
            Seconds the queue waits before its next job
        """
        if not self._owner.enabled:
            return 0.0
        results = await asyncio.gather(*(self._attempt(chunk) for chunk in chunks))
        failures = [error for error in results if error is not None]
        if failures:
            failure = next((e for e in failures if isinstance(e, EndpointError)), failures[0])
            return self._handle_failure(failure)
        logger.debug("WebhookDispatcher: delivered {} chunk(s)", len(chunks))
        return self._base_interval

    async def send(self, chunk: Sequence[DeliveryUnit]) -> float:
        """Deliver one chunk; see ``send_batch``."""
        return await self.send_batch([chunk])

    def _handle_failure(self, error: DeliveryError) -> float:
        logger.debug("WebhookDispatcher: {} ({})", error.kind, error)
        match error:
            case TransportError():
                self._warn("Could not send webhook: No response")
            case EndpointError():
                self._owner.disable("Invalid webhook URL, disabling plugin")
            case RateLimitedError(retry_after=retry_after):
                self._warn("Webhook rate limited, retrying in", f"{retry_after}s")
                return retry_after
            case RemoteError(detail=detail):
                if self._owner.enabled:
                    self._warn("Could not send webhook", detail)
        return 0.0

    def _warn(self, *parts: Any) -> None:
        self._host.warn(INTERNAL_PREFIX, *parts, self._marker)


async def _read_body(response: aiohttp.ClientResponse) -> str:
    """Response text, or "" when the body cannot be read."""
    with contextlib.suppress(aiohttp.ClientError, UnicodeDecodeError):
        return await response.text()
    return ""


def _bounded_wait(value: Any) -> float | None:
    seconds = float(value)
    if not math.isfinite(seconds):
        return None
    return min(max(seconds, 0.0), MAX_RETRY_AFTER)


def _retry_after(headers: Any, body: str) -> float:
    """Seconds to wait from a 429 response (header first, then JSON body).

    Non-finite values are ignored; the result is capped at MAX_RETRY_AFTER.
    """
    with contextlib.suppress(TypeError, ValueError):
        wait = _bounded_wait(headers.get("Retry-After"))
        if wait is not None:
            return wait
    with contextlib.suppress(TypeError, ValueError, AttributeError):
        wait = _bounded_wait(json.loads(body).get("retry_after"))
        if wait is not None:
            return wait
    return DEFAULT_RETRY_AFTER
