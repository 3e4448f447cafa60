"""Delivery test fixtures -- fake aiohttp session, fake logger host.

The fakes record every call so tests can assert on payloads and on the
local warnings the pipeline emits.
"""

from __future__ import annotations

from typing import Any

import pytest

from src.core.markers import MarkerRegistry
from src.delivery.models import DeliveryUnit
from src.delivery.options import WebhookOptions

WEBHOOK_URL = "https://discord.com/api/webhooks/123/abc"


class FakeResponse:
    """aiohttp response stand-in usable as ``async with`` target."""

    def __init__(
        self,
        status: int = 204,
        *,
        reason: str = "",
        body: str = "",
        headers: dict[str, str] | None = None,
        body_error: BaseException | None = None,
    ) -> None:
        self.status = status
        self.reason = reason
        self.headers = headers or {}
        self._body = body
        self._body_error = body_error

    async def __aenter__(self) -> FakeResponse:
        return self

    async def __aexit__(self, *exc: object) -> None:
        return None

    async def text(self) -> str:
        if self._body_error is not None:
            raise self._body_error
        return self._body


class FakeSession:
    """aiohttp.ClientSession stand-in.

    Args:
        responses: Returned in order; the last one repeats
        error: Raised by every ``post()`` instead of responding
    """

    def __init__(self, *responses: FakeResponse, error: BaseException | None = None) -> None:
        self._responses = list(responses) or [FakeResponse()]
        self._error = error
        self.calls: list[tuple[str, dict[str, Any]]] = []
        self.closed = False

    def post(self, url: str, *, json: dict[str, Any], timeout: object) -> FakeResponse:
        self.calls.append((url, json))
        if self._error is not None:
            raise self._error
        if len(self._responses) > 1:
            return self._responses.pop(0)
        return self._responses[0]

    async def close(self) -> None:
        self.closed = True


class FakeHost:
    """LoggerHost that records log calls instead of writing them."""

    def __init__(self, prefix: str = "(aya)") -> None:
        self.display_prefix = prefix
        self.records: list[tuple[str, tuple[Any, ...]]] = []
        self.subscriptions: dict[str, list[Any]] = {}
        self._markers = MarkerRegistry("test")

    def subscribe(self, severity: str, callback: Any) -> None:
        self.subscriptions.setdefault(severity, []).append(callback)

    def emit(self, severity: str, parts: Any) -> None:
        for callback in self.subscriptions.get(severity, []):
            callback(list(parts))

    def register_marker(self, token: str) -> str:
        return self._markers.register(token)

    def has_marker(self, token: str, parts: Any) -> bool:
        return self._markers.contains(token, parts)

    def strip_markers(self, parts: Any) -> list[Any]:
        return self._markers.strip(parts)

    def _log(self, level: str, parts: tuple[Any, ...]) -> None:
        self.records.append((level, parts))
        self.emit(level, parts)

    def debug(self, *parts: Any) -> None:
        self._log("debug", parts)

    def info(self, *parts: Any) -> None:
        self._log("info", parts)

    def warn(self, *parts: Any) -> None:
        self._log("warn", parts)

    def error(self, *parts: Any) -> None:
        self._log("error", parts)

    def of_level(self, level: str) -> list[tuple[Any, ...]]:
        return [parts for lvl, parts in self.records if lvl == level]


class FakeOwner:
    """Plugin side of the batcher/dispatcher: enable flag plus disable()."""

    def __init__(self, *, enabled: bool = True) -> None:
        self.enabled = enabled
        self.disable_reasons: list[str] = []

    def disable(self, reason: str) -> None:
        self.disable_reasons.append(reason)
        self.enabled = False


class RecordingQueue:
    """DeliveryQueue stand-in that keeps jobs instead of running them."""

    min_spacing = 1.0

    def __init__(self) -> None:
        self.jobs: list[Any] = []

    def push(self, job: Any) -> None:
        self.jobs.append(job)


class RecordingSender:
    """ChunkSender that records chunks and returns a fixed delay."""

    def __init__(self, delay: float = 0.0) -> None:
        self.delay = delay
        self.calls = 0
        self.chunks: list[list[DeliveryUnit]] = []

    async def send_batch(self, chunks: Any) -> float:
        self.calls += 1
        self.chunks.extend(list(chunk) for chunk in chunks)
        return self.delay


def make_unit(body: str = "boom") -> DeliveryUnit:
    return DeliveryUnit(title=":x: Error", color=15548997, body=body)


@pytest.fixture(autouse=True)
def _clean_webhook_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("URL", "USERNAME", "AVATAR_URL", "LEVELS", "SHOW_LOAD_MESSAGE"):
        monkeypatch.delenv(f"AYA_WEBHOOK_{name}", raising=False)


@pytest.fixture
def host() -> FakeHost:
    return FakeHost()


@pytest.fixture
def owner() -> FakeOwner:
    return FakeOwner()


@pytest.fixture
def options() -> WebhookOptions:
    return WebhookOptions(url=WEBHOOK_URL, avatar_url="https://i.imgur.com/ukfOGMB.jpeg")
