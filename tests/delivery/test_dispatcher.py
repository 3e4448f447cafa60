"""WebhookDispatcher tests -- payload shape and failure -> delay mapping."""

from __future__ import annotations

import json

import aiohttp
import pytest

from src.delivery.dispatcher import (
    DEFAULT_RETRY_AFTER,
    INTERNAL_PREFIX,
    MAX_RETRY_AFTER,
    WebhookDispatcher,
    _retry_after,
)
from src.delivery.exceptions import FailureKind, RateLimitedError, RemoteError, TransportError
from src.delivery.options import DEFAULT_AVATARS, WebhookOptions
from src.delivery.queue import BASE_INTERVAL
from tests.delivery.conftest import (
    WEBHOOK_URL,
    FakeHost,
    FakeOwner,
    FakeResponse,
    FakeSession,
    make_unit,
)

_MARKER = "test::doNotSendToWebhook"


def _make_dispatcher(
    session: FakeSession,
    host: FakeHost,
    owner: FakeOwner,
    options: WebhookOptions,
) -> WebhookDispatcher:
    return WebhookDispatcher(
        options,
        host,
        owner=owner,
        marker=_MARKER,
        session=session,  # type: ignore[arg-type]
    )


class TestPayload:
    def test_username_from_prefix(
        self, host: FakeHost, owner: FakeOwner, options: WebhookOptions
    ) -> None:
        dispatcher = _make_dispatcher(FakeSession(), host, owner, options)
        assert dispatcher.username == "aya"

    def test_username_override(self, host: FakeHost, owner: FakeOwner) -> None:
        options = WebhookOptions(url=WEBHOOK_URL, username="alerts")
        dispatcher = _make_dispatcher(FakeSession(), host, owner, options)
        assert dispatcher.username == "alerts"

    def test_build_payload(self, host: FakeHost, owner: FakeOwner, options: WebhookOptions) -> None:
        dispatcher = _make_dispatcher(FakeSession(), host, owner, options)
        payload = dispatcher.build_payload([make_unit("a"), make_unit("b")])

        assert payload["username"] == "aya"
        assert payload["avatar_url"] == "https://i.imgur.com/ukfOGMB.jpeg"
        assert [e["description"] for e in payload["embeds"]] == ["a", "b"]
        assert set(payload["embeds"][0]) == {"title", "color", "timestamp", "description"}

    def test_avatar_picked_from_list(self, host: FakeHost, owner: FakeOwner) -> None:
        dispatcher = _make_dispatcher(
            FakeSession(), host, owner, WebhookOptions(url=WEBHOOK_URL)
        )
        assert dispatcher.pick_avatar() in DEFAULT_AVATARS

    def test_no_avatar(self, host: FakeHost, owner: FakeOwner) -> None:
        options = WebhookOptions(url=WEBHOOK_URL, avatar_url=None)
        dispatcher = _make_dispatcher(FakeSession(), host, owner, options)
        assert "avatar_url" not in dispatcher.build_payload([make_unit()])


class TestSendSuccess:
    async def test_returns_base_interval(
        self, host: FakeHost, owner: FakeOwner, options: WebhookOptions
    ) -> None:
        session = FakeSession(FakeResponse(204))
        dispatcher = _make_dispatcher(session, host, owner, options)

        delay = await dispatcher.send([make_unit("a"), make_unit("b"), make_unit("c")])

        assert delay == BASE_INTERVAL
        assert len(session.calls) == 1
        url, payload = session.calls[0]
        assert url == WEBHOOK_URL
        assert len(payload["embeds"]) == 3
        assert host.records == []

    async def test_disabled_owner_skips_request(
        self, host: FakeHost, options: WebhookOptions
    ) -> None:
        session = FakeSession()
        dispatcher = _make_dispatcher(session, host, FakeOwner(enabled=False), options)

        assert await dispatcher.send([make_unit()]) == 0.0
        assert session.calls == []


class TestSendFailures:
    @pytest.mark.parametrize(
        "error", [aiohttp.ClientConnectionError("refused"), TimeoutError()]
    )
    async def test_no_response(
        self,
        error: BaseException,
        host: FakeHost,
        owner: FakeOwner,
        options: WebhookOptions,
    ) -> None:
        dispatcher = _make_dispatcher(FakeSession(error=error), host, owner, options)

        delay = await dispatcher.send([make_unit()])

        assert delay == 0.0
        assert host.of_level("warn") == [
            (INTERNAL_PREFIX, "Could not send webhook: No response", _MARKER)
        ]
        assert owner.enabled is True

    @pytest.mark.parametrize("status", [400, 404])
    async def test_invalid_url_disables(
        self, status: int, host: FakeHost, owner: FakeOwner, options: WebhookOptions
    ) -> None:
        session = FakeSession(FakeResponse(status, reason="Not Found"))
        dispatcher = _make_dispatcher(session, host, owner, options)

        assert await dispatcher.send([make_unit()]) == 0.0
        assert await dispatcher.send([make_unit()]) == 0.0

        assert owner.disable_reasons == ["Invalid webhook URL, disabling plugin"]
        assert len(session.calls) == 1

    async def test_remote_error_warns_with_detail(
        self, host: FakeHost, owner: FakeOwner, options: WebhookOptions
    ) -> None:
        session = FakeSession(FakeResponse(500, reason="Internal Server Error", body="oops"))
        dispatcher = _make_dispatcher(session, host, owner, options)

        assert await dispatcher.send([make_unit()]) == 0.0
        assert host.of_level("warn") == [
            (INTERNAL_PREFIX, "Could not send webhook", "500 Internal Server Error - oops", _MARKER)
        ]
        assert owner.enabled is True

    async def test_unreadable_body_is_remote_error(
        self, host: FakeHost, owner: FakeOwner, options: WebhookOptions
    ) -> None:
        response = FakeResponse(
            500,
            reason="Internal Server Error",
            body_error=aiohttp.ClientPayloadError("truncated"),
        )
        dispatcher = _make_dispatcher(FakeSession(response), host, owner, options)

        assert await dispatcher.send([make_unit()]) == 0.0
        assert host.of_level("warn") == [
            (INTERNAL_PREFIX, "Could not send webhook", "500 Internal Server Error -", _MARKER)
        ]

    async def test_rate_limited_returns_retry_after(
        self, host: FakeHost, owner: FakeOwner, options: WebhookOptions
    ) -> None:
        response = FakeResponse(429, reason="Too Many Requests", headers={"Retry-After": "2.5"})
        dispatcher = _make_dispatcher(FakeSession(response), host, owner, options)

        assert await dispatcher.send([make_unit()]) == 2.5
        (warning,) = host.of_level("warn")
        assert warning[-1] == _MARKER

    async def test_recovers_after_failure(
        self, host: FakeHost, owner: FakeOwner, options: WebhookOptions
    ) -> None:
        session = FakeSession(FakeResponse(502, reason="Bad Gateway"), FakeResponse(204))
        dispatcher = _make_dispatcher(session, host, owner, options)

        assert await dispatcher.send([make_unit()]) == 0.0
        assert await dispatcher.send([make_unit()]) == BASE_INTERVAL


class TestRetryAfter:
    def test_header(self) -> None:
        assert _retry_after({"Retry-After": "3"}, "") == 3.0

    def test_json_body(self) -> None:
        assert _retry_after({}, json.dumps({"retry_after": 0.75})) == 0.75

    def test_fallback(self) -> None:
        assert _retry_after({}, "not json") == DEFAULT_RETRY_AFTER

    def test_negative_clamped(self) -> None:
        assert _retry_after({"Retry-After": "-1"}, "") == 0.0

    @pytest.mark.parametrize("value", ["inf", "-inf", "nan"])
    def test_non_finite_header_ignored(self, value: str) -> None:
        assert _retry_after({"Retry-After": value}, "") == DEFAULT_RETRY_AFTER

    def test_non_finite_header_falls_back_to_body(self) -> None:
        assert _retry_after({"Retry-After": "inf"}, '{"retry_after": 2}') == 2.0

    def test_non_finite_body_ignored(self) -> None:
        assert _retry_after({}, '{"retry_after": Infinity}') == DEFAULT_RETRY_AFTER

    def test_huge_header_capped(self) -> None:
        assert _retry_after({"Retry-After": "1e9"}, "") == MAX_RETRY_AFTER

    def test_huge_body_capped(self) -> None:
        assert _retry_after({}, json.dumps({"retry_after": 10**9})) == MAX_RETRY_AFTER

    async def test_send_never_returns_unbounded_wait(
        self, host: FakeHost, owner: FakeOwner, options: WebhookOptions
    ) -> None:
        response = FakeResponse(429, reason="Too Many Requests", headers={"Retry-After": "inf"})
        dispatcher = _make_dispatcher(FakeSession(response), host, owner, options)

        assert await dispatcher.send([make_unit()]) == DEFAULT_RETRY_AFTER


class TestSendBatch:
    async def test_one_warning_per_job(
        self, host: FakeHost, owner: FakeOwner, options: WebhookOptions
    ) -> None:
        session = FakeSession(error=aiohttp.ClientConnectionError("refused"))
        dispatcher = _make_dispatcher(session, host, owner, options)

        delay = await dispatcher.send_batch([[make_unit("a")], [make_unit("b")], [make_unit("c")]])

        assert delay == 0.0
        assert len(session.calls) == 3
        assert host.of_level("warn") == [
            (INTERNAL_PREFIX, "Could not send webhook: No response", _MARKER)
        ]

    async def test_invalid_url_wins_over_other_failures(
        self, host: FakeHost, owner: FakeOwner, options: WebhookOptions
    ) -> None:
        session = FakeSession(
            FakeResponse(500, reason="Internal Server Error"),
            FakeResponse(404, reason="Not Found"),
        )
        dispatcher = _make_dispatcher(session, host, owner, options)

        delay = await dispatcher.send_batch([[make_unit("a")], [make_unit("b")]])

        assert delay == 0.0
        assert owner.disable_reasons == ["Invalid webhook URL, disabling plugin"]
        assert host.of_level("warn") == []

    async def test_all_chunks_delivered(
        self, host: FakeHost, owner: FakeOwner, options: WebhookOptions
    ) -> None:
        session = FakeSession(FakeResponse(204))
        dispatcher = _make_dispatcher(session, host, owner, options)

        delay = await dispatcher.send_batch([[make_unit("a")], [make_unit("b")]])

        assert delay == BASE_INTERVAL
        assert [p["embeds"][0]["description"] for _, p in session.calls] == ["a", "b"]

    async def test_disabled_owner_sends_nothing(
        self, host: FakeHost, options: WebhookOptions
    ) -> None:
        session = FakeSession()
        dispatcher = _make_dispatcher(session, host, FakeOwner(enabled=False), options)

        assert await dispatcher.send_batch([[make_unit()], [make_unit()]]) == 0.0
        assert session.calls == []


class TestErrors:
    def test_kinds(self) -> None:
        assert TransportError("x").kind is FailureKind.NO_RESPONSE
        assert RateLimitedError("x", retry_after=1.0).kind is FailureKind.RATE_LIMITED
        assert RateLimitedError("x", retry_after=1.0).status == 429

    def test_remote_detail_without_body(self) -> None:
        assert RemoteError("x", status=503, reason="Service Unavailable").detail == (
            "503 Service Unavailable -"
        )

    def test_str_includes_context(self) -> None:
        assert str(TransportError("down", context={"error": "TimeoutError"})) == (
            "down [error=TimeoutError]"
        )


class TestSession:
    async def test_injected_session_not_closed(
        self, host: FakeHost, owner: FakeOwner, options: WebhookOptions
    ) -> None:
        session = FakeSession()
        dispatcher = _make_dispatcher(session, host, owner, options)
        await dispatcher.close()
        assert session.closed is False
