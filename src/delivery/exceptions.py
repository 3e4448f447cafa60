"""Failure taxonomy of the webhook delivery pipeline.

None of these ever escapes the queue worker or the flush cycle: the
dispatcher maps each one to a next-delay value and a local log line.

Exception Categories:
    - ConfigurationError: nothing to deliver, plugin disables itself
    - TransportError: no response at all, retried implicitly by later batches
    - EndpointError: 400/404, the endpoint is wrong, permanent disable
    - RemoteError: any other non-2xx, retried implicitly by later batches
"""

from __future__ import annotations

from enum import StrEnum


class FailureKind(StrEnum):
    """Classification reported for a failed delivery."""

    NO_LEVELS = "NO_LEVELS"
    NO_RESPONSE = "NO_RESPONSE"
    INVALID_URL = "INVALID_URL"
    RATE_LIMITED = "RATE_LIMITED"
    REMOTE_ERROR = "REMOTE_ERROR"


class DeliveryError(Exception):
    """Base class of delivery errors.

    Attributes:
        message: Error message
        context: Extra details (status, reason, ...)
    """

    kind: FailureKind = FailureKind.REMOTE_ERROR

    def __init__(self, message: str, *, context: dict[str, object] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.context: dict[str, object] = context or {}

    def __str__(self) -> str:
        if self.context:
            ctx_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{self.message} [{ctx_str}]"
        return self.message


class ConfigurationError(DeliveryError):
    """No severities subscribed; the plugin has nothing to do."""

    kind = FailureKind.NO_LEVELS


class TransportError(DeliveryError):
    """The request got no response (connection refused, DNS, timeout)."""

    kind = FailureKind.NO_RESPONSE


class EndpointError(DeliveryError):
    """The endpoint rejected the request as malformed or unknown (400/404).

    Attributes:
        status: HTTP status code
    """

    kind = FailureKind.INVALID_URL

    def __init__(
        self,
        message: str,
        *,
        status: int,
        context: dict[str, object] | None = None,
    ) -> None:
        super().__init__(message, context={"status": status, **(context or {})})
        self.status = status


class RemoteError(DeliveryError):
    """Any other non-2xx response.

    Attributes:
        status: HTTP status code
        reason: HTTP reason phrase
        body: Response body (may be empty)
    """

    kind = FailureKind.REMOTE_ERROR

    def __init__(
        self,
        message: str,
        *,
        status: int,
        reason: str = "",
        body: str = "",
        context: dict[str, object] | None = None,
    ) -> None:
        super().__init__(message, context=context)
        self.status = status
        self.reason = reason
        self.body = body

    @property
    def detail(self) -> str:
        """``"<status> <reason> - <body>"`` as shown in local warnings."""
        return f"{self.status} {self.reason} - {self.body}".strip()


class RateLimitedError(RemoteError):
    """HTTP 429; the remote asked us to wait.

    Attributes:
        retry_after: Seconds to wait before the next request
    """

    kind = FailureKind.RATE_LIMITED

    def __init__(
        self,
        message: str,
        *,
        retry_after: float,
        reason: str = "",
        body: str = "",
    ) -> None:
        super().__init__(message, status=429, reason=reason, body=body)
        self.retry_after = retry_after
