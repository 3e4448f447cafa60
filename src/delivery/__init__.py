"""Webhook delivery for the logger core.

This package batches warn/error records and forwards them to a
Discord-compatible webhook without blocking the caller:

- DeliveryQueue: shared single-worker queue enforcing spacing between requests
- Batcher: pending events drained into at most 10 embeds per flush
- WebhookDispatcher: one POST per chunk, failures mapped to the next delay
- WebhookPlugin: logger plugin wiring the above together
"""

from src.delivery.batcher import Batcher
from src.delivery.dispatcher import WebhookDispatcher
from src.delivery.exceptions import (
    ConfigurationError,
    DeliveryError,
    EndpointError,
    FailureKind,
    RateLimitedError,
    RemoteError,
    TransportError,
)
from src.delivery.models import DeliveryUnit, FlushState, LogEvent, PluginState, Severity
from src.delivery.options import WebhookOptions
from src.delivery.plugin import WebhookPlugin, webhook
from src.delivery.queue import DeliveryQueue

__all__ = [
    "Batcher",
    "ConfigurationError",
    "DeliveryError",
    "DeliveryQueue",
    "DeliveryUnit",
    "EndpointError",
    "FailureKind",
    "FlushState",
    "LogEvent",
    "PluginState",
    "RateLimitedError",
    "RemoteError",
    "Severity",
    "TransportError",
    "WebhookDispatcher",
    "WebhookOptions",
    "WebhookPlugin",
    "webhook",
]
