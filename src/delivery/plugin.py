"""WebhookPlugin -- forwards warn/error records to a webhook.

Wires the Batcher, the WebhookDispatcher and a shared DeliveryQueue into a
logger through the ``LoggerHost`` interface.

State machine::

    uninitialized -> configuring -> active -> disabled
                                 \\-> disabled

``disabled`` is terminal: no levels configured, or the endpoint answered
400/404.

Example:
    >>> queue = DeliveryQueue()
    >>> log = Logger()
    >>> log.use(webhook({"url": "https://discord.com/api/webhooks/..."}, queue))
    >>> log.error("payment failed", {"order": 42})
"""

from __future__ import annotations

from functools import partial
from typing import TYPE_CHECKING, Any

from loguru import logger

from src.core.plugin import LoggerHost, LoggerPlugin
from src.delivery.batcher import Batcher
from src.delivery.dispatcher import INTERNAL_PREFIX, WebhookDispatcher
from src.delivery.exceptions import ConfigurationError
from src.delivery.models import PluginState, Severity
from src.delivery.options import WebhookOptions

if TYPE_CHECKING:
    from collections.abc import Mapping

    import aiohttp

    from src.delivery.queue import DeliveryQueue

# Token of the marker that keeps the plugin's own warnings out of the batch
DO_NOT_PROPAGATE = "doNotSendToWebhook"


class WebhookPlugin(LoggerPlugin):
    """Delivery plugin for webhook endpoints.

    Args:
        options: Validated plugin options
        queue: Shared DeliveryQueue (one per rate-limited endpoint)
        session: Existing aiohttp session (optional)
    """

    def __init__(
        self,
        options: WebhookOptions,
        queue: DeliveryQueue,
        *,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        super().__init__(name="Webhook")
        self._options = options
        self._queue = queue
        self._session = session
        self._state = PluginState.UNINITIALIZED
        self._levels: list[Severity] = []
        self._marker: str | None = None
        self._dispatcher: WebhookDispatcher | None = None
        self._batcher: Batcher | None = None

    # -------------------------------------------------------------------------
    # State
    # -------------------------------------------------------------------------

    @property
    def state(self) -> PluginState:
        return self._state

    @property
    def enabled(self) -> bool:
        return self._state is PluginState.ACTIVE

    @property
    def levels(self) -> list[Severity]:
        return list(self._levels)

    @property
    def options(self) -> WebhookOptions:
        return self._options

    @property
    def batcher(self) -> Batcher | None:
        return self._batcher

    @property
    def dispatcher(self) -> WebhookDispatcher | None:
        return self._dispatcher

    def disable(self, reason: str) -> None:
        """Stop delivering for the rest of the process (logs once)."""
        if self._state is PluginState.DISABLED:
            return
        was_active = self._state is PluginState.ACTIVE
        self._state = PluginState.DISABLED
        logger.debug("WebhookPlugin disabled: {}", reason)
        if was_active:
            self._notice(reason)

    def _notice(self, *parts: Any) -> None:
        host = self.ensure_host()
        if self._marker is None:
            host.warn(INTERNAL_PREFIX, *parts)
        else:
            host.warn(INTERNAL_PREFIX, *parts, self._marker)

    # -------------------------------------------------------------------------
    # Setup
    # -------------------------------------------------------------------------

    def _configure(self, host: LoggerHost) -> None:
        """Build the pipeline; raises ConfigurationError if nothing to deliver."""
        self._levels = [s for s in Severity if s in self._options.levels]
        if not self._levels:
            msg = "No levels specified in webhook plugin, disabling it"
            raise ConfigurationError(msg)

        self._marker = host.register_marker(DO_NOT_PROPAGATE)
        self._dispatcher = WebhookDispatcher(
            self._options,
            host,
            owner=self,
            marker=self._marker,
            base_interval=self._queue.min_spacing,
            session=self._session,
        )
        self._batcher = Batcher(
            self._queue,
            self._dispatcher,
            self._options.unit_models(),
            owner=self,
            flush_interval=self._options.flush_interval,
        )

    def init(self) -> LoggerHost:
        host = self.ensure_host()
        self._state = PluginState.CONFIGURING
        try:
            self._configure(host)
        except ConfigurationError as e:
            self._notice(e.message)
            self._state = PluginState.DISABLED
            return host

        for severity in self._levels:
            host.subscribe(severity.value, partial(self._on_event, severity))
        self._state = PluginState.ACTIVE
        logger.debug("WebhookPlugin active for levels: {}", [s.value for s in self._levels])

        if self._options.show_load_message:
            host.info(INTERNAL_PREFIX, "Webhook plugin initialized!", self._marker)
        return host

    # -------------------------------------------------------------------------
    # Events
    # -------------------------------------------------------------------------

    def _on_event(self, severity: Severity, parts: list[Any]) -> None:
        host = self.ensure_host()
        if host.has_marker(DO_NOT_PROPAGATE, parts):
            return
        if not self.enabled or self._batcher is None:
            return
        self._batcher.record(severity, host.strip_markers(parts))

    async def aclose(self) -> None:
        """Submit pending events, wait for the queue, close the session."""
        if self._batcher is not None:
            await self._batcher.aclose()
        await self._queue.join()
        if self._dispatcher is not None:
            await self._dispatcher.close()


def webhook(
    options: WebhookOptions | Mapping[str, Any],
    queue: DeliveryQueue,
    *,
    session: aiohttp.ClientSession | None = None,
) -> WebhookPlugin:
    """Create a WebhookPlugin from options or a mapping of them.

    Args:
        options: WebhookOptions or a dict with at least ``url``
        queue: Shared DeliveryQueue
        session: Existing aiohttp session (optional)

    Returns:
        Plugin ready for ``Logger.use``
    """
    if not isinstance(options, WebhookOptions):
        options = WebhookOptions(**options)
    return WebhookPlugin(options, queue, session=session)
