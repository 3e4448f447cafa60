"""Plugin contract between the logger core and its extensions.

``LoggerHost`` is everything a plugin may use: severity subscriptions, the
marker protocol, display configuration and plain logging. Plugins never see
the concrete ``Logger`` class.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from src.core.config import LoggerLevel


type SeverityCallback = Callable[[list[Any]], None]


class LoggerHost(Protocol):
    """Narrow logger interface exposed to plugins."""

    @property
    def display_prefix(self) -> str: ...

    def subscribe(self, severity: LoggerLevel, callback: SeverityCallback) -> None: ...

    def emit(self, severity: LoggerLevel, parts: Sequence[Any]) -> None: ...

    def register_marker(self, token: str) -> str: ...

    def has_marker(self, token: str, parts: Sequence[Any]) -> bool: ...

    def strip_markers(self, parts: Sequence[Any]) -> list[Any]: ...

    def debug(self, *parts: Any) -> None: ...

    def info(self, *parts: Any) -> None: ...

    def warn(self, *parts: Any) -> None: ...

    def error(self, *parts: Any) -> None: ...


class LoggerPlugin:
    """Base class for logger extensions.

    Subclasses override ``init()``; ``apply()`` is called by ``Logger.use``.

    Args:
        name: Plugin name (diagnostics only)
    """

    def __init__(self, name: str) -> None:
        self.name = name
        self.host: LoggerHost | None = None

    def apply(self, host: LoggerHost) -> LoggerHost:
        """Attach to ``host`` and run ``init()``."""
        self.host = host
        return self.init()

    def init(self) -> LoggerHost:
        return self.ensure_host()

    def ensure_host(self) -> LoggerHost:
        if self.host is None:
            msg = f"Plugin {self.name} is not attached to a logger"
            raise RuntimeError(msg)
        return self.host

    async def aclose(self) -> None:
        """Release plugin resources (no-op by default)."""
