"""Logger core built on loguru.

Each ``Logger`` instance renders its own records through loguru sinks that
are filtered on the instance id, so several loggers can coexist in one
process without duplicating output. Besides writing lines it:

- notifies severity observers registered by plugins (raw parts, markers kept)
- owns the marker registry used to keep plugin diagnostics out of plugins
- exposes the narrow ``LoggerHost`` interface to plugins

Example:
    >>> log = Logger({"prefix": "(api)"})
    >>> log.info("listening on", 8080)
    >>> log.error("request failed", {"status": 500})
"""

from __future__ import annotations

import json
import sys
from collections import defaultdict
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any, TextIO

from loguru import logger

from src.core.common import format_part, join_parts
from src.core.config import LoggerConfig
from src.core.markers import MarkerRegistry
from src.core.plugin import LoggerPlugin

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from loguru import Record

    from src.core.config import LoggerLevel
    from src.core.plugin import SeverityCallback

# Remove default handler to prevent duplicate logs
logger.remove()


# =============================================================================
# Format Templates
# =============================================================================

_LOGURU_LEVELS: dict[str, str] = {
    "debug": "DEBUG",
    "info": "INFO",
    "warn": "WARNING",
    "error": "ERROR",
}

_INSTANCE_KEY = "aya_instance"

_JSON_SCALARS: tuple[type, ...] = (str, int, float, bool, type(None))

INTERNAL_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
    "<level>{message}</level>"
)


def to_loguru_format(template: str, *, bold_level: bool = True) -> str:
    """Translate a ``{prefix} {level} {message} {timestamp}`` template.

    Args:
        template: User-facing line template
        bold_level: Wrap the level label in bold markup

    Returns:
        Loguru format string (markup is stripped when colors are off)
    """
    level = "<level>{extra[level_label]}</level>"
    if bold_level:
        level = f"<bold>{level}</bold>"
    return (
        template.replace("{prefix}", "<blue>{extra[prefix]}</blue>")
        .replace("{level}", level)
        .replace("{timestamp}", "{time:YYYY-MM-DD HH:mm:ss.SSS}")
    )


# =============================================================================
# Logger
# =============================================================================


class Logger:
    """Structured logger with severity observers and plugins.

    Args:
        config: LoggerConfig, a mapping of its fields, or None for env defaults
        stream: Console stream (default: sys.stderr at construction time)
    """

    def __init__(
        self,
        config: LoggerConfig | Mapping[str, Any] | None = None,
        *,
        stream: TextIO | None = None,
    ) -> None:
        if config is None:
            config = LoggerConfig()
        elif not isinstance(config, LoggerConfig):
            config = LoggerConfig(**config)
        self._cfg = config
        self._markers = MarkerRegistry()
        self._observers: defaultdict[str, list[SeverityCallback]] = defaultdict(list)
        self._plugins: list[LoggerPlugin] = []
        self._sink_ids: list[int] = []

        self._log = logger.bind(**{_INSTANCE_KEY: self.instance_id}, prefix=config.prefix)
        self._add_sinks(stream or sys.stderr)

    # -------------------------------------------------------------------------
    # Sinks
    # -------------------------------------------------------------------------

    def _owns(self, record: Record) -> bool:
        return record["extra"].get(_INSTANCE_KEY) == self.instance_id

    def _add_sinks(self, stream: TextIO) -> None:
        cfg = self._cfg
        console_format = (
            "{extra[json]}"
            if cfg.format == "json"
            else to_loguru_format(cfg.log_format, bold_level=cfg.bold_level)
        )
        self._sink_ids.append(
            logger.add(
                stream,
                format=console_format,
                level="DEBUG",
                filter=self._owns,
                colorize=None if cfg.format == "text" else False,
            )
        )

        if cfg.file.use:
            self._sink_ids.append(
                logger.add(
                    cfg.file.path / cfg.file.name_format,
                    format=to_loguru_format(cfg.file.log_format, bold_level=False),
                    level="DEBUG",
                    filter=self._owns,
                    rotation=cfg.file.max_size,
                    colorize=False,
                    encoding="utf-8",
                )
            )

        if cfg.verbose:
            self._sink_ids.append(
                logger.add(
                    sys.stderr,
                    format=INTERNAL_FORMAT,
                    level="DEBUG",
                    filter=lambda record: _INSTANCE_KEY not in record["extra"],
                )
            )

    # -------------------------------------------------------------------------
    # Read accessors
    # -------------------------------------------------------------------------

    @property
    def config(self) -> LoggerConfig:
        return self._cfg

    @property
    def instance_id(self) -> str:
        return self._markers.instance_id

    @property
    def display_prefix(self) -> str:
        return self._cfg.prefix

    @property
    def plugins(self) -> list[LoggerPlugin]:
        return list(self._plugins)

    # -------------------------------------------------------------------------
    # Marker protocol
    # -------------------------------------------------------------------------

    def register_marker(self, token: str) -> str:
        return self._markers.register(token)

    def has_marker(self, token: str, parts: Sequence[Any]) -> bool:
        return self._markers.contains(token, parts)

    def strip_markers(self, parts: Sequence[Any]) -> list[Any]:
        return self._markers.strip(parts)

    # -------------------------------------------------------------------------
    # Observers
    # -------------------------------------------------------------------------

    def subscribe(self, severity: LoggerLevel, callback: SeverityCallback) -> None:
        """Call ``callback(parts)`` for every ``severity`` record."""
        self._observers[severity].append(callback)

    def on_warn(self, callback: SeverityCallback) -> None:
        self.subscribe("warn", callback)

    def on_error(self, callback: SeverityCallback) -> None:
        self.subscribe("error", callback)

    def emit(self, severity: LoggerLevel, parts: Sequence[Any]) -> None:
        """Notify ``severity`` observers; observer errors are isolated."""
        for callback in list(self._observers.get(severity, ())):
            try:
                callback(list(parts))
            except Exception:
                logger.exception("Observer for '{}' records raised", severity)

    # -------------------------------------------------------------------------
    # Logging
    # -------------------------------------------------------------------------

    def _render_json(self, level: LoggerLevel, parts: Sequence[Any]) -> str:
        payload = {
            "level": level,
            "messages": [p if isinstance(p, _JSON_SCALARS) else format_part(p) for p in parts],
            "timestamp": datetime.now(UTC).isoformat(),
        }
        return json.dumps(payload, ensure_ascii=False, default=str)

    def log(self, level: LoggerLevel, parts: Sequence[Any]) -> None:
        """Write one record and notify observers.

        Args:
            level: Record level
            parts: Message parts (markers are hidden from the output)
        """
        if level not in self._cfg.levels:
            return

        visible = self._markers.strip(parts)
        extra: dict[str, Any] = {"level_label": self._cfg.level_prefixes.for_level(level)}
        if self._cfg.format == "json":
            extra["json"] = self._render_json(level, visible)
        self._log.bind(**extra).log(_LOGURU_LEVELS[level], join_parts(visible))

        self.emit(level, parts)

    def debug(self, *parts: Any) -> None:
        self.log("debug", parts)

    def info(self, *parts: Any) -> None:
        self.log("info", parts)

    def warn(self, *parts: Any) -> None:
        self.log("warn", parts)

    def error(self, *parts: Any) -> None:
        self.log("error", parts)

    # -------------------------------------------------------------------------
    # Plugins & lifecycle
    # -------------------------------------------------------------------------

    def use(self, plugin: LoggerPlugin) -> Logger:
        """Attach a plugin.

        Raises:
            TypeError: If ``plugin`` is not a LoggerPlugin
        """
        if not isinstance(plugin, LoggerPlugin):
            msg = "Plugin must be an instance of LoggerPlugin"
            raise TypeError(msg)
        self._plugins.append(plugin)
        plugin.apply(self)
        return self

    def close(self) -> None:
        """Remove this logger's sinks."""
        for sink_id in self._sink_ids:
            logger.remove(sink_id)
        self._sink_ids.clear()

    async def aclose(self) -> None:
        """Close plugins (awaiting pending deliveries), then the sinks."""
        for plugin in self._plugins:
            await plugin.aclose()
        self.close()


__all__ = ["INTERNAL_FORMAT", "Logger", "to_loguru_format"]
