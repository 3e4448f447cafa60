"""Delivery data models.

Events recorded by the batcher, the units rendered from them and the state
enums of the batcher and the plugin.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import IntEnum, StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

# Discord embed description limit minus headroom
UNIT_BODY_LIMIT = 4096 - 50


class Severity(StrEnum):
    """Levels that can feed the delivery pipeline."""

    WARN = "warn"
    ERROR = "error"


class DiscordColor(IntEnum):
    """Discord Embed color codes (decimal format)."""

    YELLOW = 16705372  # Warning - #FEE75C
    RED = 15548997  # Error - #ED4245
    BLACK = 0


class FlushState(StrEnum):
    """Batcher flush cycle state."""

    IDLE = "idle"
    FLUSHING = "flushing"


class PluginState(StrEnum):
    """Lifecycle of a delivery plugin; DISABLED is terminal."""

    UNINITIALIZED = "uninitialized"
    CONFIGURING = "configuring"
    ACTIVE = "active"
    DISABLED = "disabled"


class LogEvent(BaseModel):
    """One qualifying log call, consumed once by the batcher.

    Attributes:
        severity: Severity the call was logged at
        parts: Message parts, markers already stripped
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    severity: Severity
    parts: tuple[Any, ...]


class UnitModel(BaseModel):
    """Title and color shared by every unit of one severity."""

    model_config = ConfigDict(frozen=True)

    title: str
    color: int = Field(ge=0, le=0xFFFFFF)


# Used for severities without a configured label/color
DEFAULT_UNIT_MODEL = UnitModel(title=":x: Error", color=DiscordColor.RED)


class DeliveryUnit(BaseModel):
    """One embed sent to the webhook.

    Attributes:
        title: Embed title (severity label)
        color: Embed color (0..0xFFFFFF)
        body: Embed description, at most UNIT_BODY_LIMIT characters
        timestamp: Render time (UTC)
    """

    model_config = ConfigDict(frozen=True)

    title: str
    color: int
    body: str = Field(max_length=UNIT_BODY_LIMIT)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))

    def to_payload(self) -> dict[str, Any]:
        """Discord embed dict."""
        return {
            "title": self.title,
            "color": self.color,
            "timestamp": self.timestamp.isoformat(),
            "description": self.body,
        }
