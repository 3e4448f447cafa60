"""Webhook plugin options.

Loaded from keyword arguments or from environment variables with the
``AYA_WEBHOOK_`` prefix (e.g. ``AYA_WEBHOOK_URL``, ``AYA_WEBHOOK_LEVELS='["warn","error"]'``).
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from src.delivery.models import DEFAULT_UNIT_MODEL, DiscordColor, Severity, UnitModel

DEFAULT_AVATARS: tuple[str, ...] = (
    "https://i.imgur.com/ukfOGMB.jpeg",
    "https://i.imgur.com/gXVlBbC.jpeg",
    "https://i.imgur.com/ZQERluU.jpeg",
    "https://i.imgur.com/BP0lfa3.jpeg",
)

_MAX_COLOR = 0xFFFFFF


def parse_color(value: Any) -> int:
    """Coerce a color option into 0..0xFFFFFF.

    Integers are taken as-is, strings are read as hex ("#FEE75C",
    "0xFEE75C" or "FEE75C"). Anything else, or a value out of range,
    becomes black (0).

    Example:
        >>> parse_color("#ff0000")
        16711680
        >>> parse_color("not a color")
        0
    """
    if isinstance(value, bool):
        return DiscordColor.BLACK
    if isinstance(value, int):
        return value if 0 <= value <= _MAX_COLOR else DiscordColor.BLACK
    if isinstance(value, str):
        text = value.strip().lower().removeprefix("#").removeprefix("0x")
        try:
            parsed = int(text, 16)
        except ValueError:
            return DiscordColor.BLACK
        return parsed if 0 <= parsed <= _MAX_COLOR else DiscordColor.BLACK
    return DiscordColor.BLACK


class SeverityLabels(BaseModel):
    """Embed titles per severity."""

    warn: str = ":warning: Warning"
    error: str = DEFAULT_UNIT_MODEL.title


class SeverityColors(BaseModel):
    """Embed colors per severity (int or hex string)."""

    warn: int = DiscordColor.YELLOW
    error: int = DEFAULT_UNIT_MODEL.color

    @field_validator("warn", "error", mode="before")
    @classmethod
    def _coerce_color(cls, value: Any) -> int:
        return int(parse_color(value))


class WebhookOptions(BaseSettings):
    """Configuration of a ``WebhookPlugin``.

    Attributes:
        url: Webhook endpoint (required)
        username: Display name (default: logger prefix without delimiters)
        avatar_url: One avatar URL, or a list to pick from per request
        levels: Severities delivered to the webhook
        labels: Embed title per severity
        colors: Embed color per severity
        show_load_message: Log an "initialized" notice when attached
        flush_interval: Seconds between batch flushes
        request_timeout: Total timeout of one webhook request (seconds)
    """

    model_config = SettingsConfigDict(
        env_prefix="AYA_WEBHOOK_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
    )

    url: str = Field(description="Webhook URL")
    username: str | None = Field(default=None, description="Display name")
    avatar_url: str | list[str] | None = Field(
        default_factory=lambda: list(DEFAULT_AVATARS),
        description="Avatar URL or list of URLs",
    )
    levels: list[Severity] = Field(
        default_factory=lambda: [Severity.ERROR],
        description="Delivered severities",
    )
    labels: SeverityLabels = Field(default_factory=SeverityLabels)
    colors: SeverityColors = Field(default_factory=SeverityColors)
    show_load_message: bool = Field(default=False, description="Log an init notice")
    flush_interval: float = Field(default=1.0, gt=0, description="Flush period (seconds)")
    request_timeout: float = Field(default=10.0, gt=0, description="Request timeout (seconds)")

    def unit_models(self) -> dict[Severity, UnitModel]:
        """Title/color model of each severity."""
        return {
            severity: UnitModel(
                title=getattr(self.labels, severity.value),
                color=getattr(self.colors, severity.value),
            )
            for severity in Severity
        }
