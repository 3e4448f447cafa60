"""Logger configuration models using Pydantic.

All settings can be loaded from environment variables with the ``AYA_``
prefix (nested fields use ``__``, e.g. ``AYA_FILE__USE=true``).
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

LoggerLevel = Literal["debug", "info", "warn", "error"]
LoggerFormat = Literal["text", "json"]

ALL_LEVELS: tuple[LoggerLevel, ...] = ("debug", "info", "warn", "error")


class LevelPrefixes(BaseModel):
    """Text shown in place of ``{level}`` for each level."""

    debug: str = "[🐛 debug]"
    info: str = "[🔍 info]"
    warn: str = "[☢️  warn]"
    error: str = "[❌ error]"

    def for_level(self, level: LoggerLevel) -> str:
        return getattr(self, level)


class FileConfig(BaseModel):
    """File output settings.

    Attributes:
        use: Enable the file sink
        path: Directory for log files
        max_size: Rotation threshold understood by loguru (e.g. "10 MB")
        name_format: File name template (loguru ``{time}`` syntax)
        log_format: Line template for file output
    """

    use: bool = False
    path: Path = Path("./logs")
    max_size: str = "10 MB"
    name_format: str = "{time:YYYY-MM-DD_HH-mm-ss}.log"
    log_format: str = "{prefix} [{timestamp}] [{level}]: {message}"


class LoggerConfig(BaseSettings):
    """Configuration for a ``Logger`` instance.

    Attributes:
        prefix: Text shown in place of ``{prefix}``; also the default display
            name of delivery plugins
        levels: Levels that produce output (others are dropped)
        log_format: Console line template with ``{prefix}``, ``{level}``,
            ``{message}`` and ``{timestamp}`` placeholders
        format: "text" for templated lines, "json" for one JSON object per line
        level_prefixes: Level labels
        bold_level: Render the level label in bold
        file: File output settings
        verbose: Also print the library's own debug records to stderr
    """

    model_config = SettingsConfigDict(
        env_prefix="AYA_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
    )

    prefix: str = Field(default="(aya)", description="Log line prefix")
    levels: list[LoggerLevel] = Field(
        default_factory=lambda: list(ALL_LEVELS),
        description="Enabled levels",
    )
    log_format: str = Field(
        default="{prefix} {level} {message}",
        description="Console line template",
    )
    format: LoggerFormat = Field(default="text", description="Output format")
    level_prefixes: LevelPrefixes = Field(default_factory=LevelPrefixes)
    bold_level: bool = Field(default=True, description="Bold level label")
    file: FileConfig = Field(default_factory=FileConfig)
    verbose: bool = Field(default=False, description="Print internal debug records")


def get_logger_config() -> LoggerConfig:
    """Load logger configuration from environment.

    Returns:
        LoggerConfig instance with values from env vars
    """
    return LoggerConfig()
