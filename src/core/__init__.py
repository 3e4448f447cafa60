"""Core module - logger, plugin contract and shared helpers."""

from src.core.config import LoggerConfig, get_logger_config
from src.core.logger import Logger
from src.core.markers import MarkerRegistry
from src.core.plugin import LoggerHost, LoggerPlugin

__all__ = [
    "Logger",
    "LoggerConfig",
    "LoggerHost",
    "LoggerPlugin",
    "MarkerRegistry",
    "get_logger_config",
]
