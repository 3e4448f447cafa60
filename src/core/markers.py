"""Sentinel markers that keep a log call out of plugin pipelines.

A marker is a string of the form ``"{instance_id}::{token}"``. Plugins append
it to the message parts of their own diagnostic log calls; the same plugin
recognises it on the way back in and drops the call, so a failing delivery
never feeds itself.
"""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Sequence

_MARKER_FORMAT = "{instance_id}::{token}"


class MarkerRegistry:
    """Per-logger registry of do-not-propagate tokens.

    Args:
        instance_id: Identifier unique to the owning logger (random if None)
    """

    def __init__(self, instance_id: str | None = None) -> None:
        self._instance_id = instance_id or uuid.uuid4().hex[:12]
        self._tokens: list[str] = []

    @property
    def instance_id(self) -> str:
        return self._instance_id

    def marker_for(self, token: str) -> str:
        """Marker string for ``token`` (registered or not)."""
        return _MARKER_FORMAT.format(instance_id=self._instance_id, token=token)

    def register(self, token: str) -> str:
        """Register ``token`` and return its marker string."""
        if token not in self._tokens:
            self._tokens.append(token)
        return self.marker_for(token)

    def contains(self, token: str, parts: Sequence[Any]) -> bool:
        """True if ``parts`` carries the marker of ``token``."""
        marker = self.marker_for(token)
        return any(isinstance(part, str) and part == marker for part in parts)

    def strip(self, parts: Sequence[Any]) -> list[Any]:
        """Copy of ``parts`` without any registered marker."""
        markers = {self.marker_for(token) for token in self._tokens}
        return [part for part in parts if not (isinstance(part, str) and part in markers)]
