"""Small helpers shared by the logger core and its plugins."""

from __future__ import annotations

import pprint
import random
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

# Prefix delimiters stripped when deriving a display name from "(aya)"-style prefixes
_PREFIX_DELIMITERS: tuple[str, ...] = ("{}", "[]", "()", "<>", "||")

# Types rendered with str() instead of pprint
_PLAIN_TYPES: tuple[type, ...] = (str, int, float, bool, type(None))

# pprint settings for non-scalar message parts
_PRETTY_DEPTH = 4
_PRETTY_WIDTH = 120


def choose[T](items: Sequence[T]) -> T:
    """Pick one element uniformly at random."""
    return random.choice(items)


def strip_prefix_delimiters(text: str) -> str:
    """Remove one pair of wrapping delimiters from a prefix.

    Example:
        >>> strip_prefix_delimiters("(aya)")
        'aya'
        >>> strip_prefix_delimiters("aya")
        'aya'
    """
    for opening, closing in _PREFIX_DELIMITERS:
        if len(text) >= 2 and text.startswith(opening) and text.endswith(closing):
            return text[1:-1]
    return text


def format_part(part: Any, *, fenced: bool = False) -> str:
    """Render one message part as text.

    Args:
        part: Any object passed to a log call
        fenced: Wrap pretty-printed objects in a markdown code block

    Returns:
        Rendered text
    """
    if isinstance(part, _PLAIN_TYPES):
        return str(part)
    rendered = pprint.pformat(part, depth=_PRETTY_DEPTH, width=_PRETTY_WIDTH)
    if fenced:
        return f"```py\n{rendered}\n```"
    return rendered


def join_parts(parts: Iterable[Any], *, fenced: bool = False) -> str:
    """Render and join message parts with single spaces."""
    return " ".join(format_part(part, fenced=fenced) for part in parts)
