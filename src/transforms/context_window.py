"""Sliding context windows over chunk lines.

This module joins each line with its neighbours so that fields split
across adjacent lines are matched together.
"""

from __future__ import annotations

from typing import Iterator, Sequence

from core.constants import DEFAULT_WINDOW_RADIUS


def build_contexts(lines: Sequence[str], radius: int = DEFAULT_WINDOW_RADIUS) -> Iterator[str]:
    """Yield one context string per line.

    Args:
        lines: Ordered completed lines of one chunk.
        radius: Lines joined on each side of the current line.

    Yields:
        Space-joined lines ``[max(0, i - radius), i + radius]`` for each index ``i``.

    Raises:
        ValueError: If radius is negative.
    """
    if radius < 0:
        raise ValueError(f"Window radius must be >= 0, got {radius}")
    for index in range(len(lines)):
        start = max(0, index - radius)
        yield " ".join(lines[start : index + radius + 1])
