"""Line reconstruction across chunk boundaries.

This module splits decoded chunk text into logical lines and holds the
incomplete trailing fragment back for the next chunk.
"""

from __future__ import annotations

from dataclasses import dataclass
import re

# Newline variants plus NUL, SOH and STX, which act as soft record
# separators in semi-structured binary dumps.
_LINE_DELIMITER_PATTERN = re.compile(r"\r\n|[\r\n\x00\x01\x02]")
_WHITESPACE_PATTERN = re.compile(r"\s+")


@dataclass(frozen=True)
class SplitResult:
    """Completed lines and the carried tail.

    Attributes:
        lines: Normalized, non-empty completed lines in positional order.
        tail: Trailing fragment to prepend to the next chunk.
    """

    lines: tuple[str, ...]
    tail: str


def split_lines(tail: str, text: str) -> SplitResult:
    """Split ``tail + text`` into completed lines and a new tail.

    Args:
        tail: Fragment carried from the previous chunk.
        text: Decoded text of the current chunk.

    Returns:
        Completed lines plus the last, possibly incomplete, fragment.
    """
    parts = _LINE_DELIMITER_PATTERN.split(tail + text)
    new_tail = parts.pop()
    lines = tuple(line for line in (normalize_line(part) for part in parts) if line)
    return SplitResult(lines=lines, tail=new_tail)


def normalize_line(raw_line: str) -> str:
    """Collapse whitespace runs to one space and trim both ends."""
    return _WHITESPACE_PATTERN.sub(" ", raw_line).strip()
