"""Best-effort chunk decoding.

This module turns raw byte chunks into text without ever failing.
Each candidate encoding is scored and the most printable result wins.
"""

from __future__ import annotations

import re
from typing import Sequence

from core.constants import CANDIDATE_ENCODINGS, DECODE_EARLY_ACCEPT_SCORE
from core.types import DecodedChunk

# Control characters other than tab, newline and carriage return, the C1
# range, and the replacement character.
_UNREADABLE_PATTERN = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f-\x9f\ufffd]")


def decode_chunk(
    data: bytes,
    candidates: Sequence[str] = CANDIDATE_ENCODINGS,
) -> DecodedChunk:
    """Decode a byte chunk with the best-scoring candidate encoding.

    Args:
        data: Raw chunk bytes, possibly mixed with binary noise.
        candidates: Ordered encoding names; earlier names win ties.

    Returns:
        Decoded text with the label of the chosen encoding.
    """
    if not data:
        return DecodedChunk(text="", encoding=candidates[0])
    best_chunk = DecodedChunk(text="", encoding=candidates[0])
    best_score = -1.0
    for encoding in candidates:
        text = data.decode(encoding, errors="replace")
        score = score_decoding(text)
        if score > best_score:
            best_chunk = DecodedChunk(text=text, encoding=encoding)
            best_score = score
        if score > DECODE_EARLY_ACCEPT_SCORE:
            break
    return best_chunk


def score_decoding(text: str) -> float:
    """Score a candidate decoding by its share of readable characters.

    Args:
        text: Candidate decoded text.

    Returns:
        Ratio in [0, 1] of printable or whitespace characters, where
        replacement characters never count as printable.
    """
    if not text:
        return 0.0
    readable = len(text) - len(_UNREADABLE_PATTERN.findall(text))
    return readable / len(text)
