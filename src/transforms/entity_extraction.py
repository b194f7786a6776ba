"""Financial entity extraction from context windows.

This module matches account identifiers, bank codes, dates and amounts
inside one context string. Identifiers are deduplicated per window while
amounts keep their position, since the first amount is the one used
for transfer inference.
"""

from __future__ import annotations

import re
from typing import Iterable

from core.types import EntityHit

ACCOUNT_ID_PATTERN = re.compile(r"\b[A-Z]{2}\d{2}[A-Z0-9]{11,30}\b")
BANK_CODE_PATTERN = re.compile(r"\b[A-Z]{6}[A-Z0-9]{2}(?:[A-Z0-9]{3})?\b")
DATE_PATTERN = re.compile(r"\b(?:\d{4}[-/]\d{2}[-/]\d{2}|\d{2}[-/]\d{2}[-/]\d{4})\b")
# "." groups thousands and "," marks decimals. Amounts are matched after
# identifier and date spans are blanked out, so only digit, separator and
# time-of-day boundaries need rejecting. Currency codes may touch the number.
AMOUNT_PATTERN = re.compile(
    r"(?<![\d.,:])[-+]?(?:\d{1,3}(?:\.\d{3})+|\d+)(?:,\d{2})?(?![\d:]|[.,]\d)"
)
_MASKED_PATTERNS = (ACCOUNT_ID_PATTERN, BANK_CODE_PATTERN, DATE_PATTERN)


def extract_entities(context: str) -> EntityHit:
    """Extract entity candidates from one context string.

    Args:
        context: Space-joined window of lines.

    Returns:
        Deduplicated identifiers and dates plus positional amounts.
    """
    return EntityHit(
        account_ids=_unique_matches(ACCOUNT_ID_PATTERN.findall(context)),
        bank_codes=_unique_matches(BANK_CODE_PATTERN.findall(context)),
        dates=_unique_matches(DATE_PATTERN.findall(context)),
        amounts=tuple(
            normalize_amount(raw) for raw in AMOUNT_PATTERN.findall(_mask_identifiers(context))
        ),
    )


def normalize_amount(raw_amount: str) -> str:
    """Normalize a locale amount into a plain decimal string.

    Args:
        raw_amount: Amount such as ``"1.234,56"``.

    Returns:
        Amount without thousands separators and with ``.`` as decimal
        point, e.g. ``"1234.56"``.
    """
    return raw_amount.strip().replace(".", "").replace(",", ".", 1)


def _mask_identifiers(context: str) -> str:
    """Blank identifier and date spans, keeping character offsets."""
    for pattern in _MASKED_PATTERNS:
        context = pattern.sub(lambda match: " " * len(match.group()), context)
    return context


def _unique_matches(matches: Iterable[str]) -> tuple[str, ...]:
    """Trim matches and drop repeats, keeping first-seen order."""
    return tuple(dict.fromkeys(match.strip() for match in matches))
