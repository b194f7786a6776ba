"""Record emission from entity hits.

This module turns the entities of one context window into account
discovery and transfer records and appends them to the record logs.
"""

from __future__ import annotations

from datetime import datetime, timezone
import random
import string
from typing import Callable, Protocol

from core.constants import TRANSFER_ID_SUFFIX_LENGTH
from core.types import AccountRecord, EntityHit, TransferRecord

_ID_ALPHABET = string.ascii_lowercase + string.digits


class RecordSink(Protocol):
    """Append target for emitted records."""

    def append_account(self, record: AccountRecord) -> None: ...

    def append_transfer(self, record: TransferRecord) -> None: ...


def utc_now_iso() -> str:
    """Return the current UTC time in ISO-8601 format."""
    return datetime.now(timezone.utc).isoformat()


def random_id_suffix() -> str:
    """Return a short random base36 disambiguator."""
    return "".join(random.choices(_ID_ALPHABET, k=TRANSFER_ID_SUFFIX_LENGTH))


class RecordEmitter:
    """Emit records for one input into a record sink."""

    def __init__(
        self,
        sink: RecordSink,
        source: str,
        clock: Callable[[], str] = utc_now_iso,
        id_suffix: Callable[[], str] = random_id_suffix,
    ) -> None:
        self._sink = sink
        self._source = source
        self._clock = clock
        self._id_suffix = id_suffix

    def emit_window(
        self,
        hit: EntityHit,
        chunk_index: int,
        encoding: str | None,
    ) -> tuple[int, int]:
        """Emit records for one in-stream context window.

        Accounts need at least one identifier and one amount. A transfer
        additionally needs two distinct identifiers; an amount alone is
        not evidence of a transfer.

        Args:
            hit: Entities matched in the window.
            chunk_index: One-based index of the chunk being processed.
            encoding: Encoding label of that chunk.

        Returns:
            ``(accounts_emitted, transfers_emitted)``.
        """
        if not hit.account_ids or not hit.amounts:
            return 0, 0
        account_count = self._emit_accounts(hit, encoding)
        if len(hit.account_ids) < 2:
            return account_count, 0
        self._sink.append_transfer(
            TransferRecord(
                id=f"{self._source}:{chunk_index}:{self._id_suffix()}",
                from_account=hit.account_ids[0],
                to_account=hit.account_ids[1],
                amount=float(hit.amounts[0]),
                timestamp=hit.dates[0] if hit.dates else self._clock(),
                source=self._source,
                encoding=encoding,
            )
        )
        return account_count, 1

    def emit_final_tail(self, hit: EntityHit, encoding: str | None) -> int:
        """Emit account records for the leftover tail of an input.

        The tail is matched on its own, so every identifier is kept
        without requiring an amount, and no transfer is inferred.

        Returns:
            Number of account records emitted.
        """
        return self._emit_accounts(hit, encoding)

    def _emit_accounts(self, hit: EntityHit, encoding: str | None) -> int:
        bank_code = hit.bank_codes[0] if hit.bank_codes else None
        for account_id in hit.account_ids:
            self._sink.append_account(
                AccountRecord(
                    account_id=account_id,
                    bank_code=bank_code,
                    discovered_at=self._clock(),
                    source=self._source,
                    encoding=encoding,
                )
            )
        return len(hit.account_ids)
