"""Shared typed models.

This module defines immutable data models used by the transform,
ingest and store layers to keep interfaces explicit and stable.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from core.constants import (
    TRANSFER_CURRENCY,
    TRANSFER_DESCRIPTION,
    TRANSFER_STATUS,
    TRANSFER_TYPE,
)


@dataclass(frozen=True)
class DecodedChunk:
    """Best-effort decoding of one byte chunk.

    Attributes:
        text: Decoded text, never None.
        encoding: Label of the candidate encoding that won.
    """

    text: str
    encoding: str


@dataclass(frozen=True)
class EntityHit:
    """Entities matched inside one context window.

    Attributes:
        account_ids: Distinct account identifiers in match order.
        bank_codes: Distinct bank identifier codes in match order.
        dates: Distinct date substrings in match order.
        amounts: Normalized amounts in match order, duplicates kept.
    """

    account_ids: tuple[str, ...] = ()
    bank_codes: tuple[str, ...] = ()
    dates: tuple[str, ...] = ()
    amounts: tuple[str, ...] = ()


@dataclass(frozen=True)
class AccountRecord:
    """Account discovery event.

    Attributes:
        account_id: Candidate account identifier, the natural key.
        bank_code: First bank code seen in the same window, if any.
        discovered_at: ISO-8601 UTC emission time.
        source: Base name of the originating input.
        encoding: Encoding label of the chunk the record came from.
    """

    account_id: str
    bank_code: str | None
    discovered_at: str
    source: str
    encoding: str | None = None


@dataclass(frozen=True)
class TransferRecord:
    """Transfer inferred from two identifiers sharing a window.

    Attributes:
        id: ``source:chunk_index:random`` emission identifier.
        from_account: First identifier in extraction order.
        to_account: Second identifier in extraction order.
        amount: First amount found in the window.
        timestamp: First date found, or emission time.
        source: Base name of the originating input.
        encoding: Encoding label of the chunk the record came from.
    """

    id: str
    from_account: str
    to_account: str
    amount: float
    timestamp: str
    source: str
    encoding: str | None = None
    currency: str = TRANSFER_CURRENCY
    description: str = TRANSFER_DESCRIPTION
    status: str = TRANSFER_STATUS
    type: str = TRANSFER_TYPE


class ScanState(str, Enum):
    """Per-input scan state.

    ``FINAL_TAIL`` only emits account records: the leftover fragment is
    not guaranteed to hold a complete multi-entity context, so transfer
    inference is skipped there.
    """

    STREAMING = "streaming"
    FINAL_TAIL = "final_tail"
    DONE = "done"


@dataclass(frozen=True)
class ScanOptions:
    """Scan command options.

    Attributes:
        source_uri: Input file, directory, or ``s3://bucket/prefix``.
        resume: Resume from the byte-offset checkpoint.
        output_uri: Optional ``s3://`` destination for run artifacts.
        persist: Push exported records to the staging store if configured.
        create_staging_tables: Create staging tables before persisting.
    """

    source_uri: str
    resume: bool = False
    output_uri: str | None = None
    persist: bool = True
    create_staging_tables: bool = False


@dataclass(frozen=True)
class FileScanSummary:
    """Counters for one scanned input.

    Attributes:
        source: Input base name.
        chunk_count: Chunks read during this run.
        line_count: Completed lines produced.
        account_count: Account records appended.
        transfer_count: Transfer records appended.
        final_state: State reached when the scan returned.
    """

    source: str
    chunk_count: int
    line_count: int
    account_count: int
    transfer_count: int
    final_state: ScanState = ScanState.DONE


@dataclass(frozen=True)
class ExportSummary:
    """Flat export output.

    Attributes:
        accounts_path: Deduplicated account table path.
        transfers_path: Transfer table path.
        account_count: Unique accounts written.
        transfer_count: Transfers written.
    """

    accounts_path: str
    transfers_path: str
    account_count: int
    transfer_count: int


@dataclass(frozen=True)
class PersistenceReport:
    """Outcome of one staging persistence pass.

    Attributes:
        enabled: Whether a staging store was configured.
        inserted: Rows actually inserted.
        skipped: Rows ignored because the key already existed.
        failed: Statements that raised.
        errors: One message per failed statement.
    """

    enabled: bool
    inserted: int = 0
    skipped: int = 0
    failed: int = 0
    errors: tuple[str, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class IngestSummary:
    """Result of a complete scan run.

    Attributes:
        files: Per-input summaries in processing order.
        export: Flat export output.
        persistence: Staging persistence outcome.
        uploaded_uri: Artifact destination when uploaded.
    """

    files: tuple[FileScanSummary, ...]
    export: ExportSummary
    persistence: PersistenceReport
    uploaded_uri: str | None = None
