"""Flat tabular exports of the record logs.

This module reads both append logs back, keeps the last event per
account id, and writes CSV tables through pyarrow. The whole log is held
in memory, so very large unique-account counts are the scaling ceiling
of a run.
"""

from __future__ import annotations

from pathlib import Path

import pyarrow as pa
import pyarrow.csv as pa_csv

from core.constants import (
    ACCOUNTS_TABLE_FILE_NAME,
    ACCOUNT_TABLE_COLUMNS,
    TRANSFERS_TABLE_FILE_NAME,
    TRANSFER_TABLE_COLUMNS,
)
from core.errors import DumpscanStoreError
from core.logging_config import get_logger
from core.types import AccountRecord, ExportSummary, TransferRecord
from store.record_log import read_account_records, read_transfer_records

_LOGGER = get_logger(__name__)

_ACCOUNT_SCHEMA = pa.schema([(column, pa.string()) for column in ACCOUNT_TABLE_COLUMNS])
_TRANSFER_SCHEMA = pa.schema(
    [
        (column, pa.float64() if column == "amount" else pa.string())
        for column in TRANSFER_TABLE_COLUMNS
    ]
)


def deduplicate_accounts(records: list[AccountRecord]) -> list[AccountRecord]:
    """Keep one record per account id, the last appended one.

    Args:
        records: Account events in append order.

    Returns:
        Unique records ordered by first appearance of each id.
    """
    latest_by_id: dict[str, AccountRecord] = {}
    for record in records:
        latest_by_id[record.account_id] = record
    return list(latest_by_id.values())


def export_tables(output_dir: Path) -> ExportSummary:
    """Write the account and transfer CSV tables from the logs.

    Args:
        output_dir: Run output directory holding the append logs.

    Returns:
        Export summary with table paths and row counts.

    Raises:
        DumpscanStoreError: If logs are malformed or tables cannot be written.
    """
    accounts = deduplicate_accounts(read_account_records(output_dir))
    transfers = read_transfer_records(output_dir)
    accounts_path = output_dir / ACCOUNTS_TABLE_FILE_NAME
    transfers_path = output_dir / TRANSFERS_TABLE_FILE_NAME
    _write_table(_accounts_table(accounts), accounts_path)
    _write_table(_transfers_table(transfers), transfers_path)
    _LOGGER.info(
        "export_completed",
        output_dir=str(output_dir),
        account_count=len(accounts),
        transfer_count=len(transfers),
    )
    return ExportSummary(
        accounts_path=str(accounts_path),
        transfers_path=str(transfers_path),
        account_count=len(accounts),
        transfer_count=len(transfers),
    )


def _accounts_table(records: list[AccountRecord]) -> pa.Table:
    """Build the fixed-column account table."""
    columns = {
        "accountId": [record.account_id for record in records],
        "bankCode": [record.bank_code for record in records],
        "discoveredAt": [record.discovered_at for record in records],
        "source": [record.source for record in records],
    }
    return pa.table(columns, schema=_ACCOUNT_SCHEMA)


def _transfers_table(records: list[TransferRecord]) -> pa.Table:
    """Build the fixed-column transfer table."""
    columns = {
        "id": [record.id for record in records],
        "fromAccount": [record.from_account for record in records],
        "toAccount": [record.to_account for record in records],
        "amount": [record.amount for record in records],
        "currency": [record.currency for record in records],
        "timestamp": [record.timestamp for record in records],
        "status": [record.status for record in records],
        "type": [record.type for record in records],
        "source": [record.source for record in records],
    }
    return pa.table(columns, schema=_TRANSFER_SCHEMA)


def _write_table(table: pa.Table, table_path: Path) -> None:
    """Write one CSV table with its header row."""
    try:
        pa_csv.write_csv(table, str(table_path))
    except (OSError, pa.ArrowException) as error:
        raise DumpscanStoreError(
            f"Failed to write export table at {table_path}: {error}. "
            "Check write permissions and available disk space."
        ) from error
