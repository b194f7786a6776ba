"""Unit tests for CSV table export."""

from __future__ import annotations

import csv
from pathlib import Path

from core.types import AccountRecord, TransferRecord
from store.record_log import RecordLogWriter
from store.tabular_export import deduplicate_accounts, export_tables


def _account(account_id: str, source: str) -> AccountRecord:
    return AccountRecord(
        account_id=account_id,
        bank_code=None,
        discovered_at="2024-01-01T00:00:00+00:00",
        source=source,
    )


def _read_rows(path: str) -> list[dict[str, str]]:
    with Path(path).open(encoding="utf-8", newline="") as handle:
        return list(csv.DictReader(handle))


def test_deduplicate_accounts_keeps_last_event() -> None:
    """The last event per id should win, ordered by first appearance."""
    records = [_account("A", "one"), _account("B", "one"), _account("A", "three")]

    unique = deduplicate_accounts(records)

    assert [(record.account_id, record.source) for record in unique] == [
        ("A", "three"),
        ("B", "one"),
    ]


def test_export_tables_deduplicates_accounts(tmp_path) -> None:
    """Three events for one id should export one row with the last source."""
    with RecordLogWriter(tmp_path) as writer:
        for source in ("one.bin", "two.bin", "three.bin"):
            writer.append_account(_account("ES9121000418450200051332", source))

    summary = export_tables(tmp_path)
    rows = _read_rows(summary.accounts_path)

    assert summary.account_count == 1 and rows[0]["source"] == "three.bin"


def test_export_tables_writes_fixed_columns(tmp_path) -> None:
    """Both tables should carry the documented header rows."""
    with RecordLogWriter(tmp_path) as writer:
        writer.append_transfer(
            TransferRecord(
                id="a.bin:1:abcd1234",
                from_account="ES9121000418450200051332",
                to_account="DE89370400440532013000",
                amount=1500.0,
                timestamp="2024-03-15",
                source="a.bin",
            )
        )

    summary = export_tables(tmp_path)
    transfer_rows = _read_rows(summary.transfers_path)

    assert list(transfer_rows[0]) == [
        "id",
        "fromAccount",
        "toAccount",
        "amount",
        "currency",
        "timestamp",
        "status",
        "type",
        "source",
    ]
    assert float(transfer_rows[0]["amount"]) == 1500.0
    assert transfer_rows[0]["currency"] == "UNKNOWN"


def test_export_tables_without_logs_writes_headers_only(tmp_path) -> None:
    """An empty run should still produce both tables."""
    summary = export_tables(tmp_path)

    with Path(summary.accounts_path).open(encoding="utf-8") as handle:
        header = handle.readline().strip()

    assert summary.account_count == 0 and summary.transfer_count == 0
    assert header.replace('"', "") == "accountId,bankCode,discoveredAt,source"
