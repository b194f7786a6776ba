"""Append-only record logs.

This module owns the account and transfer NDJSON logs in the output
directory. Writers only ever append; readers load a whole log back for
the export and persistence stages.
"""

from __future__ import annotations

from pathlib import Path
from types import TracebackType
from typing import Callable, TextIO, TypeVar

from core.constants import ACCOUNTS_LOG_FILE_NAME, TRANSFERS_LOG_FILE_NAME
from core.errors import DumpscanStoreError
from core.types import AccountRecord, TransferRecord
from store.record_payload import (
    account_record_from_payload,
    account_record_to_payload,
    iter_payload_lines,
    serialize_payload_line,
    transfer_record_from_payload,
    transfer_record_to_payload,
)

_RecordT = TypeVar("_RecordT")


def accounts_log_path(output_dir: Path) -> Path:
    """Return the account discovery log path."""
    return output_dir / ACCOUNTS_LOG_FILE_NAME


def transfers_log_path(output_dir: Path) -> Path:
    """Return the transfer log path."""
    return output_dir / TRANSFERS_LOG_FILE_NAME


class RecordLogWriter:
    """Scoped append-mode writer for both record logs.

    Handles are opened on ``__enter__`` and always closed on ``__exit__``.
    Lines are flushed as they are written so a crashed run leaves every
    emitted record on disk.
    """

    def __init__(self, output_dir: Path) -> None:
        self._accounts_path = accounts_log_path(output_dir)
        self._transfers_path = transfers_log_path(output_dir)
        self._accounts_handle: TextIO | None = None
        self._transfers_handle: TextIO | None = None

    def __enter__(self) -> "RecordLogWriter":
        self._accounts_path.parent.mkdir(parents=True, exist_ok=True)
        try:
            self._accounts_handle = _open_append(self._accounts_path)
            self._transfers_handle = _open_append(self._transfers_path)
        except OSError as error:
            self.close()
            raise DumpscanStoreError(
                f"Failed to open record logs in {self._accounts_path.parent}: {error}. "
                "Check write permissions for the output directory."
            ) from error
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        self.close()

    def append_account(self, record: AccountRecord) -> None:
        """Append one account discovery event."""
        _write_line(
            self._accounts_handle, serialize_payload_line(account_record_to_payload(record))
        )

    def append_transfer(self, record: TransferRecord) -> None:
        """Append one transfer event."""
        _write_line(
            self._transfers_handle, serialize_payload_line(transfer_record_to_payload(record))
        )

    def close(self) -> None:
        """Close any open log handle."""
        for handle in (self._accounts_handle, self._transfers_handle):
            if handle is not None:
                handle.close()
        self._accounts_handle = None
        self._transfers_handle = None


def read_account_records(output_dir: Path) -> list[AccountRecord]:
    """Load every account event from the account log.

    Args:
        output_dir: Run output directory.

    Returns:
        Records in append order, empty when the log does not exist.

    Raises:
        DumpscanStoreError: If a log line is invalid.
    """
    return _read_records(accounts_log_path(output_dir), account_record_from_payload)


def read_transfer_records(output_dir: Path) -> list[TransferRecord]:
    """Load every transfer event from the transfer log.

    Args:
        output_dir: Run output directory.

    Returns:
        Records in append order, empty when the log does not exist.

    Raises:
        DumpscanStoreError: If a log line is invalid.
    """
    return _read_records(transfers_log_path(output_dir), transfer_record_from_payload)


def _read_records(
    records_path: Path,
    parse_payload: Callable[[dict], _RecordT],
) -> list[_RecordT]:
    """Parse a record log into typed records."""
    if not records_path.exists():
        return []
    records: list[_RecordT] = []
    try:
        for line_number, payload in iter_payload_lines(records_path):
            records.append(_parse_record(parse_payload, payload, line_number))
    except ValueError as error:
        raise DumpscanStoreError(
            f"Failed to read record log {records_path}: {error}. "
            "Remove or repair the malformed line and rerun the export."
        ) from error
    except OSError as error:
        raise DumpscanStoreError(
            f"Failed to read record log {records_path}: {error}."
        ) from error
    return records


def _parse_record(
    parse_payload: Callable[[dict], _RecordT],
    payload: dict,
    line_number: int,
) -> _RecordT:
    try:
        return parse_payload(payload)
    except ValueError as error:
        raise ValueError(f"Invalid record at line {line_number}: {error}") from error


def _open_append(path: Path) -> TextIO:
    return path.open("a", encoding="utf-8", buffering=1)


def _write_line(handle: TextIO | None, line: str) -> None:
    if handle is None:
        raise DumpscanStoreError("Record log writer is not open; use it as a context manager.")
    try:
        handle.write(line)
    except (OSError, UnicodeEncodeError) as error:
        raise DumpscanStoreError(
            f"Failed to append to record log {handle.name}: {error}. "
            "Check free disk space and that record fields are valid text."
        ) from error
