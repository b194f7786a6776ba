"""Shared JSON serialization for account and transfer records.

This module centralizes the camelCase NDJSON payload layout.
It is reused by the append logs, exports and staging persistence.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Iterator

from core.types import AccountRecord, TransferRecord


def account_record_to_payload(record: AccountRecord) -> dict[str, object]:
    """Serialize AccountRecord into JSON-safe payload.

    Args:
        record: Account record instance.

    Returns:
        Dictionary payload for JSON encoding.
    """
    return {
        "accountId": record.account_id,
        "bankCode": record.bank_code,
        "discoveredAt": record.discovered_at,
        "source": record.source,
        "encoding": record.encoding,
    }


def account_record_from_payload(payload: dict[str, Any]) -> AccountRecord:
    """Deserialize JSON payload into AccountRecord.

    Args:
        payload: Serialized record payload. ``bic`` is accepted as a
            legacy alias of ``bankCode``.

    Returns:
        Parsed AccountRecord.

    Raises:
        ValueError: If ``accountId`` is missing.
    """
    account_id = payload.get("accountId")
    if not isinstance(account_id, str) or not account_id:
        raise ValueError("expected non-empty string field 'accountId'")
    bank_code = payload.get("bankCode", payload.get("bic"))
    return AccountRecord(
        account_id=account_id,
        bank_code=str(bank_code) if bank_code else None,
        discovered_at=str(payload.get("discoveredAt", "")),
        source=str(payload.get("source", "")),
        encoding=_optional_str(payload.get("encoding")),
    )


def transfer_record_to_payload(record: TransferRecord) -> dict[str, object]:
    """Serialize TransferRecord into JSON-safe payload."""
    return {
        "id": record.id,
        "fromAccount": record.from_account,
        "toAccount": record.to_account,
        "amount": record.amount,
        "currency": record.currency,
        "description": record.description,
        "timestamp": record.timestamp,
        "status": record.status,
        "type": record.type,
        "source": record.source,
        "encoding": record.encoding,
    }


def transfer_record_from_payload(payload: dict[str, Any]) -> TransferRecord:
    """Deserialize JSON payload into TransferRecord.

    Args:
        payload: Serialized record payload.

    Returns:
        Parsed TransferRecord.

    Raises:
        ValueError: If required fields are missing or amount is not numeric.
    """
    for key in ("id", "fromAccount", "toAccount"):
        if not isinstance(payload.get(key), str):
            raise ValueError(f"expected string field '{key}'")
    try:
        amount = float(payload.get("amount"))  # type: ignore[arg-type]
    except (TypeError, ValueError) as error:
        raise ValueError("expected numeric field 'amount'") from error
    return TransferRecord(
        id=payload["id"],
        from_account=payload["fromAccount"],
        to_account=payload["toAccount"],
        amount=amount,
        timestamp=str(payload.get("timestamp", "")),
        source=str(payload.get("source", "")),
        encoding=_optional_str(payload.get("encoding")),
        currency=str(payload.get("currency") or "UNKNOWN"),
        description=str(payload.get("description") or ""),
        status=str(payload.get("status") or ""),
        type=str(payload.get("type") or ""),
    )


def serialize_payload_line(payload: dict[str, object]) -> str:
    """Render one NDJSON line, newline included."""
    return json.dumps(payload, ensure_ascii=False) + "\n"


def iter_payload_lines(records_path: Path) -> Iterator[tuple[int, dict[str, Any]]]:
    """Yield parsed payloads of a JSONL file with their line numbers.

    Args:
        records_path: Input JSONL file path.

    Yields:
        ``(line_number, payload)`` pairs, blank lines skipped.

    Raises:
        ValueError: If a JSONL row is invalid.
    """
    with records_path.open("r", encoding="utf-8") as handle:
        for line_number, line in enumerate(handle, 1):
            if not line.strip():
                continue
            yield line_number, _parse_payload_line(line, line_number)


def _parse_payload_line(line: str, line_number: int) -> dict[str, Any]:
    """Parse and validate one JSONL payload row.

    Args:
        line: Raw JSONL line.
        line_number: One-based line number.

    Returns:
        Parsed payload dictionary.

    Raises:
        ValueError: If JSON row is invalid.
    """
    try:
        payload = json.loads(line)
    except json.JSONDecodeError as error:
        raise ValueError(
            f"Invalid JSON at line {line_number}: {error.msg}"
        ) from error
    if not isinstance(payload, dict):
        raise ValueError(f"Invalid payload at line {line_number}: expected JSON object")
    return payload


def _optional_str(value: object) -> str | None:
    return str(value) if value is not None else None
