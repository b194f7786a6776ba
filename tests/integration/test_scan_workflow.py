"""Integration tests for scan, resume, upload and staging workflows."""

from __future__ import annotations

import csv
import io
import json
import os
from dataclasses import replace
from pathlib import Path

import pytest
from sqlalchemy import create_engine, func, select

from core.errors import DumpscanIngestError
from core.types import AccountRecord, ScanOptions
from dumpscan import scan_dumps as sdk_scan_dumps
from ingest.input_reader import LocalChunkSource
from ingest.pipeline import persist_output, scan_dumps
from store.record_log import RecordLogWriter
from store.staging_store import build_staging_tables

_SOURCE_IBAN = "ES9121000418450200051332"
_TARGET_IBAN = "DE89370400440532013000"
_SCENARIO_LINE = f"ACC {_SOURCE_IBAN} ... 1.500,00 EUR ... {_TARGET_IBAN}\n"


def _read_rows(path: Path) -> list[dict[str, str]]:
    with path.open(encoding="utf-8", newline="") as handle:
        return list(csv.DictReader(handle))


def _read_log(path: Path) -> list[dict[str, object]]:
    return [json.loads(line) for line in path.read_text(encoding="utf-8").splitlines()]


def test_scan_extracts_scenario_records(write_dump, scan_config) -> None:
    """One window with two identifiers and an amount yields one transfer."""
    dump_path = write_dump("dtc1b.bin", _SCENARIO_LINE)

    summary = sdk_scan_dumps(ScanOptions(source_uri=str(dump_path), persist=False), scan_config)
    accounts = _read_rows(Path(summary.export.accounts_path))
    transfers = _read_rows(Path(summary.export.transfers_path))

    assert {row["accountId"] for row in accounts} == {_SOURCE_IBAN, _TARGET_IBAN}
    assert len(transfers) == 1
    assert transfers[0]["fromAccount"] == _SOURCE_IBAN and transfers[0]["toAccount"] == _TARGET_IBAN
    assert float(transfers[0]["amount"]) == 1500.0 and transfers[0]["source"] == "dtc1b.bin"
    assert summary.files[0].final_state.value == "done"


def test_scan_directory_processes_every_file(write_dump, scan_config) -> None:
    """Directory scans should attribute records to each file."""
    first = write_dump("a.bin", f"ACC {_SOURCE_IBAN} 10,00\n")
    write_dump("b.bin", f"ACC {_TARGET_IBAN} 20,00\n")

    summary = scan_dumps(ScanOptions(source_uri=str(first.parent), persist=False), scan_config)
    accounts = _read_rows(Path(summary.export.accounts_path))

    assert [file_summary.source for file_summary in summary.files] == ["a.bin", "b.bin"]
    assert {(row["accountId"], row["source"]) for row in accounts} == {
        (_SOURCE_IBAN, "a.bin"),
        (_TARGET_IBAN, "b.bin"),
    }


def test_resume_continues_from_byte_offset(write_dump, scan_config, monkeypatch) -> None:
    """A failed scan should resume mid-file without re-emitting records."""
    first = write_dump("a.bin", f"ACC {_SOURCE_IBAN} 10,00\n")
    write_dump(
        "b.bin",
        "".join(f"ACC DE8937040044053201{index:04d} 10,00\n" for index in range(6)),
    )
    config = replace(scan_config, chunk_size=64, window_radius=0)
    options = ScanOptions(source_uri=str(first.parent), persist=False)
    original_iter_chunks = LocalChunkSource.iter_chunks
    failure = {"raised": False}

    def _flaky_iter_chunks(self, chunk_size, start_offset=0):
        for index, chunk in enumerate(original_iter_chunks(self, chunk_size, start_offset)):
            if self.name == "b.bin" and index == 2 and not failure["raised"]:
                failure["raised"] = True
                raise DumpscanIngestError("forced failure")
            yield chunk

    monkeypatch.setattr(LocalChunkSource, "iter_chunks", _flaky_iter_chunks)
    with pytest.raises(DumpscanIngestError):
        scan_dumps(options, config)

    summary = scan_dumps(replace(options, resume=True), config)
    events = _read_log(config.output_dir / "accounts.ndjson")

    assert [file_summary.source for file_summary in summary.files] == ["b.bin"]
    assert sum(1 for event in events if event["source"] == "a.bin") == 1
    assert sum(1 for event in events if event["source"] == "b.bin") == 6
    assert summary.export.account_count == 7
    assert not (config.output_dir / "ingest_checkpoint" / "state.json").exists()


def test_resume_without_checkpoint_fails(write_dump, scan_config) -> None:
    """Resume should fail when no interrupted run exists."""
    dump_path = write_dump("a.bin", _SCENARIO_LINE)

    with pytest.raises(DumpscanIngestError):
        scan_dumps(ScanOptions(source_uri=str(dump_path), resume=True), scan_config)


def test_repeated_runs_keep_staging_idempotent(tmp_path, write_dump, scan_config) -> None:
    """Running the pipeline twice should not duplicate staged rows."""
    dump_path = write_dump("dtc1b.bin", f"2024-03-15 {_SCENARIO_LINE}")
    dsn = f"sqlite:///{tmp_path / 'stage.db'}"
    config = replace(scan_config, staging_dsn=dsn, staging_schema=None)
    options = ScanOptions(source_uri=str(dump_path), create_staging_tables=True)

    first = scan_dumps(options, config)
    second = scan_dumps(options, config)
    accounts_table, transfers_table = build_staging_tables(None)
    engine = create_engine(dsn)
    with engine.connect() as connection:
        account_rows = connection.execute(
            select(func.count()).select_from(accounts_table)
        ).scalar_one()
        transfer_rows = connection.execute(
            select(func.count()).select_from(transfers_table)
        ).scalar_one()
    engine.dispose()

    assert first.persistence.inserted == 3 and second.persistence.inserted == 0
    assert second.persistence.failed == 0
    assert (account_rows, transfer_rows) == (2, 1)


def test_persist_output_keeps_first_logged_account_event(tmp_path, scan_config) -> None:
    """Staging should keep the earliest logged event of a repeated account."""
    dsn = f"sqlite:///{tmp_path / 'stage.db'}"
    config = replace(scan_config, staging_dsn=dsn, staging_schema=None)
    with RecordLogWriter(config.output_dir) as writer:
        for source in ("a.bin", "b.bin", "c.bin"):
            writer.append_account(
                AccountRecord(
                    account_id=_SOURCE_IBAN,
                    bank_code=None,
                    discovered_at="2024-01-01T00:00:00+00:00",
                    source=source,
                )
            )

    report = persist_output(config.output_dir, config, create_tables=True)
    accounts_table, _ = build_staging_tables(None)
    engine = create_engine(dsn)
    with engine.connect() as connection:
        sources = connection.execute(select(accounts_table.c.source)).scalars().all()
    engine.dispose()

    assert (report.inserted, report.skipped, report.failed) == (1, 2, 0)
    assert sources == ["a.bin"]


def test_scan_directory_with_undecodable_file_name(tmp_path, scan_config) -> None:
    """A non UTF-8 file name should be recorded with a replacement character."""
    dump_dir = tmp_path / "dumps"
    dump_dir.mkdir()
    dump_path = dump_dir / os.fsdecode(b"dump\xff.bin")
    try:
        dump_path.write_bytes(f"ACC {_SOURCE_IBAN} 10,00\n".encode("utf-8"))
    except (OSError, UnicodeEncodeError):
        pytest.skip("filesystem rejects non UTF-8 file names")

    summary = scan_dumps(ScanOptions(source_uri=str(dump_dir), persist=False), scan_config)
    accounts = _read_rows(Path(summary.export.accounts_path))

    assert [file_summary.source for file_summary in summary.files] == ["dump\ufffd.bin"]
    assert [(row["accountId"], row["source"]) for row in accounts] == [
        (_SOURCE_IBAN, "dump\ufffd.bin")
    ]


def test_scan_writes_run_log_with_progress(write_dump, scan_config) -> None:
    """The run log should carry timestamped progress lines."""
    dump_path = write_dump("big.bin", _SCENARIO_LINE * 20)
    config = replace(scan_config, chunk_size=16, progress_every=10)

    scan_dumps(ScanOptions(source_uri=str(dump_path), persist=False), config)
    run_log_text = (config.output_dir / "ingest.log").read_text(encoding="utf-8")

    assert "chunk #10/" in run_log_text and "scan_completed" in run_log_text


class _FakeS3Client:
    def __init__(self, objects: dict[str, bytes] | None = None) -> None:
        self.objects = objects or {}
        self.uploads: list[tuple[str, str, str]] = []

    def upload_file(self, filename: str, bucket: str, key: str) -> None:
        self.uploads.append((filename, bucket, key))

    def get_paginator(self, operation_name: str):
        client = self

        class _Paginator:
            def paginate(self, Bucket: str, Prefix: str):
                contents = [{"Key": Prefix, "Size": 0}]
                contents.extend(
                    {"Key": key, "Size": len(data)}
                    for key, data in client.objects.items()
                    if key.startswith(Prefix)
                )
                return [{"Contents": contents}]

        return _Paginator()

    def get_object(self, Bucket: str, Key: str, Range: str | None = None):
        data = self.objects[Key]
        if Range:
            data = data[int(Range.removeprefix("bytes=").rstrip("-")) :]
        return {"Body": _FakeBody(data)}


class _FakeBody:
    def __init__(self, data: bytes) -> None:
        self._stream = io.BytesIO(data)

    def iter_chunks(self, chunk_size: int):
        while True:
            chunk = self._stream.read(chunk_size)
            if not chunk:
                return
            yield chunk


def test_scan_uploads_artifacts(write_dump, scan_config, monkeypatch) -> None:
    """An output URI should upload every run artifact."""
    dump_path = write_dump("dtc1b.bin", _SCENARIO_LINE)
    client = _FakeS3Client()
    monkeypatch.setattr("ingest.pipeline.create_s3_client", lambda config: client)

    summary = scan_dumps(
        ScanOptions(source_uri=str(dump_path), output_uri="s3://bucket/runs/1", persist=False),
        scan_config,
    )

    assert summary.uploaded_uri == "s3://bucket/runs/1"
    assert sorted(key for _, _, key in client.uploads) == [
        "runs/1/accounts.csv",
        "runs/1/accounts.ndjson",
        "runs/1/ingest.log",
        "runs/1/transactions.csv",
        "runs/1/transactions.ndjson",
    ]


def test_scan_reads_s3_prefix(scan_config, monkeypatch) -> None:
    """S3 prefixes should be scanned object by object."""
    client = _FakeS3Client({"dumps/dtc1b.bin": _SCENARIO_LINE.encode("utf-8")})
    monkeypatch.setattr("ingest.input_reader.create_s3_client", lambda config: client)

    summary = scan_dumps(ScanOptions(source_uri="s3://bucket/dumps/", persist=False), scan_config)

    assert [file_summary.source for file_summary in summary.files] == ["dtc1b.bin"]
    assert summary.export.account_count == 2 and summary.export.transfer_count == 1
