"""Scan orchestration for dump inputs.

This module drives each input through decode, line split, windowing,
extraction and emission chunk by chunk, then runs the export, upload and
staging stages once every input is done. Inputs, chunks and lines are
processed strictly in order on a single thread.
"""

from __future__ import annotations

import hashlib
import json
import math
from pathlib import Path
from typing import Callable

from core.config import DumpscanConfig, validate_scan_settings
from core.constants import (
    ACCOUNTS_TABLE_FILE_NAME,
    CHECKPOINT_TAIL_LIMIT,
    RUN_LOG_FILE_NAME,
    TRANSFERS_TABLE_FILE_NAME,
)
from core.logging_config import get_logger, run_log
from core.types import (
    FileScanSummary,
    IngestSummary,
    PersistenceReport,
    ScanOptions,
    ScanState,
)
from ingest.checkpoint_store import ScanCheckpoint, ScanCheckpointStore
from ingest.input_reader import ChunkSource, list_chunk_sources
from ingest.record_emission import RecordEmitter, RecordSink
from store.record_log import (
    RecordLogWriter,
    accounts_log_path,
    read_account_records,
    read_transfer_records,
    transfers_log_path,
)
from store.s3_export import create_s3_client, upload_artifacts
from store.staging_store import persist_staging
from store.tabular_export import export_tables
from transforms.context_window import build_contexts
from transforms.decoding import decode_chunk
from transforms.entity_extraction import extract_entities
from transforms.line_splitting import split_lines

_LOGGER = get_logger(__name__)

ChunkCallback = Callable[[int, int, str], None]


class SourceScanner:
    """Per-input state machine: STREAMING, then FINAL_TAIL, then DONE."""

    def __init__(
        self,
        source: ChunkSource,
        sink: RecordSink,
        config: DumpscanConfig,
        on_chunk: ChunkCallback | None = None,
    ) -> None:
        self._source = source
        self._config = config
        self._emitter = RecordEmitter(sink, source.name)
        self._on_chunk = on_chunk
        self.state = ScanState.STREAMING

    def run(self, start_offset: int = 0, chunk_index: int = 0, tail: str = "") -> FileScanSummary:
        """Scan the input from ``start_offset`` with a restored tail.

        Args:
            start_offset: Byte offset of the first chunk to read.
            chunk_index: Chunks already consumed before ``start_offset``.
            tail: Fragment carried over at ``start_offset``.

        Returns:
            Counters for this run over the input.

        Raises:
            DumpscanIngestError: If the input cannot be read.
        """
        total_chunks = _estimate_total_chunks(self._source, self._config.chunk_size)
        _LOGGER.info(
            "ingest_file_started",
            source=self._source.uri,
            start_offset=start_offset,
            total_chunks=total_chunks,
        )
        offset = start_offset
        encoding: str | None = None
        chunk_count = line_count = account_count = transfer_count = 0
        self.state = ScanState.STREAMING
        for chunk in self._source.iter_chunks(self._config.chunk_size, start_offset):
            chunk_index += 1
            chunk_count += 1
            offset += len(chunk)
            decoded = decode_chunk(chunk)
            encoding = decoded.encoding
            split = split_lines(tail, decoded.text)
            tail = split.tail
            line_count += len(split.lines)
            for context in build_contexts(split.lines, self._config.window_radius):
                accounts, transfers = self._emitter.emit_window(
                    extract_entities(context), chunk_index, encoding
                )
                account_count += accounts
                transfer_count += transfers
            if chunk_index % self._config.progress_every == 0:
                _LOGGER.info(
                    "ingest_progress",
                    source=self._source.uri,
                    progress=f"chunk #{chunk_index}/{total_chunks}",
                )
            if self._on_chunk is not None:
                self._on_chunk(offset, chunk_index, tail)
        self.state = ScanState.FINAL_TAIL
        # Accounts only: the leftover tail may not hold a complete context.
        if tail.strip():
            account_count += self._emitter.emit_final_tail(extract_entities(tail), encoding)
        self.state = ScanState.DONE
        _LOGGER.info(
            "ingest_file_completed",
            source=self._source.uri,
            chunk_count=chunk_count,
            account_count=account_count,
            transfer_count=transfer_count,
        )
        return FileScanSummary(
            source=self._source.name,
            chunk_count=chunk_count,
            line_count=line_count,
            account_count=account_count,
            transfer_count=transfer_count,
            final_state=self.state,
        )


class ScanRunner:
    """Stateful runner for resumable scan execution."""

    def __init__(self, options: ScanOptions, config: DumpscanConfig) -> None:
        validate_scan_settings(config.chunk_size, config.window_radius)
        self._options = options
        self._config = config
        self._output_dir = config.output_dir
        self._checkpoint_store = ScanCheckpointStore(self._output_dir)

    def run(self) -> IngestSummary:
        """Scan every input, export tables, upload and persist."""
        self._output_dir.mkdir(parents=True, exist_ok=True)
        with run_log(self._output_dir / RUN_LOG_FILE_NAME):
            _LOGGER.info(
                "scan_started",
                source_uri=self._options.source_uri,
                output_dir=str(self._output_dir),
                chunk_size=self._config.chunk_size,
                resume=self._options.resume,
            )
            file_summaries = self._scan_sources()
            export_summary = export_tables(self._output_dir)
            uploaded_uri = self._upload_if_requested()
            persistence = self._persist_if_requested()
            _LOGGER.info(
                "scan_completed",
                source_uri=self._options.source_uri,
                file_count=len(file_summaries),
                account_count=export_summary.account_count,
                transfer_count=export_summary.transfer_count,
                staging_failed=persistence.failed,
            )
        return IngestSummary(
            files=tuple(file_summaries),
            export=export_summary,
            persistence=persistence,
            uploaded_uri=uploaded_uri,
        )

    def _scan_sources(self) -> list[FileScanSummary]:
        sources = list_chunk_sources(self._options.source_uri, self._config)
        checkpoint = self._checkpoint_store.prepare_run(
            _build_run_signature(self._options, self._config), self._options.resume
        )
        summaries: list[FileScanSummary] = []
        with RecordLogWriter(self._output_dir) as writer:
            for source in sources:
                if source.uri in checkpoint.completed_sources:
                    _LOGGER.info("ingest_file_skipped", source=source.uri, reason="completed")
                    continue
                summary, checkpoint = self._scan_source(source, writer, checkpoint)
                summaries.append(summary)
        self._checkpoint_store.clear()
        return summaries

    def _scan_source(
        self,
        source: ChunkSource,
        writer: RecordLogWriter,
        checkpoint: ScanCheckpoint,
    ) -> tuple[FileScanSummary, ScanCheckpoint]:
        start_offset, chunk_index, tail = checkpoint.position_for(source.uri)
        current = checkpoint

        def _save_progress(next_offset: int, index: int, carried_tail: str) -> None:
            nonlocal current
            current = current.advance(source.uri, next_offset, index, carried_tail)
            # An oversized tail keeps the last saved checkpoint; resume replays from it.
            if len(carried_tail) > CHECKPOINT_TAIL_LIMIT:
                _LOGGER.info(
                    "checkpoint_skipped",
                    source=source.uri,
                    chunk_index=index,
                    tail_length=len(carried_tail),
                )
                return
            self._checkpoint_store.save(current)

        scanner = SourceScanner(source, writer, self._config, on_chunk=_save_progress)
        summary = scanner.run(start_offset=start_offset, chunk_index=chunk_index, tail=tail)
        current = current.complete(source.uri)
        self._checkpoint_store.save(current)
        return summary, current

    def _upload_if_requested(self) -> str | None:
        if not self._options.output_uri:
            return None
        artifacts = [
            accounts_log_path(self._output_dir),
            transfers_log_path(self._output_dir),
            self._output_dir / ACCOUNTS_TABLE_FILE_NAME,
            self._output_dir / TRANSFERS_TABLE_FILE_NAME,
            self._output_dir / RUN_LOG_FILE_NAME,
        ]
        uploaded = upload_artifacts(
            create_s3_client(self._config), artifacts, self._options.output_uri
        )
        _LOGGER.info("artifacts_uploaded", output_uri=self._options.output_uri, count=len(uploaded))
        return self._options.output_uri

    def _persist_if_requested(self) -> PersistenceReport:
        if not self._options.persist:
            return PersistenceReport(enabled=False)
        return persist_output(
            self._output_dir, self._config, self._options.create_staging_tables
        )


def scan_dumps(options: ScanOptions, config: DumpscanConfig) -> IngestSummary:
    """Run the full scan pipeline over a file, directory or S3 prefix.

    Args:
        options: Scan request options.
        config: Runtime configuration.

    Returns:
        Per-input counters, export summary and persistence report.

    Raises:
        DumpscanIngestError: If an input cannot be read or resume fails.
        DumpscanStoreError: If logs, tables or uploads fail.
        DumpscanStagingError: If the staging store is unreachable.
    """
    runner = ScanRunner(options, config)
    return runner.run()


def persist_output(
    output_dir: Path,
    config: DumpscanConfig,
    create_tables: bool = False,
) -> PersistenceReport:
    """Persist the records already logged in ``output_dir``.

    Every logged account event is sent in log order, so the staging
    store keeps the first event per identifier. Transfers are sent as
    logged.
    """
    accounts = read_account_records(output_dir)
    transfers = read_transfer_records(output_dir)
    return persist_staging(accounts, transfers, config, create_tables=create_tables)


def _estimate_total_chunks(source: ChunkSource, chunk_size: int) -> int:
    """Return the number of chunks the input spans."""
    return math.ceil(source.size / chunk_size)


def _build_run_signature(options: ScanOptions, config: DumpscanConfig) -> str:
    """Build deterministic run signature for checkpoint matching."""
    signature_payload = {
        "source_uri": options.source_uri,
        "chunk_size": config.chunk_size,
        "window_radius": config.window_radius,
    }
    serialized_payload = json.dumps(signature_payload, sort_keys=True)
    return hashlib.sha256(serialized_payload.encode("utf-8")).hexdigest()
