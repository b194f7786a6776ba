"""Public SDK surface for dumpscan.

This module provides a stable import path for library users.
It re-exports the pipeline entry points and typed models.
"""

from __future__ import annotations

from core.config import DumpscanConfig
from core.types import (
    AccountRecord,
    DecodedChunk,
    EntityHit,
    ExportSummary,
    IngestSummary,
    PersistenceReport,
    ScanOptions,
    TransferRecord,
)
from ingest.pipeline import persist_output, scan_dumps
from store.tabular_export import export_tables
from transforms.decoding import decode_chunk
from transforms.entity_extraction import extract_entities, normalize_amount

__all__ = [
    "AccountRecord",
    "DecodedChunk",
    "DumpscanConfig",
    "EntityHit",
    "ExportSummary",
    "IngestSummary",
    "PersistenceReport",
    "ScanOptions",
    "TransferRecord",
    "decode_chunk",
    "export_tables",
    "extract_entities",
    "normalize_amount",
    "persist_output",
    "scan_dumps",
]
