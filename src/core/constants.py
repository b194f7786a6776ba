"""Core constants used across dumpscan modules.

This module centralizes non-domain-specific constants.
Keeping values here avoids magic literals in business logic.
"""

from __future__ import annotations

from pathlib import Path

DEFAULT_OUTPUT_DIR = Path(".dumpscan")
DEFAULT_CHUNK_SIZE = 64 * 1024 * 1024
DEFAULT_WINDOW_RADIUS = 2
DEFAULT_PROGRESS_EVERY = 10
DEFAULT_STAGING_SCHEMA = "staging"
DEFAULT_DB_PORT = 5432
DEFAULT_DB_USER = "core"
DEFAULT_DB_PASSWORD = "corepass"
DEFAULT_DB_NAME = "corebank"
ACCOUNTS_LOG_FILE_NAME = "accounts.ndjson"
TRANSFERS_LOG_FILE_NAME = "transactions.ndjson"
ACCOUNTS_TABLE_FILE_NAME = "accounts.csv"
TRANSFERS_TABLE_FILE_NAME = "transactions.csv"
RUN_LOG_FILE_NAME = "ingest.log"
INGEST_CHECKPOINT_DIR_NAME = "ingest_checkpoint"
CHECKPOINT_STATE_FILE_NAME = "state.json"
ACCOUNT_TABLE_COLUMNS = ("accountId", "bankCode", "discoveredAt", "source")
TRANSFER_TABLE_COLUMNS = (
    "id",
    "fromAccount",
    "toAccount",
    "amount",
    "currency",
    "timestamp",
    "status",
    "type",
    "source",
)
CANDIDATE_ENCODINGS = ("utf-8", "latin-1", "cp1252", "cp437", "cp850", "cp037")
DECODE_EARLY_ACCEPT_SCORE = 0.985
TRANSFER_CURRENCY = "UNKNOWN"
TRANSFER_DESCRIPTION = "auto-extracted"
TRANSFER_STATUS = "completed"
TRANSFER_TYPE = "transfer"
TRANSFER_ID_SUFFIX_LENGTH = 8
CHECKPOINT_TAIL_LIMIT = 1024 * 1024
