"""Runtime configuration model for dumpscan.

This module owns all environment variable parsing and validation.
Other modules consume a typed config object instead of raw env reads.
"""

from __future__ import annotations

from dataclasses import dataclass
import os
from pathlib import Path
from urllib.parse import quote_plus

from core.constants import (
    DEFAULT_CHUNK_SIZE,
    DEFAULT_DB_NAME,
    DEFAULT_DB_PASSWORD,
    DEFAULT_DB_PORT,
    DEFAULT_DB_USER,
    DEFAULT_OUTPUT_DIR,
    DEFAULT_PROGRESS_EVERY,
    DEFAULT_STAGING_SCHEMA,
    DEFAULT_WINDOW_RADIUS,
)
from core.errors import DumpscanConfigError


@dataclass(frozen=True)
class DumpscanConfig:
    """Validated runtime configuration.

    Attributes:
        output_dir: Directory receiving append logs, exports and the run log.
        chunk_size: Bytes read from the input per chunk.
        window_radius: Neighbouring lines joined on each side of a line.
        progress_every: Chunks between two progress log lines.
        staging_dsn: Optional SQLAlchemy URL of the staging store.
        staging_schema: Optional schema holding the staging tables.
        s3_region: Optional default AWS region for S3 operations.
        s3_profile: Optional AWS profile for boto3 session initialization.
    """

    output_dir: Path
    chunk_size: int
    window_radius: int
    progress_every: int
    staging_dsn: str | None
    staging_schema: str | None
    s3_region: str | None
    s3_profile: str | None

    @classmethod
    def from_env(cls) -> "DumpscanConfig":
        """Build config from process environment variables.

        Returns:
            A validated config object.

        Raises:
            DumpscanConfigError: If environment values are invalid.
        """
        output_dir_value = os.getenv("DUMPSCAN_OUTPUT_DIR", str(DEFAULT_OUTPUT_DIR))
        schema_value = os.getenv("DUMPSCAN_STAGING_SCHEMA", DEFAULT_STAGING_SCHEMA)
        return cls(
            output_dir=Path(output_dir_value).expanduser().resolve(),
            chunk_size=_parse_int_env("DUMPSCAN_CHUNK_SIZE", DEFAULT_CHUNK_SIZE, minimum=1),
            window_radius=_parse_int_env(
                "DUMPSCAN_WINDOW_RADIUS", DEFAULT_WINDOW_RADIUS, minimum=0
            ),
            progress_every=_parse_int_env(
                "DUMPSCAN_PROGRESS_EVERY", DEFAULT_PROGRESS_EVERY, minimum=1
            ),
            staging_dsn=_resolve_staging_dsn(),
            staging_schema=schema_value.strip() or None,
            s3_region=os.getenv("DUMPSCAN_S3_REGION"),
            s3_profile=os.getenv("DUMPSCAN_S3_PROFILE"),
        )

    @property
    def staging_enabled(self) -> bool:
        """Return whether a staging store is configured."""
        return bool(self.staging_dsn)


def validate_scan_settings(chunk_size: int, window_radius: int) -> None:
    """Validate per-run overrides of chunking settings.

    Args:
        chunk_size: Bytes per chunk.
        window_radius: Context window radius.

    Raises:
        DumpscanConfigError: If either value is out of range.
    """
    if chunk_size < 1:
        raise DumpscanConfigError(
            f"Invalid chunk size {chunk_size}: expected value >= 1. "
            "Use --chunk-size with a positive integer."
        )
    if window_radius < 0:
        raise DumpscanConfigError(
            f"Invalid window radius {window_radius}: expected value >= 0. "
            "Use --window-radius with a non-negative integer."
        )


def _parse_int_env(name: str, default: int, minimum: int) -> int:
    """Parse a bounded integer environment value.

    Args:
        name: Environment variable name.
        default: Value used when the variable is unset.
        minimum: Smallest accepted value.

    Returns:
        Parsed integer.

    Raises:
        DumpscanConfigError: If value is not an integer or below minimum.
    """
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        value = int(raw_value)
    except ValueError as error:
        raise DumpscanConfigError(
            f"Invalid {name} value: expected integer, got '{raw_value}'. "
            f"Set {name} to a numeric value."
        ) from error
    if value < minimum:
        raise DumpscanConfigError(
            f"Invalid {name} value: expected integer >= {minimum}, got {value}."
        )
    return value


def _resolve_staging_dsn() -> str | None:
    """Resolve the staging DSN from the explicit URL or DB_* parts.

    Returns:
        SQLAlchemy URL, or None when no staging store is configured.

    Raises:
        DumpscanConfigError: If DB_PORT is not numeric.
    """
    explicit_dsn = os.getenv("DUMPSCAN_STAGING_DSN")
    if explicit_dsn:
        return explicit_dsn
    host = os.getenv("DB_HOST")
    if not host:
        return None
    port = _parse_int_env("DB_PORT", DEFAULT_DB_PORT, minimum=1)
    user = quote_plus(os.getenv("DB_USER") or DEFAULT_DB_USER)
    password = quote_plus(os.getenv("DB_PASS") or DEFAULT_DB_PASSWORD)
    database = os.getenv("DB_NAME") or DEFAULT_DB_NAME
    return f"postgresql+psycopg://{user}:{password}@{host}:{port}/{database}"
