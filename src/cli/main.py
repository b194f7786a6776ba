"""dumpscan CLI entry points.
This module exposes the scan, export and persist commands.
It maps argparse commands onto pipeline calls.
"""

from __future__ import annotations

import argparse
from dataclasses import replace
from pathlib import Path
import sys
from typing import Any, Sequence

from core.config import DumpscanConfig
from core.constants import RUN_LOG_FILE_NAME
from core.errors import DumpscanError
from core.logging_config import configure_console_logging, run_log
from core.types import IngestSummary, PersistenceReport, ScanOptions
from ingest.pipeline import persist_output, scan_dumps
from store.tabular_export import export_tables


def build_parser() -> argparse.ArgumentParser:
    """Build the top-level CLI parser.

    Returns:
        Configured argument parser.
    """
    parser = argparse.ArgumentParser(
        prog="dumpscan",
        description="Extract account and transfer records from large dump files",
    )
    parser.add_argument("--output-dir", help="Override DUMPSCAN_OUTPUT_DIR for this command")
    parser.add_argument("--staging-dsn", help="Override DUMPSCAN_STAGING_DSN for this command")
    subparsers = parser.add_subparsers(dest="command", required=True)
    _add_scan_command(subparsers)
    _add_export_command(subparsers)
    _add_persist_command(subparsers)
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Run the dumpscan CLI.

    Args:
        argv: Optional argument vector.

    Returns:
        Process exit code.
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_console_logging()
    try:
        config = _build_config(args)
        if args.command == "scan":
            return _run_scan_command(config, args)
        if args.command == "export":
            return _run_export_command(config)
        if args.command == "persist":
            return _run_persist_command(config, args)
    except DumpscanError as error:
        print(f"error={error}", file=sys.stderr)
        return 1
    parser.error(f"Unsupported command: {args.command}")
    return 2


def _build_config(args: argparse.Namespace) -> DumpscanConfig:
    """Build runtime config with per-command overrides.

    Args:
        args: Parsed CLI args.

    Returns:
        Configured runtime config.
    """
    config = DumpscanConfig.from_env()
    if args.output_dir:
        config = replace(config, output_dir=Path(args.output_dir).expanduser().resolve())
    if args.staging_dsn:
        config = replace(config, staging_dsn=args.staging_dsn)
    if getattr(args, "chunk_size", None) is not None:
        config = replace(config, chunk_size=args.chunk_size)
    if getattr(args, "window_radius", None) is not None:
        config = replace(config, window_radius=args.window_radius)
    return config


def _run_scan_command(config: DumpscanConfig, args: argparse.Namespace) -> int:
    """Handle scan command.

    Args:
        config: Runtime config.
        args: Parsed CLI args.

    Returns:
        Exit code, 1 when any staging statement failed.
    """
    options = ScanOptions(
        source_uri=args.source,
        resume=args.resume,
        output_uri=args.output_uri,
        persist=not args.skip_persist,
        create_staging_tables=args.create_staging_tables,
    )
    summary = scan_dumps(options, config)
    _print_scan_summary(summary)
    return 0 if summary.persistence.failed == 0 else 1


def _run_export_command(config: DumpscanConfig) -> int:
    """Handle export command."""
    with run_log(config.output_dir / RUN_LOG_FILE_NAME):
        summary = export_tables(config.output_dir)
    print(f"accounts_path={summary.accounts_path}")
    print(f"transfers_path={summary.transfers_path}")
    print(f"account_count={summary.account_count}")
    print(f"transfer_count={summary.transfer_count}")
    return 0


def _run_persist_command(config: DumpscanConfig, args: argparse.Namespace) -> int:
    """Handle persist command."""
    with run_log(config.output_dir / RUN_LOG_FILE_NAME):
        report = persist_output(config.output_dir, config, args.create_staging_tables)
    _print_persistence_report(report)
    return 0 if report.failed == 0 else 1


def _print_scan_summary(summary: IngestSummary) -> None:
    for file_summary in summary.files:
        print(
            f"{file_summary.source}\t"
            f"chunks={file_summary.chunk_count}\t"
            f"accounts={file_summary.account_count}\t"
            f"transfers={file_summary.transfer_count}"
        )
    print(f"accounts_path={summary.export.accounts_path}")
    print(f"transfers_path={summary.export.transfers_path}")
    print(f"account_count={summary.export.account_count}")
    print(f"transfer_count={summary.export.transfer_count}")
    print(f"uploaded_uri={summary.uploaded_uri or '-'}")
    _print_persistence_report(summary.persistence)


def _print_persistence_report(report: PersistenceReport) -> None:
    if not report.enabled:
        print("staging=disabled")
        return
    print(f"staging_inserted={report.inserted}")
    print(f"staging_skipped={report.skipped}")
    print(f"staging_failed={report.failed}")
    for message in report.errors:
        print(f"staging_error={message}", file=sys.stderr)


def _add_scan_command(subparsers: Any) -> None:
    """Register scan subcommand."""
    parser = subparsers.add_parser("scan", help="Scan a dump file, directory or S3 prefix")
    parser.add_argument("source", help="Source file, directory, or s3://bucket/prefix")
    parser.add_argument("--chunk-size", type=int, help="Bytes read per chunk")
    parser.add_argument("--window-radius", type=int, help="Neighbour lines per side of a line")
    parser.add_argument("--resume", action="store_true", help="Resume from scan checkpoint")
    parser.add_argument("--output-uri", help="Optional s3:// destination for run artifacts")
    parser.add_argument(
        "--skip-persist",
        action="store_true",
        help="Do not push records to the staging store",
    )
    parser.add_argument(
        "--create-staging-tables",
        action="store_true",
        help="Create missing staging tables before persisting",
    )


def _add_export_command(subparsers: Any) -> None:
    """Register export subcommand."""
    subparsers.add_parser("export", help="Rebuild CSV tables from the record logs")


def _add_persist_command(subparsers: Any) -> None:
    """Register persist subcommand."""
    parser = subparsers.add_parser("persist", help="Push logged records to the staging store")
    parser.add_argument(
        "--create-staging-tables",
        action="store_true",
        help="Create missing staging tables before persisting",
    )
