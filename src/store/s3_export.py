"""S3 export helpers for run artifacts.

This module encapsulates boto3 client creation and artifact upload.
It is used when a scan is given an ``s3://`` output destination.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Iterable

from core.config import DumpscanConfig
from core.errors import DumpscanDependencyError, DumpscanStoreError
from core.s3_uri import parse_s3_uri


def create_s3_client(config: DumpscanConfig) -> Any:
    """Create boto3 S3 client.

    Args:
        config: Runtime config with optional session settings.

    Returns:
        Boto3 S3 client.

    Raises:
        DumpscanDependencyError: If boto3 is missing.
    """
    try:
        import boto3
    except ImportError as error:
        raise DumpscanDependencyError(
            "S3 support requires boto3, but it is not installed. "
            "Install boto3 to read from or export to s3:// locations."
        ) from error
    session_kwargs: dict[str, str] = {}
    if config.s3_profile:
        session_kwargs["profile_name"] = config.s3_profile
    if config.s3_region:
        session_kwargs["region_name"] = config.s3_region
    session = boto3.session.Session(**session_kwargs)
    return session.client("s3")


def upload_artifacts(
    s3_client: Any,
    artifact_paths: Iterable[Path],
    output_uri: str,
) -> list[str]:
    """Upload existing run artifacts under an S3 prefix.

    Args:
        s3_client: Boto3 S3 client.
        artifact_paths: Local files to upload; missing files are skipped.
        output_uri: Destination ``s3://bucket/prefix``.

    Returns:
        Uploaded object URIs in upload order.

    Raises:
        DumpscanStoreError: If the URI is invalid or an upload fails.
    """
    location = parse_s3_uri(output_uri, domain="store")
    uploaded: list[str] = []
    for local_file in artifact_paths:
        if not local_file.is_file():
            continue
        object_key = f"{location.prefix.rstrip('/')}/{local_file.name}"
        try:
            s3_client.upload_file(str(local_file), location.bucket, object_key)
        except Exception as error:
            raise DumpscanStoreError(
                f"Failed to export {local_file} to s3://{location.bucket}/{object_key}: {error}. "
                "Check AWS credentials and retry export."
            ) from error
        uploaded.append(f"s3://{location.bucket}/{object_key}")
    return uploaded
