"""Unit tests for S3 URI parsing."""

from __future__ import annotations

import pytest

from core.errors import DumpscanIngestError, DumpscanStoreError
from core.s3_uri import is_s3_uri, parse_s3_uri


def test_parse_s3_uri_splits_bucket_and_prefix() -> None:
    """URIs should split on the first slash after the bucket."""
    location = parse_s3_uri("s3://dumps/2024/q1/", domain="ingest")

    assert location.bucket == "dumps" and location.prefix == "2024/q1/"


def test_parse_s3_uri_allows_bucket_only_inputs() -> None:
    """Inputs may scan a whole bucket."""
    assert parse_s3_uri("s3://dumps", domain="ingest").prefix == ""


def test_parse_s3_uri_error_types_follow_domain() -> None:
    """Invalid URIs should raise the error type of their domain."""
    with pytest.raises(DumpscanIngestError):
        parse_s3_uri("s3://", domain="ingest")
    with pytest.raises(DumpscanStoreError):
        parse_s3_uri("s3://bucket/", domain="store")


def test_is_s3_uri() -> None:
    """Only s3:// locations are S3 URIs."""
    assert is_s3_uri("s3://a/b") and not is_s3_uri("/tmp/a")
