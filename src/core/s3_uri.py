"""S3 URI helpers shared by input discovery and artifact upload."""

from __future__ import annotations

from dataclasses import dataclass

from core.errors import DumpscanIngestError, DumpscanStoreError

S3_SCHEME = "s3://"


@dataclass(frozen=True)
class S3Location:
    """Bucket and key prefix of an ``s3://`` URI."""

    bucket: str
    prefix: str

    def object_uri(self, key: str) -> str:
        """Return the ``s3://`` URI of an object in this bucket."""
        return f"{S3_SCHEME}{self.bucket}/{key}"


def is_s3_uri(uri: str) -> bool:
    """Return whether ``uri`` uses the s3 scheme."""
    return uri.startswith(S3_SCHEME)


def parse_s3_uri(uri: str, domain: str) -> S3Location:
    """Parse and validate an S3 URI.

    Input prefixes may be empty (``s3://bucket`` scans the whole bucket);
    upload destinations must name a prefix.

    Args:
        uri: URI in format ``s3://bucket[/prefix]``.
        domain: ``"ingest"`` for inputs, ``"store"`` for destinations.

    Returns:
        Parsed bucket and prefix pair.

    Raises:
        DumpscanIngestError: For invalid input URIs.
        DumpscanStoreError: For invalid destination URIs.
    """
    bucket, _, prefix = uri.removeprefix(S3_SCHEME).partition("/")
    if not is_s3_uri(uri) or not bucket or (domain == "store" and not prefix.strip("/")):
        message = (
            f"Invalid S3 URI '{uri}': expected s3://bucket/prefix. "
            "Provide a bucket name and, for destinations, a key prefix."
        )
        if domain == "ingest":
            raise DumpscanIngestError(message)
        raise DumpscanStoreError(message)
    return S3Location(bucket=bucket, prefix=prefix)
