"""Input discovery and chunked byte streaming.

This module resolves a local file, a local directory, or an S3 prefix
into an ordered list of chunk sources. Each source streams fixed-size
byte chunks from an optional start offset, so a file is never loaded
into memory as a whole.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterator, Protocol

from core.config import DumpscanConfig
from core.errors import DumpscanIngestError
from core.s3_uri import S3Location, is_s3_uri, parse_s3_uri
from store.s3_export import create_s3_client


class ChunkSource(Protocol):
    """One input stream processed as a unit."""

    @property
    def uri(self) -> str:
        """Full location, used for checkpoint matching."""

    @property
    def name(self) -> str:
        """Base name recorded as the ``source`` of emitted records."""

    @property
    def size(self) -> int:
        """Total size in bytes."""

    def iter_chunks(self, chunk_size: int, start_offset: int = 0) -> Iterator[bytes]:
        """Yield consecutive chunks beginning at ``start_offset``."""


@dataclass(frozen=True)
class LocalChunkSource:
    """Chunk source backed by a local file."""

    path: Path

    @property
    def uri(self) -> str:
        return str(self.path)

    @property
    def name(self) -> str:
        return _printable_file_name(self.path.name)

    @property
    def size(self) -> int:
        return self.path.stat().st_size

    def iter_chunks(self, chunk_size: int, start_offset: int = 0) -> Iterator[bytes]:
        """Yield file chunks in file order.

        Raises:
            DumpscanIngestError: If the file cannot be opened or read.
        """
        try:
            with self.path.open("rb") as handle:
                if start_offset:
                    handle.seek(start_offset)
                while True:
                    chunk = handle.read(chunk_size)
                    if not chunk:
                        return
                    yield chunk
        except OSError as error:
            raise DumpscanIngestError(
                f"Failed to read input file {self.path}: {error}. "
                "Check that the file exists and is readable."
            ) from error


@dataclass(frozen=True)
class S3ChunkSource:
    """Chunk source backed by one S3 object."""

    s3_client: Any
    location: S3Location
    key: str
    object_size: int

    @property
    def uri(self) -> str:
        return self.location.object_uri(self.key)

    @property
    def name(self) -> str:
        return Path(self.key).name

    @property
    def size(self) -> int:
        return self.object_size

    def iter_chunks(self, chunk_size: int, start_offset: int = 0) -> Iterator[bytes]:
        """Yield object chunks, using a byte range when resuming.

        Raises:
            DumpscanIngestError: If the object cannot be fetched.
        """
        if start_offset and start_offset >= self.object_size:
            return
        request: dict[str, str] = {"Bucket": self.location.bucket, "Key": self.key}
        if start_offset:
            request["Range"] = f"bytes={start_offset}-"
        try:
            body = self.s3_client.get_object(**request)["Body"]
            yield from body.iter_chunks(chunk_size=chunk_size)
        except Exception as error:
            raise DumpscanIngestError(
                f"Failed to read input object {self.uri}: {error}. "
                "Check AWS credentials and object permissions."
            ) from error


def list_chunk_sources(source_uri: str, config: DumpscanConfig) -> list[ChunkSource]:
    """Resolve an input location into ordered chunk sources.

    Args:
        source_uri: Local file, local directory, or ``s3://`` prefix.
        config: Runtime configuration for S3 session defaults.

    Returns:
        Sources in processing order.

    Raises:
        DumpscanIngestError: If the location is missing or holds no files.
    """
    if is_s3_uri(source_uri):
        return _list_s3_sources(source_uri, config)
    return _list_local_sources(Path(source_uri).expanduser())


def _list_local_sources(source_path: Path) -> list[ChunkSource]:
    """List a local file, or the regular files of a directory.

    Directory entries are taken in sorted name order and not recursed.

    Raises:
        DumpscanIngestError: If path is missing or the directory is empty.
    """
    if not source_path.exists():
        raise DumpscanIngestError(
            f"Failed to read input at {source_path}: path does not exist. "
            "Provide an existing file or directory."
        )
    if source_path.is_file():
        return [LocalChunkSource(source_path)]
    try:
        file_paths = sorted(path for path in source_path.iterdir() if path.is_file())
    except OSError as error:
        raise DumpscanIngestError(
            f"Failed to list input directory {source_path}: {error}."
        ) from error
    if not file_paths:
        raise DumpscanIngestError(
            f"No input files found under {source_path}. "
            "Point the scan at a dump file or a directory containing dump files."
        )
    return [LocalChunkSource(path) for path in file_paths]


def _list_s3_sources(source_uri: str, config: DumpscanConfig) -> list[ChunkSource]:
    """List objects under an S3 prefix in key order.

    Raises:
        DumpscanIngestError: If listing fails or finds no objects.
    """
    location = parse_s3_uri(source_uri, domain="ingest")
    s3_client = create_s3_client(config)
    try:
        paginator = s3_client.get_paginator("list_objects_v2")
        pages = paginator.paginate(Bucket=location.bucket, Prefix=location.prefix)
        objects = [
            (obj["Key"], int(obj.get("Size", 0)))
            for page in pages
            for obj in page.get("Contents", [])
            if not obj["Key"].endswith("/")
        ]
    except Exception as error:
        raise DumpscanIngestError(
            f"Failed to list input objects under {source_uri}: {error}. "
            "Check AWS credentials and bucket permissions."
        ) from error
    if not objects:
        raise DumpscanIngestError(
            f"No input objects found for {source_uri}. Upload dump files and retry."
        )
    return [
        S3ChunkSource(s3_client=s3_client, location=location, key=key, object_size=size)
        for key, size in sorted(objects)
    ]


def _printable_file_name(file_name: str) -> str:
    """Replace undecodable bytes of an OS file name with U+FFFD.

    Non-UTF-8 names come back from the filesystem as lone surrogates,
    which cannot be written to the UTF-8 record logs.
    """
    return file_name.encode("utf-8", "surrogateescape").decode("utf-8", "replace")
