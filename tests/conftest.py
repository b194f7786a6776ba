"""Pytest configuration for repository test runs."""

from __future__ import annotations

from dataclasses import replace
import sys
from pathlib import Path

import pytest


def pytest_sessionstart() -> None:
    """Add src directory to sys.path for test imports."""
    project_root = Path(__file__).resolve().parent.parent
    src_path = project_root / "src"
    if str(src_path) not in sys.path:
        sys.path.insert(0, str(src_path))


@pytest.fixture
def scan_config(tmp_path: Path):
    """Runtime config writing under tmp_path with no staging store."""
    from core.config import DumpscanConfig

    return replace(
        DumpscanConfig.from_env(),
        output_dir=tmp_path / "out",
        chunk_size=1024,
        window_radius=2,
        progress_every=10,
        staging_dsn=None,
        staging_schema=None,
    )


@pytest.fixture
def write_dump(tmp_path: Path):
    """Return a helper writing dump bytes under tmp_path."""

    def _write(name: str, content: bytes | str) -> Path:
        dump_path = tmp_path / "dumps" / name
        dump_path.parent.mkdir(parents=True, exist_ok=True)
        data = content.encode("utf-8") if isinstance(content, str) else content
        dump_path.write_bytes(data)
        return dump_path

    return _write
