"""dumpscan exception hierarchy.

This module defines traceable domain errors with clear boundaries.
Each subsystem raises a specific error type for debuggability.
"""

from __future__ import annotations


class DumpscanError(Exception):
    """Base exception for all dumpscan failures."""


class DumpscanConfigError(DumpscanError):
    """Raised for invalid runtime configuration."""


class DumpscanIngestError(DumpscanError):
    """Raised for unreadable inputs and checkpoint failures."""


class DumpscanStoreError(DumpscanError):
    """Raised for append log, export and upload failures."""


class DumpscanStagingError(DumpscanError):
    """Raised when the relational staging store cannot be used."""


class DumpscanDependencyError(DumpscanError):
    """Raised when an optional runtime dependency is missing."""
