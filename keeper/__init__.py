"""
keeper package exports.

Exposes:
- KeeperConfig / AgeThreshold / parse_duration
- LogKeeper orchestrator
- archive primitives (open_or_create, read_entries)
- error taxonomy

The "LogKeeper" logger gets a NullHandler so library use stays silent until
the application configures logging (see app/logging_setup.py).
"""

from __future__ import annotations
import logging

from keeper.archive import ArchiveEntry, ArchiveHandle, open_or_create, read_entries
from keeper.config import DEFAULT_ARCHIVE_NAME, DISABLED, UNBOUNDED, KeeperConfig
from keeper.duration import AgeThreshold, parse_duration
from keeper.eligibility import Candidate, is_eligible, list_files, select_eligible, stat_candidate
from keeper.errors import (
    ArchiveOpenError,
    ArchiveWriteError,
    ConfigurationError,
    FileSystemError,
    LogKeeperError,
    OpenFailure,
)
from keeper.log_keeper import KeeperState, LogKeeper

logging.getLogger("LogKeeper").addHandler(logging.NullHandler())

__all__ = [
    "AgeThreshold",
    "ArchiveEntry",
    "ArchiveHandle",
    "ArchiveOpenError",
    "ArchiveWriteError",
    "Candidate",
    "ConfigurationError",
    "DEFAULT_ARCHIVE_NAME",
    "DISABLED",
    "FileSystemError",
    "KeeperConfig",
    "KeeperState",
    "LogKeeper",
    "LogKeeperError",
    "OpenFailure",
    "UNBOUNDED",
    "is_eligible",
    "list_files",
    "open_or_create",
    "parse_duration",
    "read_entries",
    "select_eligible",
    "stat_candidate",
]
