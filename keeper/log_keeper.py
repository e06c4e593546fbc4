"""
LogKeeper: one rotation run.

Flow:
- IDLE -> SCANNING: cutoff = now - age_threshold, candidates streamed
  through the eligibility filter as they are discovered
- ARCHIVING: each eligible file is staged into <file dir>/<archive_name>
  (enforce capacity, then add); every archive touched by the run is opened
  once and closed once, after which the staged originals are removed
- max_archive_entries == 0 short-circuits to a plain delete, no archive I/O

An ArchiveOpenError / FileSystemError / ArchiveWriteError halts the run.
Archives staged before an open failure are still closed; files after the
failing one are left untouched.
"""

from __future__ import annotations
import enum
import logging
import os
from datetime import datetime
from typing import Dict, Iterator, List, Optional

from keeper.archive import ArchiveEntry, ArchiveHandle, open_or_create
from keeper.config import KeeperConfig
from keeper.eligibility import Candidate, list_files, select_eligible, stat_candidate
from keeper.errors import ArchiveOpenError, ArchiveWriteError, FileSystemError

LOGGER = logging.getLogger("LogKeeper")


class KeeperState(enum.Enum):
    IDLE = "idle"
    SCANNING = "scanning"
    ARCHIVING = "archiving"


class _Batch:
    """Archives opened during one run and the originals staged into each."""

    def __init__(self) -> None:
        self.handles: Dict[str, ArchiveHandle] = {}
        self.sources: Dict[str, List[str]] = {}

    def handle_for(self, archive_path: str) -> Optional[ArchiveHandle]:
        return self.handles.get(_key(archive_path))

    def add(self, handle: ArchiveHandle) -> None:
        key = _key(handle.path)
        self.handles[key] = handle
        self.sources[key] = []

    def stage(self, handle: ArchiveHandle, source: str) -> None:
        self.sources[_key(handle.path)].append(source)


class LogKeeper:
    def __init__(self, config: KeeperConfig, logger: Optional[logging.Logger] = None):
        self.config = config
        self.logger = logger or LOGGER
        self.state = KeeperState.IDLE

    def set_logger(self, logger: logging.Logger) -> None:
        self.logger = logger

    def cutoff(self, now: Optional[datetime] = None) -> int:
        now = now or datetime.now().astimezone()
        return int(self.config.age_threshold.cutoff(now).timestamp())

    def eligible_files(self, now: Optional[datetime] = None) -> Iterator[Candidate]:
        """Lazily yields files a run at `now` would archive; touches nothing."""
        cutoff = self.cutoff(now)
        for candidate in select_eligible(list_files(self.config.pattern), cutoff):
            if self._is_own_archive(candidate.path):
                continue
            yield candidate

    def run(self, now: Optional[datetime] = None) -> None:
        self.logger.debug("Starting log keeping")
        self.state = KeeperState.SCANNING
        batch = _Batch()
        try:
            try:
                for candidate in self.eligible_files(now):
                    self.state = KeeperState.ARCHIVING
                    self._stage(candidate.path, batch)
                    self.state = KeeperState.SCANNING
            finally:
                self._flush(batch)
        finally:
            self.state = KeeperState.IDLE
        self.logger.debug("Log keeping has been completed")

    def compress(self, filepath: str) -> List[ArchiveEntry]:
        """
        Archive one file in its own open / enforce / add / close cycle (or
        just delete it when archiving is disabled).
        Returns the entries evicted to make room.
        """
        batch = _Batch()
        try:
            evicted = self._stage(filepath, batch)
        finally:
            self._flush(batch)
        return evicted

    def archive_path_for(self, filepath: str) -> str:
        return os.path.join(os.path.dirname(filepath), self.config.archive_name)

    # -------- internal helpers --------

    def _stage(self, filepath: str, batch: _Batch) -> List[ArchiveEntry]:
        candidate = stat_candidate(filepath)
        if not candidate.is_file:
            self.logger.debug("Skipped '%s': no longer a regular file", filepath)
            return []

        if self.config.archiving_disabled:
            _unlink(filepath)
            self.logger.debug("Removed '%s' (archiving disabled)", filepath)
            return []

        archive_path = self.archive_path_for(filepath)
        handle = batch.handle_for(archive_path)
        if handle is None:
            try:
                handle = open_or_create(archive_path, logger=self.logger)
            except (ArchiveOpenError, FileSystemError) as e:
                self.logger.warning("Log keeping halted at '%s': %s", filepath, e)
                raise
            batch.add(handle)

        max_entries = self.config.max_archive_entries
        if handle.admits(candidate.modified_at, max_entries):
            evicted = handle.enforce_capacity(max_entries)
            handle.add_entry(filepath)
            self.logger.debug("Archived '%s' into '%s'", filepath, archive_path)
        else:
            # older than everything the bound keeps: only trim to the bound
            evicted = handle.enforce_capacity(max_entries + 1)
            self.logger.debug(
                "Removing '%s' without archiving: older than the %d entries kept in '%s'",
                filepath, max_entries, archive_path,
            )
        batch.stage(handle, filepath)
        return evicted

    def _flush(self, batch: _Batch) -> None:
        """Close every staged archive, removing its originals once it is on disk."""
        for key, handle in batch.handles.items():
            try:
                handle.close()
            except ArchiveWriteError as e:
                self.logger.warning("Log keeping halted at '%s': %s", handle.path, e)
                for other in batch.handles.values():
                    other.discard()
                raise
            for source in batch.sources[key]:
                _unlink(source)

    def _is_own_archive(self, filepath: str) -> bool:
        return _key(self.archive_path_for(filepath)) == _key(filepath)


def _key(path: str) -> str:
    return os.path.normcase(os.path.abspath(path))


def _unlink(path: str) -> None:
    try:
        os.unlink(path)
    except FileNotFoundError:
        pass
