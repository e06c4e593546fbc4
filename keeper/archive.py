"""
Zip archive manager.

Owns one archive for the window it is open:
- open_or_create(): prepare the directory, read existing entries
- ArchiveHandle.enforce_capacity(): evict oldest entries (mtime, then index)
- ArchiveHandle.add_entry(): queue a source file under its base name
- ArchiveHandle.close(): write a temp file beside the archive, then os.replace

zipfile cannot delete members in place. A close that only added entries
copies the container byte for byte and appends to the copy; a close after
an eviction or overwrite recompresses the survivors into a fresh container.
Either way the result is swapped in with os.replace.
Entry mtimes are kept in the extended-timestamp extra field (0x5455) so
they round-trip at second resolution; archives written by other tools fall
back to the DOS date_time (local time, 2s resolution).
"""

from __future__ import annotations
import logging
import os
import shutil
import stat
import struct
import time
import zipfile
import zlib
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from keeper.config import UNBOUNDED
from keeper.errors import (
    ArchiveOpenError,
    ArchiveWriteError,
    ConfigurationError,
    FileSystemError,
    OpenFailure,
)

LOGGER = logging.getLogger("LogKeeper")

DIR_MODE = 0o755
EXT_TIMESTAMP_ID = 0x5455
_DOS_EPOCH = (1980, 1, 1, 0, 0, 0)
_INT32 = (-(2 ** 31), 2 ** 31 - 1)


@dataclass(frozen=True)
class ArchiveEntry:
    name: str
    modified_at: int  # POSIX seconds
    index: int        # storage order


# --- extra field / timestamp helpers ---

def _ext_timestamp(extra: bytes) -> Optional[int]:
    i = 0
    while i + 4 <= len(extra):
        header_id, size = struct.unpack("<HH", extra[i:i + 4])
        body = extra[i + 4:i + 4 + size]
        if header_id == EXT_TIMESTAMP_ID and len(body) >= 5 and body[0] & 0x01:
            return struct.unpack("<i", body[1:5])[0]
        i += 4 + size
    return None


def _ext_timestamp_field(mtime: int) -> bytes:
    if not _INT32[0] <= mtime <= _INT32[1]:
        return b""
    return struct.pack("<HHBi", EXT_TIMESTAMP_ID, 5, 0x01, mtime)


def _dos_date_time(mtime: int) -> Tuple[int, int, int, int, int, int]:
    dt = time.localtime(mtime)[:6]
    return dt if dt >= _DOS_EPOCH else _DOS_EPOCH


def _entry_mtime(info: zipfile.ZipInfo) -> int:
    ts = _ext_timestamp(info.extra)
    if ts is not None:
        return ts
    return int(time.mktime(info.date_time + (0, 0, -1)))


def _read_zip_entries(zf: zipfile.ZipFile) -> List[ArchiveEntry]:
    entries: Dict[str, ArchiveEntry] = {}
    for index, info in enumerate(zf.infolist()):
        # duplicate names: zipfile resolves to the last member, so do we
        entries.pop(info.filename, None)
        entries[info.filename] = ArchiveEntry(info.filename, _entry_mtime(info), index)
    return list(entries.values())


def _ensure_directory(directory: str) -> None:
    try:
        if not os.path.isdir(directory):
            os.makedirs(directory, mode=DIR_MODE, exist_ok=True)
        perms = stat.S_IMODE(os.stat(directory).st_mode)
        if perms & stat.S_IRWXU != stat.S_IRWXU:
            os.chmod(directory, DIR_MODE)
    except OSError as e:
        raise FileSystemError(directory, e) from e
    except ValueError as e:
        # embedded NUL and friends
        raise ArchiveOpenError(directory, OpenFailure.INVALID_ARGUMENT, e) from e


# --- public API ---

def open_or_create(archive_path: str, logger: Optional[logging.Logger] = None) -> "ArchiveHandle":
    """
    Open an existing archive or start an empty one at archive_path.

    The parent directory is created (0755) or fixed up to be owner-rwx.
    Raises FileSystemError for directory problems and ArchiveOpenError when
    an existing file cannot be read as a zip container.
    """
    log = logger or LOGGER
    _ensure_directory(os.path.dirname(archive_path) or os.curdir)

    try:
        if os.path.isfile(archive_path) and os.path.getsize(archive_path) == 0:
            # zero-length placeholder counts as an empty archive
            return ArchiveHandle(archive_path, [], existed=False, logger=log)
        with zipfile.ZipFile(archive_path, "r") as zf:
            entries = _read_zip_entries(zf)
        existed = True
    except FileNotFoundError:
        entries, existed = [], False
    except Exception as e:
        raise ArchiveOpenError.from_exception(archive_path, e) from e

    return ArchiveHandle(archive_path, entries, existed=existed, logger=log)


def read_entries(archive_path: str) -> List[ArchiveEntry]:
    try:
        with zipfile.ZipFile(archive_path, "r") as zf:
            return _read_zip_entries(zf)
    except Exception as e:
        raise ArchiveOpenError.from_exception(archive_path, e) from e


class ArchiveHandle:
    def __init__(
        self,
        path: str,
        entries: List[ArchiveEntry],
        *,
        existed: bool = False,
        logger: Optional[logging.Logger] = None,
    ):
        self.path = path
        self.existed = existed
        self.closed = False
        self._logger = logger or LOGGER
        self._entries: List[ArchiveEntry] = list(entries)
        self._next_index = max((e.index for e in entries), default=-1) + 1
        self._pending: Dict[str, Tuple[str, int]] = {}  # name -> (source path, st_mode)
        self._dirty = False
        self._removed = False

    def __len__(self) -> int:
        return len(self._entries)

    def __enter__(self) -> "ArchiveHandle":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc_type is None:
            self.close()
        else:
            self.discard()

    @property
    def entries(self) -> List[ArchiveEntry]:
        return list(self._entries)

    @property
    def names(self) -> List[str]:
        return [e.name for e in self._entries]

    def admits(self, modified_at: int, max_entries: int) -> bool:
        """
        True when an entry with this mtime would rank among the max_entries
        newest once added (ties favour the newcomer, it has the highest index).
        """
        if max_entries == UNBOUNDED:
            return True
        newer = sum(1 for e in self._entries if e.modified_at > modified_at)
        return newer < max_entries

    def enforce_capacity(self, max_entries: int) -> List[ArchiveEntry]:
        """
        Evict oldest entries until fewer than max_entries remain, making room
        for exactly one add. -1 never evicts.
        """
        self._check_open()
        if max_entries == UNBOUNDED:
            return []
        if max_entries < UNBOUNDED:
            raise ConfigurationError("Max archive entries must not be less than -1")

        evicted: List[ArchiveEntry] = []
        for victim in sorted(self._entries, key=lambda e: (e.modified_at, e.index)):
            if len(self._entries) < max_entries:
                break
            self._remove(victim)
            self._logger.debug("Removed old file '%s'", victim.name)
            evicted.append(victim)
        return evicted

    def add_entry(self, source_path: str, name: Optional[str] = None) -> ArchiveEntry:
        """
        Queue source_path for the archive under name (default: its base name).
        An existing entry with the same name is replaced.
        """
        self._check_open()
        name = name or os.path.basename(source_path)
        try:
            st = os.stat(source_path)
        except OSError as e:
            raise ArchiveWriteError(self.path, e) from e

        existing = self._find(name)
        if existing is not None:
            self._remove(existing)

        entry = ArchiveEntry(name, int(st.st_mtime), self._next_index)
        self._next_index += 1
        self._entries.append(entry)
        self._pending[name] = (source_path, st.st_mode)
        self._dirty = True
        return entry

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        if not self._dirty:
            return

        tmp_path = self.path + ".tmp"
        try:
            if not self._entries:
                # an emptied container is removed rather than left as a stub
                if os.path.exists(self.path):
                    os.remove(self.path)
                return
            if self.existed and not self._removed:
                self._append(tmp_path)
            else:
                self._write(tmp_path)
            os.replace(tmp_path, self.path)
        except (OSError, zipfile.BadZipFile, zlib.error, ValueError, EOFError) as e:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise ArchiveWriteError(self.path, e) from e
        finally:
            self._pending.clear()
            self._dirty = False

    def discard(self) -> None:
        """Drop queued changes; the file on disk is left as it was."""
        self.closed = True
        self._pending.clear()
        self._dirty = False

    # -------- internal helpers --------

    def _check_open(self) -> None:
        if self.closed:
            raise ValueError(f"Archive '{self.path}' is closed")

    def _find(self, name: str) -> Optional[ArchiveEntry]:
        for e in self._entries:
            if e.name == name:
                return e
        return None

    def _remove(self, entry: ArchiveEntry) -> None:
        self._entries.remove(entry)
        self._pending.pop(entry.name, None)
        self._dirty = True
        self._removed = True

    def _append(self, tmp_path: str) -> None:
        # existing members keep their compressed bytes
        shutil.copyfile(self.path, tmp_path)
        with zipfile.ZipFile(tmp_path, "a", compression=zipfile.ZIP_DEFLATED) as zout:
            for entry in self._entries:
                pending = self._pending.get(entry.name)
                if pending is not None:
                    self._write_file(zout, entry, *pending)

    def _write(self, tmp_path: str) -> None:
        needs_source = any(e.name not in self._pending for e in self._entries)
        zin = zipfile.ZipFile(self.path, "r") if (self.existed and needs_source) else None
        try:
            with zipfile.ZipFile(tmp_path, "w", compression=zipfile.ZIP_DEFLATED) as zout:
                for entry in self._entries:
                    pending = self._pending.get(entry.name)
                    if pending is not None:
                        self._write_file(zout, entry, *pending)
                    else:
                        self._copy_member(zin, zout, entry)
        finally:
            if zin is not None:
                zin.close()

    def _new_info(self, entry: ArchiveEntry) -> zipfile.ZipInfo:
        info = zipfile.ZipInfo(entry.name, date_time=_dos_date_time(entry.modified_at))
        info.compress_type = zipfile.ZIP_DEFLATED
        info.extra = _ext_timestamp_field(entry.modified_at)
        return info

    def _write_file(self, zout: zipfile.ZipFile, entry: ArchiveEntry, source: str, mode: int) -> None:
        info = self._new_info(entry)
        info.external_attr = (mode & 0xFFFF) << 16
        size = os.path.getsize(source)
        with open(source, "rb") as src, zout.open(info, "w", force_zip64=size > zipfile.ZIP64_LIMIT) as dst:
            shutil.copyfileobj(src, dst)

    def _copy_member(self, zin: Optional[zipfile.ZipFile], zout: zipfile.ZipFile, entry: ArchiveEntry) -> None:
        if zin is None:
            raise ValueError(f"No source archive for entry '{entry.name}'")
        old = zin.getinfo(entry.name)
        info = self._new_info(entry)
        info.external_attr = old.external_attr
        info.comment = old.comment
        with zin.open(old, "r") as src, zout.open(info, "w", force_zip64=old.file_size > zipfile.ZIP64_LIMIT) as dst:
            shutil.copyfileobj(src, dst)
