"""
Error taxonomy for log keeping.

- LogKeeperError: base for everything raised by keeper/*
- ConfigurationError: invalid KeeperConfig / settings (fatal, before a run)
- ArchiveOpenError: zip container could not be opened or created
- FileSystemError: archive directory could not be created / fixed up
- ArchiveWriteError: container could not be finalized on close

Open failures are categorised by OpenFailure; both the exception -> category
mapping and the category -> message mapping are plain tables.
"""

from __future__ import annotations
import enum
import io
import zipfile
from typing import Dict, Optional, Tuple, Type


class LogKeeperError(Exception):
    pass


class ConfigurationError(LogKeeperError, ValueError):
    pass


class OpenFailure(enum.Enum):
    ALREADY_EXISTS = "already_exists"
    INVALID_ARGUMENT = "invalid_argument"
    MEMORY = "memory"
    NO_SUCH_FILE = "no_such_file"
    NOT_A_ZIP = "not_a_zip"
    READ = "read"
    SEEK = "seek"
    OPEN = "open"
    UNKNOWN = "unknown"

    @property
    def message(self) -> str:
        return OPEN_FAILURE_MESSAGES[self]


OPEN_FAILURE_MESSAGES: Dict[OpenFailure, str] = {
    OpenFailure.ALREADY_EXISTS: "File already exists.",
    OpenFailure.INVALID_ARGUMENT: "Invalid argument.",
    OpenFailure.MEMORY: "Malloc failure.",
    OpenFailure.NO_SUCH_FILE: "No such file.",
    OpenFailure.NOT_A_ZIP: "Not a zip archive.",
    OpenFailure.READ: "Read error.",
    OpenFailure.SEEK: "Seek error.",
    OpenFailure.OPEN: "Can't open file.",
    OpenFailure.UNKNOWN: "Unknown error.",
}

# Checked in order, first isinstance() match wins; subclasses before bases.
_EXCEPTION_CATEGORIES: Tuple[Tuple[Type[BaseException], OpenFailure], ...] = (
    (zipfile.BadZipFile, OpenFailure.NOT_A_ZIP),
    (zipfile.LargeZipFile, OpenFailure.NOT_A_ZIP),
    (MemoryError, OpenFailure.MEMORY),
    (FileExistsError, OpenFailure.ALREADY_EXISTS),
    (FileNotFoundError, OpenFailure.NO_SUCH_FILE),
    (io.UnsupportedOperation, OpenFailure.SEEK),
    (PermissionError, OpenFailure.OPEN),
    (IsADirectoryError, OpenFailure.OPEN),
    (NotADirectoryError, OpenFailure.OPEN),
    (EOFError, OpenFailure.READ),
    (OSError, OpenFailure.READ),
    (ValueError, OpenFailure.INVALID_ARGUMENT),
    (TypeError, OpenFailure.INVALID_ARGUMENT),
)


def classify_open_error(exc: BaseException) -> OpenFailure:
    for exc_type, failure in _EXCEPTION_CATEGORIES:
        if isinstance(exc, exc_type):
            return failure
    return OpenFailure.UNKNOWN


class ArchiveOpenError(LogKeeperError):
    def __init__(
        self,
        path: str,
        failure: OpenFailure,
        cause: Optional[BaseException] = None,
    ):
        self.path = path
        self.failure = failure
        self.cause = cause
        super().__init__(f"Could not open zip archive '{path}': {failure.message}")

    @classmethod
    def from_exception(cls, path: str, exc: BaseException) -> "ArchiveOpenError":
        return cls(path, classify_open_error(exc), exc)


class FileSystemError(LogKeeperError):
    def __init__(self, path: str, cause: Optional[BaseException] = None):
        self.path = path
        self.cause = cause
        detail = f": {cause}" if cause else ""
        super().__init__(f"Could not prepare archive directory '{path}'{detail}")


class ArchiveWriteError(LogKeeperError):
    def __init__(self, path: str, cause: Optional[BaseException] = None):
        self.path = path
        self.cause = cause
        detail = f": {cause}" if cause else ""
        super().__init__(f"Could not write zip archive '{path}'{detail}")
