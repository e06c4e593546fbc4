"""
KeeperConfig: the immutable per-run configuration.

- pattern: glob of candidate files, or a directory (= <dir>/*.log)
- age_threshold: AgeThreshold (str / int seconds / timedelta accepted)
- archive_name: archive path relative to each candidate's directory
- max_archive_entries: -1 unbounded, 0 delete-only, N > 0 bounded
"""

from __future__ import annotations
from dataclasses import dataclass
from datetime import timedelta
from typing import Union

from keeper.duration import AgeThreshold, parse_duration
from keeper.errors import ConfigurationError

DEFAULT_ARCHIVE_NAME = "old.zip"
UNBOUNDED = -1
DISABLED = 0


@dataclass(frozen=True)
class KeeperConfig:
    pattern: str
    age_threshold: Union[AgeThreshold, str, int, timedelta]
    archive_name: str = DEFAULT_ARCHIVE_NAME
    max_archive_entries: int = UNBOUNDED

    def __post_init__(self):
        if not self.pattern:
            raise ConfigurationError("Path pattern must not be empty")
        if not self.archive_name:
            raise ConfigurationError("Archive name must not be empty")
        if isinstance(self.max_archive_entries, bool) or not isinstance(self.max_archive_entries, int):
            raise ConfigurationError(
                f"Max archive entries must be an integer, got {self.max_archive_entries!r}"
            )
        if self.max_archive_entries < UNBOUNDED:
            raise ConfigurationError("Max archive entries must not be less than -1")
        # frozen: normalise the threshold in place
        object.__setattr__(self, "age_threshold", parse_duration(self.age_threshold))

    @property
    def archiving_disabled(self) -> bool:
        return self.max_archive_entries == DISABLED

    @property
    def unbounded(self) -> bool:
        return self.max_archive_entries == UNBOUNDED
