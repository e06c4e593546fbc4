"""
Candidate discovery and eligibility.

- list_files(): glob expansion (a directory means <dir>/*.log, no recursion)
- stat_candidate(): mtime + regular-file check; never raises
- is_eligible(): regular file modified at or before the cutoff
- select_eligible(): lazy filter over discovered paths
"""

from __future__ import annotations
import glob
import os
import stat
from dataclasses import dataclass
from typing import Callable, Iterable, Iterator, Optional

DIRECTORY_PATTERN = "*.log"


@dataclass(frozen=True)
class Candidate:
    path: str
    modified_at: Optional[int]  # POSIX seconds, None when stat failed
    is_file: bool


def list_files(pattern: str) -> Iterator[str]:
    if os.path.isdir(pattern):
        pattern = os.path.join(glob.escape(pattern), DIRECTORY_PATTERN)
    for path in sorted(glob.iglob(pattern)):
        yield path


def stat_candidate(path: str) -> Candidate:
    try:
        st = os.stat(path)
    except (OSError, ValueError):
        # raced deletion, dangling symlink, unreadable parent
        return Candidate(path, None, False)
    return Candidate(path, int(st.st_mtime), stat.S_ISREG(st.st_mode))


def is_eligible(candidate: Candidate, cutoff: int) -> bool:
    if not candidate.is_file or candidate.modified_at is None:
        return False
    return cutoff >= candidate.modified_at


def select_eligible(
    paths: Iterable[str],
    cutoff: int,
    stat_fn: Callable[[str], Candidate] = stat_candidate,
) -> Iterator[Candidate]:
    for path in paths:
        candidate = stat_fn(path)
        if is_eligible(candidate, cutoff):
            yield candidate
