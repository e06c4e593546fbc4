"""
Global test fixtures for LogKeeper.

Creates isolated log directories under tmp_path and a generator for dated
log files (mtime set via os.utime), mirroring how a daily logger leaves
files behind.
"""

from __future__ import annotations
import os
import time
from datetime import datetime, timedelta
from pathlib import Path
from typing import Callable, Dict, List

import pytest

# ---------------------------------------------------------------------------
# Import target packages
# ---------------------------------------------------------------------------
import sys
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """No LOGKEEPER_* leakage from the host environment."""
    for key in list(os.environ):
        if key.startswith("LOGKEEPER_"):
            monkeypatch.delenv(key, raising=False)


@pytest.fixture()
def log_dir(tmp_path: Path) -> Path:
    d = tmp_path / "logs"
    (d / "sub").mkdir(parents=True, exist_ok=True)
    return d


def touch(path: Path, mtime: float, content: str | None = None) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content if content is not None else f"log {path.name}\n", encoding="utf-8")
    os.utime(path, (mtime, mtime))
    return path


@pytest.fixture()
def make_logs(log_dir: Path) -> Callable[..., List[Dict]]:
    """
    make_logs(start, end, directory=log_dir, prefix="test") -> [{name, mtime, path}]
    One file per day from start to end inclusive, named <prefix>-YYYY-MM-DD.log.
    """
    def _make(start: datetime, end: datetime, directory: Path | None = None, prefix: str = "test"):
        directory = directory or log_dir
        out: List[Dict] = []
        cur = start
        while cur <= end:
            name = f"{prefix}-{cur:%Y-%m-%d}.log"
            mtime = int(cur.timestamp())
            path = touch(directory / name, mtime)
            out.append({"name": name, "mtime": mtime, "path": path})
            cur += timedelta(days=1)
        return out

    return _make


@pytest.fixture()
def touch_file() -> Callable[..., Path]:
    """touch_file(path, mtime, content=None) -> path"""
    return touch


@pytest.fixture()
def new_york_tz():
    """Local time is America/New_York (EDT until 2024-11-03, EST after)."""
    if not hasattr(time, "tzset"):
        pytest.skip("time.tzset not available")
    old = os.environ.get("TZ")
    os.environ["TZ"] = "America/New_York"
    time.tzset()
    if "EDT" not in time.tzname:
        # zone database missing: tzset fell back to UTC
        _restore_tz(old)
        pytest.skip("America/New_York zone data not installed")
    yield
    _restore_tz(old)


def _restore_tz(old: str | None) -> None:
    if old is None:
        os.environ.pop("TZ", None)
    else:
        os.environ["TZ"] = old
    time.tzset()
