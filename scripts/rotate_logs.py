#!/usr/bin/env python3
"""
Rotate logs/*.log older than --age into logs/old.zip and remove the originals.

Usage:
  python scripts/rotate_logs.py [--logs-dir logs] [--age "1 month"] [--retention 30]

Notes:
- Meant for a periodic scheduler (cron / systemd timer); runs must not overlap.
- --retention caps the archive at N entries (oldest evicted first),
  -1 keeps everything, 0 deletes old logs without archiving.
"""

from __future__ import annotations
import argparse
import logging
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from keeper.config import DEFAULT_ARCHIVE_NAME, KeeperConfig  # noqa: E402
from keeper.log_keeper import LogKeeper  # noqa: E402


def rotate(logs_dir: Path, age: str, retention: int, archive_name: str = DEFAULT_ARCHIVE_NAME) -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(name)s - %(message)s")
    config = KeeperConfig(
        pattern=str(logs_dir),
        age_threshold=age,
        archive_name=archive_name,
        max_archive_entries=retention,
    )
    LogKeeper(config).run()
    print(f"[OK] Rotated logs in {logs_dir} older than {config.age_threshold}. Retention={retention}.")


def main(argv: list[str] | None = None) -> None:
    ap = argparse.ArgumentParser(description="Rotate/Archive logs")
    ap.add_argument("--logs-dir", default="logs")
    ap.add_argument("--age", default="1 month")
    ap.add_argument("--retention", type=int, default=-1)
    ap.add_argument("--archive-name", default=DEFAULT_ARCHIVE_NAME)
    args = ap.parse_args(argv)
    rotate(Path(args.logs_dir), args.age, args.retention, args.archive_name)


if __name__ == "__main__":
    main()
