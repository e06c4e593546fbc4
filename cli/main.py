"""
CLI for LogKeeper ops.

Commands:
  run      Archive (or delete) logs older than --age, enforcing --max-entries.
  scan     Print the files a run would archive; changes nothing.
  list     Print the entries of an archive (name, mtime).

Connections:
- app.create_keeper builds the configured LogKeeper (env / --config / flags).
- keeper.archive.read_entries backs `list`.

Usage:
  python -m cli run --path logs --age "1 month" --max-entries 30
"""

from __future__ import annotations
import argparse
import sys
from datetime import datetime
from typing import Any, Dict

from app import create_keeper
from keeper.archive import read_entries
from keeper.errors import ConfigurationError


def _overrides(args: argparse.Namespace) -> Dict[str, Any]:
    return {
        "path": args.path,
        "age": args.age,
        "archive_name": args.archive_name,
        "max_entries": args.max_entries,
        "log_level": args.log_level,
        "log_file": args.log_file,
    }


def cmd_run(args: argparse.Namespace) -> int:
    keeper = create_keeper(_overrides(args), config_file=args.config)
    keeper.run()
    return 0


def cmd_scan(args: argparse.Namespace) -> int:
    keeper = create_keeper(_overrides(args), config_file=args.config)
    for candidate in keeper.eligible_files():
        print(candidate.path)
    return 0


def cmd_list(args: argparse.Namespace) -> int:
    for entry in read_entries(args.archive):
        ts = datetime.fromtimestamp(entry.modified_at).isoformat(timespec="seconds")
        print(f"{entry.name}\t{ts}")
    return 0


def _add_selection_args(sp: argparse.ArgumentParser) -> None:
    sp.add_argument("--path", help="Glob pattern or directory (= <dir>/*.log)")
    sp.add_argument("--age", help='Age threshold, e.g. "1 month", "14 days"')
    sp.add_argument("--archive-name", help="Archive file relative to each log's directory (default: old.zip)")
    sp.add_argument("--max-entries", type=int, help="-1 unbounded (default), 0 delete only, N keep newest N")
    sp.add_argument("--config", help="YAML/JSON config file")
    sp.add_argument("--log-level", help="DEBUG, INFO, WARNING, ...")
    sp.add_argument("--log-file", help="Also write LogKeeper logs to this rotating file")


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="logkeeper",
        description="Rotate aging log files into a bounded zip archive"
    )
    sub = p.add_subparsers(dest="command", required=True)

    sp = sub.add_parser("run", help="Archive old log files")
    _add_selection_args(sp)
    sp.set_defaults(func=cmd_run)

    sp = sub.add_parser("scan", help="List files a run would archive")
    _add_selection_args(sp)
    sp.set_defaults(func=cmd_scan)

    sp = sub.add_parser("list", help="List archive entries")
    sp.add_argument("archive", help="Path to the zip archive")
    sp.set_defaults(func=cmd_list)

    return p


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        return args.func(args)
    except KeyboardInterrupt:
        return 130
    except ConfigurationError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 2
    except Exception as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
