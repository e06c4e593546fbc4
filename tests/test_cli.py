"""
CLI tests: run / scan / list sub-commands, exit codes, and the cron script.
"""

from __future__ import annotations
import os
from datetime import datetime, timedelta

import pytest

from cli.main import build_parser, main
from keeper.archive import read_entries

JAN_1 = datetime(2024, 1, 1)


@pytest.fixture(autouse=True)
def quiet_root_logger():
    import logging
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    for h in list(root.handlers):
        if h not in handlers:
            root.removeHandler(h)
    root.setLevel(level)


def test_parser_requires_command():
    with pytest.raises(SystemExit):
        build_parser().parse_args([])


def test_run_archives_old_logs(log_dir, make_logs, capsys):
    stats = make_logs(JAN_1, JAN_1 + timedelta(days=4))
    rc = main(["run", "--path", str(log_dir), "--age", "1 month", "--max-entries", "3"])
    assert rc == 0
    entries = read_entries(str(log_dir / "old.zip"))
    assert sorted(e.name for e in entries) == [s["name"] for s in stats[-3:]]


def test_run_with_config_file_and_log_file(tmp_path, log_dir, make_logs):
    make_logs(JAN_1, JAN_1 + timedelta(days=1))
    log_file = tmp_path / "keeper-logs" / "logkeeper.log"
    cfg = tmp_path / "keeper.yaml"
    cfg.write_text(
        f"path: {log_dir}\nage: 2 weeks\narchive_name: archive/logs.zip\nlog_level: DEBUG\nlog_file: {log_file}\n",
        encoding="utf-8",
    )

    assert main(["run", "--config", str(cfg)]) == 0
    assert len(read_entries(str(log_dir / "archive" / "logs.zip"))) == 2
    assert "Starting log keeping" in log_file.read_text(encoding="utf-8")


def test_run_uses_env(monkeypatch, log_dir, make_logs):
    make_logs(JAN_1, JAN_1)
    monkeypatch.setenv("LOGKEEPER_PATH", str(log_dir))
    monkeypatch.setenv("LOGKEEPER_MAX_ENTRIES", "0")
    assert main(["run"]) == 0
    assert not list(log_dir.glob("*.log"))
    assert not (log_dir / "old.zip").exists()


def test_scan_lists_without_changes(log_dir, make_logs, capsys):
    stats = make_logs(JAN_1, JAN_1 + timedelta(days=1))
    assert main(["scan", "--path", str(log_dir)]) == 0
    out = capsys.readouterr().out.split()
    assert out == [str(s["path"]) for s in stats]
    assert all(s["path"].exists() for s in stats)


def test_list_prints_entries(log_dir, make_logs, capsys):
    stats = make_logs(JAN_1, JAN_1 + timedelta(days=1))
    main(["run", "--path", str(log_dir)])
    capsys.readouterr()

    assert main(["list", str(log_dir / "old.zip")]) == 0
    lines = capsys.readouterr().out.strip().splitlines()
    assert [ln.split("\t")[0] for ln in lines] == [s["name"] for s in stats]
    assert lines[0].split("\t")[1] == datetime.fromtimestamp(stats[0]["mtime"]).isoformat(timespec="seconds")


def test_configuration_errors_exit_2(log_dir, capsys):
    assert main(["run", "--path", str(log_dir), "--max-entries", "-3"]) == 2
    assert "must not be less than -1" in capsys.readouterr().err
    assert main(["run"]) == 2
    assert main(["run", "--path", str(log_dir), "--age", "someday"]) == 2


def test_archive_errors_exit_1(log_dir, make_logs, capsys):
    stats = make_logs(JAN_1, JAN_1)
    (log_dir / "old.zip").write_bytes(b"not a zip")
    assert main(["run", "--path", str(log_dir)]) == 1
    assert "Not a zip archive." in capsys.readouterr().err
    assert stats[0]["path"].exists()

    assert main(["list", str(log_dir / "missing.zip")]) == 1


def test_rotate_logs_script(log_dir, make_logs, capsys):
    from scripts.rotate_logs import main as rotate_main

    stats = make_logs(JAN_1, JAN_1 + timedelta(days=5))
    rotate_main(["--logs-dir", str(log_dir), "--age", "30 days", "--retention", "2"])

    assert "[OK] Rotated logs" in capsys.readouterr().out
    assert sorted(e.name for e in read_entries(str(log_dir / "old.zip"))) == [s["name"] for s in stats[-2:]]
    assert not any(os.path.exists(s["path"]) for s in stats)
