"""Scheduled-job entry points (cron / systemd timers)."""
