"""Operational CLI (see cli/main.py)."""
