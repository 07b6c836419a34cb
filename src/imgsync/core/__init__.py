"""Sync orchestration core."""
