"""Shared helpers for the productivity tools (console output and logging)."""
