"""Shared utilities: logging, atomic file I/O and retry helpers."""
