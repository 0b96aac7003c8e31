"""Append-only shared message feed with cursor-based polling."""

__version__ = "1.0.0"
