"""Diff parsing, CI environment detection, diff sources and review comment writers."""

__version__ = "0.1.0"
__all__ = ["cienv", "comments", "diffservice", "unified_diff"]