"""Duplicate matching and directory-wide duplicate sweeps."""
from listing_pipeline.matchers.duplicate_matcher import (
    find_duplicate_verdicts,
    find_duplicates,
    is_loose_duplicate,
    is_strict_duplicate,
)
from listing_pipeline.matchers.duplicate_sweep import DuplicateSweep, process_duplicates

__all__ = [
    "find_duplicate_verdicts",
    "find_duplicates",
    "is_loose_duplicate",
    "is_strict_duplicate",
    "DuplicateSweep",
    "process_duplicates",
]
