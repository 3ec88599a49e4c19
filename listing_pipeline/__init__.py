"""Duplicate detection, quality scoring and approval pipeline for directory listings."""
