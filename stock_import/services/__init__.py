"""Aggregation, progress display, summary rendering and orchestration."""
