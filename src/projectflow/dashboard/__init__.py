"""Dashboard summary and search."""

from projectflow.dashboard.stats import cached_stats, compute_stats, search

__all__ = ["cached_stats", "compute_stats", "search"]
