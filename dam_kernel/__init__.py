"""
DAM Kernel - composable, retryable per-item asset actions

Building blocks for batch operations over repository items:
- Filter algebra over (session, path) predicates
- Bounded retry with revert/refresh between attempts
- Round-robin distribution of replication targets
- Rendition freshness detection
"""

__version__ = "0.1.0"
