"""Summary helpers for symmap artifacts."""

from artifacts.summaries.builders import (
    build_graph_summary,
    compute_containment_cycles,
    compute_fan_stats,
)

__all__ = ["build_graph_summary", "compute_containment_cycles", "compute_fan_stats"]
