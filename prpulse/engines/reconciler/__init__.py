"""Status reconciliation engine."""

from prpulse.engines.reconciler.status import (
    UnifiedStatus,
    dedupe_check_runs,
    needs_review,
    pending_actions_count,
    reconcile,
)

__all__ = [
    "UnifiedStatus",
    "dedupe_check_runs",
    "needs_review",
    "pending_actions_count",
    "reconcile",
]
