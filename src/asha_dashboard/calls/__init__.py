"""IVR calling: bulk orchestration and flag reconciliation.

Components:
- BulkCallOrchestrator: fan-out/fan-in dialing with per-target isolation
- reconcile / apply_flags: the follow-up rule and its best-effort application
- CallWorkflow: "Call All" and single-call sessions built on both
"""
from asha_dashboard.calls.orchestrator import (
    BulkCallOrchestrator,
    BulkCallResult,
    CallTarget,
    dedupe_targets,
)
from asha_dashboard.calls.reconciliation import (
    FOLLOW_UP_OUTCOMES,
    FlagUpdateReport,
    apply_flags,
    needs_follow_up,
    reconcile,
)
from asha_dashboard.calls.workflow import CallReport, CallWorkflow

__all__ = [
    # Orchestrator
    "BulkCallOrchestrator",
    "BulkCallResult",
    "CallTarget",
    "dedupe_targets",
    # Reconciliation
    "FOLLOW_UP_OUTCOMES",
    "FlagUpdateReport",
    "apply_flags",
    "needs_follow_up",
    "reconcile",
    # Workflow
    "CallReport",
    "CallWorkflow",
]
