"""Explicit per-participant session state and finalization."""

from session.context import PhasePlan, SessionContext, SessionStateError, new_session, new_session_id, plan_phases
from session.finish import DataErrorReport, FinalizeOutcome, error_report, finalize_session

__all__ = [
    "PhasePlan",
    "SessionContext",
    "SessionStateError",
    "new_session",
    "new_session_id",
    "plan_phases",
    "DataErrorReport",
    "FinalizeOutcome",
    "error_report",
    "finalize_session",
]
