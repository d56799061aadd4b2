from __future__ import annotations

import logging
from typing import Optional

from pydantic import BaseModel, Field

from records.errors import ConfigurationError, StorageFailure, TransportFailure
from records.models import EntryType, SubmissionResult, now_utc_iso
from records.pipeline import SubmissionPipeline
from session.context import SessionContext

logger = logging.getLogger(__name__)

CONTACT_MESSAGE = "Please screenshot this message and contact the researcher immediately."


class DataErrorReport(BaseModel):
    """What the participant sees when their data could not be saved."""

    message: str
    participant_id: str
    session_id: str
    rows_collected: int
    current_phase: int
    questionnaire_completed: bool
    timestamp: str = Field(default_factory=now_utc_iso)
    contact: str = CONTACT_MESSAGE


class FinalizeOutcome(BaseModel):
    result: Optional[SubmissionResult] = None
    error: Optional[DataErrorReport] = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.result is not None and self.result.success


def error_report(ctx: SessionContext, message: str) -> DataErrorReport:
    return DataErrorReport(
        message=message,
        participant_id=ctx.participant_id or "MISSING",
        session_id=ctx.session_id or "MISSING",
        rows_collected=len(ctx.rows),
        current_phase=ctx.phase,
        questionnaire_completed=ctx.questionnaire_done,
    )


def _check_session(ctx: SessionContext) -> Optional[str]:
    if not ctx.participant_id:
        return "Subject ID is missing. Please contact the researcher."
    if not ctx.rows:
        return "No experiment data was collected. Please contact the researcher."
    found = {record.entry_type.value for record in ctx.records()}
    for expected in (EntryType.phase1_image, EntryType.phase2_response):
        if expected.value not in found:
            logger.warning("Session %s has no %s rows", ctx.session_id, expected.value)
    return None


async def finalize_session(ctx: SessionContext, pipeline: SubmissionPipeline) -> FinalizeOutcome:
    """Submit the whole session log; any hard failure yields an error report."""
    try:
        problem = _check_session(ctx)
    except ValueError as exc:
        logger.exception("Session %s log could not be read back", ctx.session_id)
        return FinalizeOutcome(error=error_report(ctx, f"The session log could not be read: {exc}"))
    if problem:
        return FinalizeOutcome(error=error_report(ctx, problem))
    try:
        result = await pipeline.submit(ctx.rows)
    except (ConfigurationError, StorageFailure, TransportFailure) as exc:
        logger.exception("Saving session %s failed", ctx.session_id)
        return FinalizeOutcome(error=error_report(ctx, f"There was an error saving your data: {exc}"))
    if not result.success:
        detail = ", ".join(result.errors)
        logger.error("Session %s partially saved; failed collections: %s", ctx.session_id, detail)
        return FinalizeOutcome(
            result=result,
            error=error_report(ctx, f"Failed to save to collections: {detail}"),
        )
    return FinalizeOutcome(result=result)
