from __future__ import annotations

import random
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from records.errors import ConfigurationError
from session.context import new_session_id, plan_phases
from stimuli.config import StudyConfig
from stimuli.models import Probe


class SessionCreate(BaseModel):
    participant_id: str = Field(min_length=1)
    seed: Optional[int] = None


class PhaseTimeline(BaseModel):
    phase: int
    probe_offset: int
    steps: List[Dict[str, Any]]


class SessionPlan(BaseModel):
    session_id: str
    participant_id: str
    image_display_duration_ms: int
    image_sizes: Dict[str, str]
    phases: List[PhaseTimeline]
    probes: List[Probe]


def build_sessions_router(config: StudyConfig) -> APIRouter:
    router = APIRouter(prefix="/sessions", tags=["sessions"])

    @router.post("", response_model=SessionPlan)
    def create_session(req: SessionCreate) -> SessionPlan:
        rng = random.Random(req.seed)
        try:
            plans = plan_phases(config, rng)
        except ConfigurationError as exc:
            raise HTTPException(status_code=500, detail=str(exc))
        return SessionPlan(
            session_id=new_session_id(rng),
            participant_id=req.participant_id,
            image_display_duration_ms=config.image_display_duration_ms,
            image_sizes={size.value: css for size, css in config.image_sizes.items()},
            phases=[
                PhaseTimeline(
                    phase=plan.phase,
                    probe_offset=plan.probe_offset,
                    steps=[step.model_dump(mode="json") for step in plan.timeline],
                )
                for plan in plans.values()
            ],
            probes=config.probes,
        )

    return router
