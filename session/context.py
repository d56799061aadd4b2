"""
Per-participant session state.

A SessionContext is owned by exactly one flow of control: it holds the
assigned stimuli, both phase timelines with their cursors, and the encoded
session log. Nothing here is shared between sessions.
"""

from __future__ import annotations

import random
import string
import time
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple

from records.codec import RowCodec, default_codec
from records.errors import ConfigurationError
from records.models import (
    ProbeRecord,
    QuestionnaireRecord,
    SessionRecord,
    StimulusTrialRecord,
    now_utc_iso,
    record_from_row,
)
from stimuli.assignment import StimulusAssigner
from stimuli.config import StudyConfig
from stimuli.models import Probe, ProbeStep, StimulusItem, StimulusStep, TimelineStep
from stimuli.timeline import TimelineCursor, build_timeline, probe_count

_BASE36 = string.digits + string.ascii_lowercase


class SessionStateError(RuntimeError):
    """A response was recorded against the wrong kind of step."""


@dataclass(frozen=True)
class PhasePlan:
    phase: int
    items: Tuple[StimulusItem, ...]
    timeline: Tuple[TimelineStep, ...]
    # probes consumed by earlier phases; offsets lookups into the shared pool
    probe_offset: int = 0


def _size_name(item: StimulusItem) -> Optional[str]:
    return item.phase1_size.value if item.phase1_size else None


def new_session_id(rng: Optional[random.Random] = None) -> str:
    rng = rng or random.Random()
    suffix = "".join(rng.choice(_BASE36) for _ in range(9))
    return f"ses_{int(time.time() * 1000)}_{suffix}"


def plan_phases(config: StudyConfig, rng: Optional[random.Random] = None) -> Dict[int, PhasePlan]:
    assigner = StimulusAssigner(
        large_count=config.phase1.large_count,
        small_count=config.phase1.small_count,
        old_images_count=config.phase2.old_images_count,
        new_images_count=config.phase2.new_images_count,
        rng=rng,
    )
    assignment = assigner.assign(config.image_pools.old, config.image_pools.new)
    timeline1 = build_timeline(assignment.phase1, config.attention_checks.phase1.positions)
    timeline2 = build_timeline(assignment.phase2, config.attention_checks.phase2.positions)
    needed = probe_count(timeline1) + probe_count(timeline2)
    if needed > len(config.probes):
        raise ConfigurationError(f"Timelines need {needed} attention check questions but {len(config.probes)} are configured")
    return {
        1: PhasePlan(phase=1, items=tuple(assignment.phase1), timeline=timeline1),
        2: PhasePlan(phase=2, items=tuple(assignment.phase2), timeline=timeline2, probe_offset=probe_count(timeline1)),
    }


class SessionContext:
    def __init__(
        self,
        participant_id: str,
        config: StudyConfig,
        plans: Dict[int, PhasePlan],
        session_id: Optional[str] = None,
        codec: RowCodec = default_codec,
        clock: Callable[[], str] = now_utc_iso,
    ):
        self.participant_id = participant_id
        self.config = config
        self.plans = plans
        self.session_id = session_id or new_session_id()
        self.codec = codec
        self.clock = clock
        self.phase = 1
        self.cursors = {phase: TimelineCursor(plan.timeline) for phase, plan in plans.items()}
        self.rows: List[str] = []
        self.questionnaire_done = False
        self._phase1_ids = {item.id for item in plans[1].items}
        if self.cursors[1].done:
            self.phase = 2

    @property
    def cursor(self) -> TimelineCursor:
        return self.cursors[self.phase]

    @property
    def timelines_complete(self) -> bool:
        return all(cursor.done for cursor in self.cursors.values())

    def current_step(self) -> Optional[TimelineStep]:
        return self.cursor.current()

    def advance(self) -> Optional[TimelineStep]:
        step = self.cursor.advance()
        if step is None and self.phase == 1:
            self.phase = 2
            return self.cursor.current()
        return step

    def probe_for(self, step: ProbeStep) -> Probe:
        offset = self.plans[self.phase].probe_offset
        return self.config.probes[offset + step.probe_index]

    def image_type(self, item: StimulusItem) -> str:
        return "old" if item.id in self._phase1_ids else "new"

    def _expect(self, kind: type, phase: Optional[int] = None):
        step = self.current_step()
        if not isinstance(step, kind):
            raise SessionStateError(f"Expected a {kind.__name__} but the current step is {step!r}")
        if phase is not None and self.phase != phase:
            raise SessionStateError(f"Expected phase {phase} but the session is in phase {self.phase}")
        return step

    def append(self, record: SessionRecord) -> str:
        line = self.codec.encode(record.to_row())
        self.rows.append(line)
        return line

    def record_stimulus_view(self, response_time: float) -> StimulusTrialRecord:
        step = self._expect(StimulusStep, phase=1)
        record = StimulusTrialRecord(
            participant_id=self.participant_id,
            session_id=self.session_id,
            timestamp=self.clock(),
            phase=1,
            image_id=step.item.id,
            filename=step.item.filename,
            image_size=step.item.size_category.value,
            phase1_size=_size_name(step.item),
            response_time=response_time,
        )
        self.append(record)
        self.advance()
        return record

    def record_stimulus_response(
        self,
        memory_response: str,
        payment_response: float,
        confidence: float,
        response_time: float,
    ) -> StimulusTrialRecord:
        step = self._expect(StimulusStep, phase=2)
        record = StimulusTrialRecord(
            participant_id=self.participant_id,
            session_id=self.session_id,
            timestamp=self.clock(),
            phase=2,
            image_id=step.item.id,
            filename=step.item.filename,
            image_size=step.item.size_category.value,
            phase1_size=_size_name(step.item),
            image_type=self.image_type(step.item),
            memory_response=memory_response,
            payment_response=payment_response,
            confidence=confidence,
            response_time=response_time,
        )
        self.append(record)
        self.advance()
        return record

    def record_probe_answer(self, response: str, response_time: float) -> ProbeRecord:
        step = self._expect(ProbeStep)
        probe = self.probe_for(step)
        record = ProbeRecord(
            participant_id=self.participant_id,
            session_id=self.session_id,
            timestamp=self.clock(),
            phase=self.phase,
            attention_check_id=probe.id,
            attention_response=response,
            attention_correct=probe.is_correct(response),
            response_time=response_time,
        )
        self.append(record)
        self.advance()
        return record

    def record_questionnaire(
        self,
        snack_preference: str,
        desire_to_eat: int,
        hunger: int,
        fullness: int,
        satisfaction: int,
        eating_capacity: int,
    ) -> QuestionnaireRecord:
        if not self.timelines_complete:
            raise SessionStateError("The final questionnaire follows both image phases")
        if self.questionnaire_done:
            raise SessionStateError("The final questionnaire was already recorded")
        record = QuestionnaireRecord(
            participant_id=self.participant_id,
            session_id=self.session_id,
            timestamp=self.clock(),
            snack_preference=snack_preference,
            desire_to_eat=desire_to_eat,
            hunger=hunger,
            fullness=fullness,
            satisfaction=satisfaction,
            eating_capacity=eating_capacity,
        )
        self.append(record)
        self.questionnaire_done = True
        return record

    def records(self) -> List[SessionRecord]:
        return [record_from_row(self.codec.decode(line)) for line in self.rows]


def new_session(
    config: StudyConfig,
    participant_id: str,
    rng: Optional[random.Random] = None,
    seed: Optional[int] = None,
) -> SessionContext:
    if rng is None:
        rng = random.Random(seed)
    plans = plan_phases(config, rng)
    return SessionContext(participant_id, config, plans, session_id=new_session_id(rng))
