from __future__ import annotations

from typing import Iterable, List, Optional, Sequence, Tuple

from records.errors import ConfigurationError
from stimuli.models import ProbeStep, StimulusItem, StimulusStep, TimelineStep


def build_timeline(items: Sequence[StimulusItem], positions: Iterable[int]) -> Tuple[TimelineStep, ...]:
    """Interleave probe steps after the given one-based stimulus positions.

    Probe indices start at 0 and are local to the timeline. Every position must
    fall within ``1..len(items)``.
    """
    wanted = sorted(set(positions))
    out_of_range = [p for p in wanted if p < 1 or p > len(items)]
    if out_of_range:
        raise ConfigurationError(
            f"Probe positions {out_of_range} fall outside 1..{len(items)} stimulus steps"
        )
    after = set(wanted)
    steps: List[TimelineStep] = []
    probe_index = 0
    for number, item in enumerate(items, start=1):
        steps.append(StimulusStep(item=item))
        if number in after:
            steps.append(ProbeStep(probe_index=probe_index))
            probe_index += 1
    return tuple(steps)


def probe_count(timeline: Sequence[TimelineStep]) -> int:
    return sum(1 for step in timeline if isinstance(step, ProbeStep))


class TimelineCursor:
    """Read position over an immutable timeline."""

    def __init__(self, timeline: Sequence[TimelineStep]):
        self.timeline = tuple(timeline)
        self.index = 0

    @property
    def done(self) -> bool:
        return self.index >= len(self.timeline)

    def current(self) -> Optional[TimelineStep]:
        if self.done:
            return None
        return self.timeline[self.index]

    def advance(self) -> Optional[TimelineStep]:
        if not self.done:
            self.index += 1
        return self.current()

    @property
    def stimulus_total(self) -> int:
        return sum(1 for step in self.timeline if isinstance(step, StimulusStep))

    def stimulus_number(self) -> int:
        """One-based number of stimulus steps reached so far, probes excluded."""
        upto = self.timeline[: self.index + 1]
        return sum(1 for step in upto if isinstance(step, StimulusStep))
