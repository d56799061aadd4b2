"""
Stimulus assignment for both study phases.

Phase 1 draws large and small images without replacement from the old-image
pool and interleaves the sizes. Phase 2 re-shows the first ``old_images_count``
phase-1 items at medium size, keeping their phase-1 ids and ``phase1_size``,
next to unseen medium images from a disjoint pool.
"""

from __future__ import annotations

import random
from collections import Counter
from dataclasses import dataclass
from typing import List, Optional, Sequence

from records.errors import ConfigurationError
from stimuli.models import SizeCategory, StimulusItem
from stimuli.shuffle import shuffle


@dataclass(frozen=True)
class StimulusAssignment:
    phase1: List[StimulusItem]
    phase2: List[StimulusItem]


def _check_pool(name: str, pool: Sequence[str], required: int) -> None:
    if len(pool) < required:
        raise ConfigurationError(
            f"{name} image pool has {len(pool)} filenames but {required} are required"
        )
    duplicates = sorted(f for f, n in Counter(pool).items() if n > 1)
    if duplicates:
        raise ConfigurationError(f"{name} image pool repeats filenames: {', '.join(duplicates)}")


class StimulusAssigner:
    def __init__(
        self,
        large_count: int,
        small_count: int,
        old_images_count: int,
        new_images_count: int,
        rng: Optional[random.Random] = None,
    ):
        counts = {
            "large_count": large_count,
            "small_count": small_count,
            "old_images_count": old_images_count,
            "new_images_count": new_images_count,
        }
        negative = [k for k, v in counts.items() if v < 0]
        if negative:
            raise ConfigurationError(f"Counts must be non-negative: {', '.join(negative)}")
        if old_images_count > large_count + small_count:
            raise ConfigurationError(
                f"old_images_count={old_images_count} exceeds the {large_count + small_count} phase 1 images"
            )
        self.large_count = large_count
        self.small_count = small_count
        self.old_images_count = old_images_count
        self.new_images_count = new_images_count
        self.rng = rng or random.Random()

    @property
    def phase1_total(self) -> int:
        return self.large_count + self.small_count

    def assign(self, old_pool: Sequence[str], new_pool: Sequence[str]) -> StimulusAssignment:
        overlap = sorted(set(old_pool) & set(new_pool))
        if overlap:
            raise ConfigurationError(f"Old and new image pools overlap: {', '.join(overlap)}")
        phase1 = self.assign_phase1(old_pool)
        phase2 = self.assign_phase2(phase1, new_pool)
        return StimulusAssignment(phase1=phase1, phase2=phase2)

    def assign_phase1(self, pool: Sequence[str]) -> List[StimulusItem]:
        _check_pool("Old", pool, self.phase1_total)
        drawn = shuffle(pool, self.rng)
        items: List[StimulusItem] = []
        for i in range(self.phase1_total):
            size = SizeCategory.large if i < self.large_count else SizeCategory.small
            items.append(StimulusItem(id=i + 1, filename=drawn[i], size_category=size, phase=1, phase1_size=size))
        # interleave size categories
        return shuffle(items, self.rng)

    def assign_phase2(self, phase1: Sequence[StimulusItem], pool: Sequence[str]) -> List[StimulusItem]:
        if len(phase1) < self.old_images_count:
            raise ConfigurationError(
                f"Phase 2 needs {self.old_images_count} repeated images but phase 1 has {len(phase1)}"
            )
        _check_pool("New", pool, self.new_images_count)
        repeats = [
            item.model_copy(update={"size_category": SizeCategory.medium, "phase": 2, "is_repeat_of_phase1": True})
            for item in phase1[: self.old_images_count]
        ]
        first_new_id = max((item.id for item in phase1), default=0) + 1
        drawn = shuffle(pool, self.rng)
        fresh = [
            StimulusItem(id=first_new_id + i, filename=drawn[i], size_category=SizeCategory.medium, phase=2)
            for i in range(self.new_images_count)
        ]
        return shuffle(repeats + fresh, self.rng)
