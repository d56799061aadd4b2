import random

import pytest

from records.errors import ConfigurationError
from stimuli.assignment import StimulusAssigner
from stimuli.models import SizeCategory

OLD = [f"old_{i}.jpg" for i in range(10)]
NEW = [f"new_{i}.jpg" for i in range(10)]


def _assigner(seed: int = 7, **overrides) -> StimulusAssigner:
    counts = dict(large_count=3, small_count=2, old_images_count=2, new_images_count=2)
    counts.update(overrides)
    return StimulusAssigner(rng=random.Random(seed), **counts)


def test_phase1_ids_sizes_and_pool():
    assignment = _assigner().assign(OLD, NEW)
    phase1 = assignment.phase1
    assert len(phase1) == 5
    assert sorted(item.id for item in phase1) == [1, 2, 3, 4, 5]
    by_id = {item.id: item for item in phase1}
    assert {by_id[i].size_category for i in (1, 2, 3)} == {SizeCategory.large}
    assert {by_id[i].size_category for i in (4, 5)} == {SizeCategory.small}
    filenames = [item.filename for item in phase1]
    assert len(set(filenames)) == 5
    assert set(filenames) <= set(OLD)
    assert all(item.phase == 1 and not item.is_repeat_of_phase1 for item in phase1)


def test_phase2_repeats_keep_ids_and_new_ids_follow_phase1():
    assignment = _assigner().assign(OLD, NEW)
    phase1_by_id = {item.id: item for item in assignment.phase1}
    phase2 = assignment.phase2
    assert len(phase2) == 4
    assert all(item.size_category == SizeCategory.medium and item.phase == 2 for item in phase2)

    repeats = [item for item in phase2 if item.is_repeat_of_phase1]
    fresh = [item for item in phase2 if not item.is_repeat_of_phase1]
    assert {item.id for item in repeats} == {item.id for item in assignment.phase1[:2]}
    for item in repeats:
        assert item.filename == phase1_by_id[item.id].filename
    assert sorted(item.id for item in fresh) == [6, 7]
    assert {item.filename for item in fresh} <= set(NEW)


def test_same_seed_same_assignment():
    assert _assigner(seed=1).assign(OLD, NEW) == _assigner(seed=1).assign(OLD, NEW)


def test_zero_counts_give_empty_phases():
    assignment = _assigner(large_count=0, small_count=0, old_images_count=0, new_images_count=0).assign([], [])
    assert assignment.phase1 == []
    assert assignment.phase2 == []


def test_pool_too_small():
    with pytest.raises(ConfigurationError):
        _assigner().assign(OLD[:4], NEW)
    with pytest.raises(ConfigurationError):
        _assigner().assign(OLD, NEW[:1])


def test_old_count_exceeds_phase1():
    with pytest.raises(ConfigurationError):
        _assigner(old_images_count=6)


def test_negative_count():
    with pytest.raises(ConfigurationError):
        _assigner(small_count=-1)


def test_overlapping_pools():
    with pytest.raises(ConfigurationError):
        _assigner().assign(OLD, NEW[:5] + [OLD[0]])


def test_duplicate_filenames_in_pool():
    with pytest.raises(ConfigurationError):
        _assigner().assign(OLD + [OLD[3]], NEW)


def test_phase1_size_travels_with_repeats():
    assignment = _assigner(seed=3).assign(OLD, NEW)
    phase1_by_id = {item.id: item for item in assignment.phase1}
    assert all(item.phase1_size == item.size_category for item in assignment.phase1)
    for item in assignment.phase2:
        if item.is_repeat_of_phase1:
            assert item.phase1_size == phase1_by_id[item.id].size_category
        else:
            assert item.phase1_size is None
