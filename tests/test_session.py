import asyncio
import re

import pytest

from records.errors import ConfigurationError
from records.models import ProbeRecord, QuestionnaireRecord, StimulusTrialRecord
from records.pipeline import SubmissionPipeline
from records.store import InMemoryRecordStore
from session.context import SessionStateError, new_session, new_session_id, plan_phases
from session.finish import CONTACT_MESSAGE, finalize_session
from stimuli.config import StudyConfig
from stimuli.models import ProbeStep


def _config(**overrides) -> StudyConfig:
    raw = {
        "phase1": {"large_count": 2, "small_count": 1},
        "phase2": {"old_images_count": 2, "new_images_count": 1},
        "attention_checks": {"phase1": {"positions": [2]}, "phase2": {"positions": [3]}},
        "image_pools": {
            "old": [f"old_{i}.jpg" for i in range(5)],
            "new": [f"new_{i}.jpg" for i in range(3)],
        },
        "probes": [
            {"id": "ac_color", "prompt": "Pick Blue", "options": ["Red", "Blue"], "correct_answer": "Blue"},
            {"id": "ac_fruit", "prompt": "Pick the fruit", "options": ["Pear", "Rock"], "correct_answer": "Pear"},
        ],
    }
    raw.update(overrides)
    return StudyConfig.model_validate(raw)


def _run_through(ctx, answer_correctly: bool = True):
    while not ctx.timelines_complete:
        step = ctx.current_step()
        if isinstance(step, ProbeStep):
            probe = ctx.probe_for(step)
            ctx.record_probe_answer(probe.correct_answer if answer_correctly else "wrong", 1.0)
        elif ctx.phase == 1:
            ctx.record_stimulus_view(3.0)
        else:
            ctx.record_stimulus_response("yes", 2.5, 80, 1.5)
    ctx.record_questionnaire("sweet", 50, 40, 30, 60, 70)


def test_session_id_format():
    assert re.match(r"^ses_\d+_[0-9a-z]{9}$", new_session_id())


def test_plan_offsets_phase2_probes():
    plans = plan_phases(_config())
    assert plans[1].probe_offset == 0
    assert plans[2].probe_offset == 1
    assert len(plans[1].timeline) == 4
    assert len(plans[2].timeline) == 4


def test_plan_needs_enough_probes():
    with pytest.raises(ConfigurationError):
        plan_phases(_config(probes=[]))


def test_full_session_log():
    config = _config()
    ctx = new_session(config, "P1", seed=3)
    _run_through(ctx)
    assert len(ctx.rows) == 9

    records = ctx.records()
    trials = [r for r in records if isinstance(r, StimulusTrialRecord)]
    probes = [r for r in records if isinstance(r, ProbeRecord)]
    assert [r.phase for r in trials] == [1, 1, 1, 2, 2, 2]
    assert sorted(r.image_type for r in trials if r.phase == 2) == ["new", "old", "old"]
    assert [p.attention_check_id for p in probes] == ["ac_color", "ac_fruit"]
    assert all(p.attention_correct for p in probes)
    assert isinstance(records[-1], QuestionnaireRecord)
    assert all(r.session_id == ctx.session_id for r in records)


def test_wrong_answer_is_logged_as_incorrect():
    ctx = new_session(_config(), "P1", seed=4)
    _run_through(ctx, answer_correctly=False)
    probes = [r for r in ctx.records() if isinstance(r, ProbeRecord)]
    assert [p.attention_response for p in probes] == ["wrong", "wrong"]
    assert not any(p.attention_correct for p in probes)


def test_out_of_order_recording_is_rejected():
    ctx = new_session(_config(), "P1", seed=5)
    with pytest.raises(SessionStateError):
        ctx.record_stimulus_response("yes", 1.0, 50, 1.0)
    with pytest.raises(SessionStateError):
        ctx.record_probe_answer("Blue", 1.0)
    with pytest.raises(SessionStateError):
        ctx.record_questionnaire("sweet", 1, 1, 1, 1, 1)


def test_questionnaire_only_once():
    ctx = new_session(_config(), "P1", seed=6)
    _run_through(ctx)
    with pytest.raises(SessionStateError):
        ctx.record_questionnaire("salty", 1, 1, 1, 1, 1)


def test_finalize_saves_every_collection():
    ctx = new_session(_config(), "P1", seed=7)
    _run_through(ctx)
    store = InMemoryRecordStore()
    outcome = asyncio.run(finalize_session(ctx, SubmissionPipeline(store)))
    assert outcome.ok
    assert outcome.result.per_collection_counts == {
        "phase1": 3,
        "attention_checks": 2,
        "phase2": 3,
        "final_questionnaire": 1,
    }
    stored = store.find("phase2", image_type="old")
    assert len(stored) == 2
    assert all(r["payment_response"] == 2.5 for r in stored)


class BrokenStore(InMemoryRecordStore):
    def insert_many(self, collection, records):
        raise RuntimeError("database unavailable")


def test_finalize_reports_storage_failure():
    ctx = new_session(_config(), "P1", seed=8)
    _run_through(ctx)
    outcome = asyncio.run(finalize_session(ctx, SubmissionPipeline(BrokenStore())))
    assert not outcome.ok
    assert outcome.error.contact == CONTACT_MESSAGE
    assert outcome.error.participant_id == "P1"
    assert outcome.error.rows_collected == 9
    assert outcome.error.questionnaire_completed
    assert "Failed to save to collections" in outcome.error.message


def test_finalize_without_data():
    ctx = new_session(_config(), "P1", seed=9)
    outcome = asyncio.run(finalize_session(ctx, SubmissionPipeline(InMemoryRecordStore())))
    assert not outcome.ok
    assert "No experiment data" in outcome.error.message

    ctx = new_session(_config(), "", seed=9)
    outcome = asyncio.run(finalize_session(ctx, SubmissionPipeline(InMemoryRecordStore())))
    assert outcome.error.participant_id == "MISSING"
    assert "Subject ID is missing" in outcome.error.message


def test_repeats_store_their_phase1_size():
    ctx = new_session(_config(), "P1", seed=10)
    _run_through(ctx)
    store = InMemoryRecordStore()
    assert asyncio.run(finalize_session(ctx, SubmissionPipeline(store))).ok

    phase1_sizes = {r["image_id"]: r["image_size"] for r in store.find("phase1")}
    assert all(r["phase1_size"] == r["image_size"] for r in store.find("phase1"))
    for record in store.find("phase2"):
        if record["image_type"] == "old":
            assert record["phase1_size"] == phase1_sizes[record["image_id"]]
            assert record["image_size"] == "medium"
        else:
            assert record["phase1_size"] == ""


def test_empty_answers_still_finalize():
    ctx = new_session(_config(), "P1", seed=11)
    while not ctx.timelines_complete:
        step = ctx.current_step()
        if isinstance(step, ProbeStep):
            ctx.record_probe_answer("", 2.0)
        elif ctx.phase == 1:
            ctx.record_stimulus_view(3.0)
        else:
            ctx.record_stimulus_response("", 0.0, 0, 1.0)
    ctx.record_questionnaire("", 1, 2, 3, 4, 5)

    store = InMemoryRecordStore()
    outcome = asyncio.run(finalize_session(ctx, SubmissionPipeline(store)))
    assert outcome.ok
    assert store.find("final_questionnaire")[0]["snack_preference"] == ""
    assert [r["attention_response"] for r in store.find("attention_checks")] == ["", ""]


def test_unreadable_log_yields_error_report():
    ctx = new_session(_config(), "P1", seed=12)
    _run_through(ctx)
    ctx.rows.append("P1,mystery_entry\n")
    outcome = asyncio.run(finalize_session(ctx, SubmissionPipeline(InMemoryRecordStore())))
    assert not outcome.ok
    assert outcome.error.rows_collected == 10
    assert outcome.error.contact == CONTACT_MESSAGE
