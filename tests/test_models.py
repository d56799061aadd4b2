import pytest

from records.codec import decode, encode
from records.models import (
    CollectionName,
    ProbeRecord,
    QuestionnaireRecord,
    StimulusTrialRecord,
    SubmissionResult,
    record_from_row,
    route_by_entry_type,
)
from records.schemas import SESSION_LOG_COLUMNS
from records.store import InMemoryRecordStore


def test_trial_row_layout():
    record = StimulusTrialRecord(
        participant_id="P1",
        session_id="ses_1",
        timestamp="2024-05-01T12:00:00+00:00",
        phase=2,
        image_id=21,
        filename="ramen.jpg",
        image_size="medium",
        image_type="new",
        memory_response="no",
        payment_response=1.5,
        confidence=40,
        response_time=2.0,
    )
    row = dict(zip(SESSION_LOG_COLUMNS, record.to_row()))
    assert len(record.to_row()) == len(SESSION_LOG_COLUMNS) == 23
    assert row["entry_type"] == "phase2_response"
    assert row["response_time"] == "2.000"
    assert row["attention_check_id"] == ""
    assert record_from_row(decode(encode(record.to_row()))) == record


def test_probe_and_questionnaire_parse_back():
    probe = ProbeRecord(
        participant_id="P1",
        phase=1,
        attention_check_id="ac_color",
        attention_response="Red",
        attention_correct=False,
        response_time=0.75,
        timestamp="t",
    )
    parsed = record_from_row(decode(encode(probe.to_row())))
    assert isinstance(parsed, ProbeRecord)
    assert parsed.attention_correct is False

    questionnaire = QuestionnaireRecord(
        participant_id="P1",
        snack_preference="salty, crunchy",
        desire_to_eat=0,
        hunger=100,
        fullness=50,
        satisfaction=50,
        eating_capacity=50,
        timestamp="t",
    )
    assert record_from_row(decode(encode(questionnaire.to_row()))) == questionnaire


def test_questionnaire_scale_bounds():
    with pytest.raises(ValueError):
        QuestionnaireRecord(
            participant_id="P1",
            snack_preference="sweet",
            desire_to_eat=101,
            hunger=0,
            fullness=0,
            satisfaction=0,
            eating_capacity=0,
        )


def test_unknown_entry_type():
    with pytest.raises(ValueError):
        record_from_row(["P1", "mystery"])


def test_routing():
    assert route_by_entry_type({"entry_type": "phase1_image"}) == CollectionName.phase1
    assert route_by_entry_type({"entry_type": "attention_check"}) == CollectionName.attention_checks
    assert route_by_entry_type({"collection": "phase2", "entry_type": "phase1_image"}) == CollectionName.phase2
    assert route_by_entry_type({"collection": "elsewhere"}) is None
    assert route_by_entry_type({}) is None


def test_summary_mentions_warnings_only_when_present():
    assert SubmissionResult(success=True, per_collection_counts={"phase1": 2, "phase2": 3}).summary() == (
        "Data saved successfully. 5 entries processed."
    )


def test_in_memory_store_filters_and_copies():
    store = InMemoryRecordStore()
    store.insert_many("phase1", [{"participant_id": "P1"}, {"participant_id": "P2"}])
    found = store.find("phase1", participant_id="P2")
    assert found == [{"participant_id": "P2"}]
    found[0]["participant_id"] = "changed"
    assert store.find("phase1", participant_id="P2") == [{"participant_id": "P2"}]
    assert store.count("phase1") == 2
    assert store.count("phase2") == 0
    assert store.collections() == ["phase1"]


def test_empty_text_answers_parse_back():
    probe = ProbeRecord(
        participant_id="P1",
        phase=2,
        attention_check_id="ac_fruit",
        attention_response="",
        attention_correct=False,
        response_time=4.0,
        timestamp="t",
    )
    assert record_from_row(decode(encode(probe.to_row()))).attention_response == ""

    questionnaire = QuestionnaireRecord(
        participant_id="P1",
        snack_preference="",
        desire_to_eat=1,
        hunger=2,
        fullness=3,
        satisfaction=4,
        eating_capacity=5,
        timestamp="t",
    )
    assert record_from_row(decode(encode(questionnaire.to_row()))) == questionnaire


def test_phase1_size_column():
    record = StimulusTrialRecord(
        participant_id="P1",
        phase=2,
        image_id=3,
        filename="pie.jpg",
        image_size="medium",
        phase1_size="small",
        image_type="old",
        response_time=1.0,
        timestamp="t",
    )
    row = record.to_row()
    assert row[SESSION_LOG_COLUMNS.index("phase1_size")] == "small"
    assert SESSION_LOG_COLUMNS.index("phase1_size") == SESSION_LOG_COLUMNS.index("image_size") + 1
    assert record_from_row(decode(encode(row))).phase1_size == "small"
