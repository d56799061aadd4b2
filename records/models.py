from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Literal, Mapping, Optional, Sequence, Union

from pydantic import BaseModel, Field

from records.errors import RowWarning
from records.schemas import SESSION_LOG_COLUMNS


def now_utc_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class EntryType(str, Enum):
    phase1_image = "phase1_image"
    phase2_response = "phase2_response"
    attention_check = "attention_check"
    final_questionnaire = "final_questionnaire"


class CollectionName(str, Enum):
    phase1 = "phase1"
    phase2 = "phase2"
    final_questionnaire = "final_questionnaire"
    attention_checks = "attention_checks"


ENTRY_ROUTES: Dict[str, CollectionName] = {
    EntryType.phase1_image.value: CollectionName.phase1,
    EntryType.phase2_response.value: CollectionName.phase2,
    EntryType.attention_check.value: CollectionName.attention_checks,
    EntryType.final_questionnaire.value: CollectionName.final_questionnaire,
}


def route_by_entry_type(row: Mapping[str, Any]) -> Optional[CollectionName]:
    """Default routing key: the entry type column, or an explicit collection tag."""
    tag = row.get("collection")
    if tag:
        try:
            return CollectionName(tag)
        except ValueError:
            return None
    return ENTRY_ROUTES.get(str(row.get("entry_type") or ""))


class _SessionRow(BaseModel):
    participant_id: str
    session_id: str = ""
    timestamp: str = Field(default_factory=now_utc_iso)

    model_config = {"frozen": True}

    @property
    def entry_type(self) -> EntryType:
        raise NotImplementedError

    def _columns(self) -> Dict[str, Any]:
        return {
            "participant_id": self.participant_id,
            "entry_type": self.entry_type.value,
            "session_id": self.session_id,
            "timestamp": self.timestamp,
        }

    def to_row(self) -> List[Any]:
        """Render into the fixed session log layout; unused columns stay empty."""
        values = self._columns()
        return [values.get(column, "") for column in SESSION_LOG_COLUMNS]


def _seconds(value: float) -> str:
    return f"{value:.3f}"


class StimulusTrialRecord(_SessionRow):
    kind: Literal["stimulus"] = "stimulus"
    phase: int = Field(ge=1, le=2)
    image_id: int
    filename: str
    image_size: str
    response_time: float
    phase1_size: Optional[str] = None
    image_type: Optional[str] = None
    memory_response: Optional[str] = None
    payment_response: Optional[float] = None
    confidence: Optional[float] = None

    @property
    def entry_type(self) -> EntryType:
        return EntryType.phase1_image if self.phase == 1 else EntryType.phase2_response

    def _columns(self) -> Dict[str, Any]:
        values = super()._columns()
        values.update(
            phase=self.phase,
            image_id=self.image_id,
            filename=self.filename,
            image_size=self.image_size,
            phase1_size=self.phase1_size,
            image_type=self.image_type,
            memory_response=self.memory_response,
            payment_response=self.payment_response,
            confidence=self.confidence,
            response_time=_seconds(self.response_time),
        )
        return values


class ProbeRecord(_SessionRow):
    kind: Literal["probe"] = "probe"
    phase: int = Field(ge=1, le=2)
    attention_check_id: str
    attention_response: str
    attention_correct: bool
    response_time: float

    @property
    def entry_type(self) -> EntryType:
        return EntryType.attention_check

    def _columns(self) -> Dict[str, Any]:
        values = super()._columns()
        values.update(
            phase=self.phase,
            attention_check_id=self.attention_check_id,
            attention_response=self.attention_response,
            attention_correct=self.attention_correct,
            response_time=_seconds(self.response_time),
        )
        return values


class QuestionnaireRecord(_SessionRow):
    kind: Literal["questionnaire"] = "questionnaire"
    snack_preference: str
    desire_to_eat: int = Field(ge=0, le=100)
    hunger: int = Field(ge=0, le=100)
    fullness: int = Field(ge=0, le=100)
    satisfaction: int = Field(ge=0, le=100)
    eating_capacity: int = Field(ge=0, le=100)

    @property
    def entry_type(self) -> EntryType:
        return EntryType.final_questionnaire

    def _columns(self) -> Dict[str, Any]:
        values = super()._columns()
        values.update(
            snack_preference=self.snack_preference,
            desire_to_eat=self.desire_to_eat,
            hunger=self.hunger,
            fullness=self.fullness,
            satisfaction=self.satisfaction,
            eating_capacity=self.eating_capacity,
        )
        return values


SessionRecord = Union[StimulusTrialRecord, ProbeRecord, QuestionnaireRecord]

_VARIANTS = {
    EntryType.phase1_image.value: StimulusTrialRecord,
    EntryType.phase2_response.value: StimulusTrialRecord,
    EntryType.attention_check.value: ProbeRecord,
    EntryType.final_questionnaire.value: QuestionnaireRecord,
}


def record_from_row(values: Sequence[str]) -> SessionRecord:
    """Parse a decoded session log row back into its typed variant.

    Empty columns become ``None`` for optional and numeric fields; plain text
    fields keep the empty string, since an empty answer is still an answer.
    """
    row = dict(zip(SESSION_LOG_COLUMNS, values))
    entry_type = row.get("entry_type", "")
    variant = _VARIANTS.get(entry_type)
    if variant is None:
        raise ValueError(f"Unknown entry type '{entry_type}'")
    fields = variant.model_fields
    mapped = {k: v for k, v in row.items() if k in fields and (v != "" or fields[k].annotation is str)}
    return variant.model_validate(mapped)


class SaveFormat(str, Enum):
    csv = "csv"
    json = "json"


class SaveRequest(BaseModel):
    data: Union[str, List[Any], None] = None
    collection: CollectionName
    format: SaveFormat = SaveFormat.csv


class SubmissionResult(BaseModel):
    success: bool
    per_collection_counts: Dict[str, int] = Field(default_factory=dict)
    errors: List[str] = Field(default_factory=list)
    warnings: List[RowWarning] = Field(default_factory=list)
    failed_collections: List[str] = Field(default_factory=list)

    @property
    def processed(self) -> int:
        return sum(self.per_collection_counts.values())

    def summary(self) -> str:
        message = f"Data saved successfully. {self.processed} entries processed."
        if self.warnings:
            message += f" {len(self.warnings)} warnings logged."
        return message
