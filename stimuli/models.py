from __future__ import annotations

from enum import Enum
from typing import List, Literal, Optional, Union

from pydantic import BaseModel, Field


class SizeCategory(str, Enum):
    small = "small"
    medium = "medium"
    large = "large"


class StimulusItem(BaseModel):
    id: int
    filename: str
    size_category: SizeCategory
    phase: Literal[1, 2]
    is_repeat_of_phase1: bool = False
    # size shown in phase 1; None for images first seen in phase 2
    phase1_size: Optional[SizeCategory] = None

    model_config = {"frozen": True}


class StimulusStep(BaseModel):
    kind: Literal["stimulus"] = "stimulus"
    item: StimulusItem

    model_config = {"frozen": True}


class ProbeStep(BaseModel):
    kind: Literal["probe"] = "probe"
    probe_index: int = Field(ge=0)

    model_config = {"frozen": True}


TimelineStep = Union[StimulusStep, ProbeStep]


class Probe(BaseModel):
    """Attention-check question shown between image trials."""

    id: str
    prompt: str
    instruction: str = ""
    options: List[str]
    correct_answer: str

    model_config = {"frozen": True}

    def is_correct(self, response: str) -> bool:
        return response == self.correct_answer
