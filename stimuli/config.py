from __future__ import annotations

import os
from pathlib import Path
from typing import Dict, List, Optional, Union

import yaml
from pydantic import BaseModel, Field, ValidationError

from records.errors import ConfigurationError
from stimuli.models import Probe, SizeCategory

STUDY_CONFIG = os.getenv("STUDY_CONFIG") or str(Path(__file__).resolve().parent.parent / "config" / "study.yaml")


class Phase1Config(BaseModel):
    large_count: int = Field(ge=0)
    small_count: int = Field(ge=0)

    @property
    def total(self) -> int:
        return self.large_count + self.small_count


class Phase2Config(BaseModel):
    old_images_count: int = Field(ge=0)
    new_images_count: int = Field(ge=0)

    @property
    def total(self) -> int:
        return self.old_images_count + self.new_images_count


class ProbePositions(BaseModel):
    positions: List[int] = Field(default_factory=list)


class AttentionChecks(BaseModel):
    phase1: ProbePositions = Field(default_factory=ProbePositions)
    phase2: ProbePositions = Field(default_factory=ProbePositions)


class ImagePools(BaseModel):
    old: List[str] = Field(default_factory=list)
    new: List[str] = Field(default_factory=list)


class StudyConfig(BaseModel):
    phase1: Phase1Config
    phase2: Phase2Config
    attention_checks: AttentionChecks = Field(default_factory=AttentionChecks)
    image_pools: ImagePools
    probes: List[Probe] = Field(default_factory=list)
    image_display_duration_ms: int = Field(default=3000, gt=0)
    image_sizes: Dict[SizeCategory, str] = Field(
        default_factory=lambda: {SizeCategory.small: "200px", SizeCategory.medium: "350px", SizeCategory.large: "500px"}
    )

    def check(self) -> "StudyConfig":
        """Cross-field checks that pydantic field validation cannot express."""
        if self.phase2.old_images_count > self.phase1.total:
            raise ConfigurationError(
                f"phase2.old_images_count={self.phase2.old_images_count} exceeds phase 1 total {self.phase1.total}"
            )
        for phase, total, positions in (
            (1, self.phase1.total, self.attention_checks.phase1.positions),
            (2, self.phase2.total, self.attention_checks.phase2.positions),
        ):
            bad = [p for p in positions if p < 1 or p > total]
            if bad:
                raise ConfigurationError(f"Phase {phase} attention check positions {bad} exceed {total} images")
        demand = len(set(self.attention_checks.phase1.positions)) + len(set(self.attention_checks.phase2.positions))
        if len(self.probes) < demand:
            raise ConfigurationError(f"{demand} attention check questions required but {len(self.probes)} configured")
        return self


def load_study_config(path: Optional[Union[str, Path]] = None) -> StudyConfig:
    path = Path(path or STUDY_CONFIG)
    try:
        with path.open("r") as f:
            raw = yaml.safe_load(f)
    except OSError as exc:
        raise ConfigurationError(f"Could not read study configuration {path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Invalid YAML in {path}: {exc}") from exc
    try:
        cfg = StudyConfig.model_validate(raw or {})
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid study configuration {path}: {exc}") from exc
    return cfg.check()
