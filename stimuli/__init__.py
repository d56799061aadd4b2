"""Stimulus assignment and per-phase timelines."""

from stimuli.assignment import StimulusAssigner, StimulusAssignment
from stimuli.config import StudyConfig, load_study_config
from stimuli.models import Probe, ProbeStep, SizeCategory, StimulusItem, StimulusStep, TimelineStep
from stimuli.shuffle import shuffle
from stimuli.timeline import TimelineCursor, build_timeline, probe_count

__all__ = [
    "StimulusAssigner",
    "StimulusAssignment",
    "StudyConfig",
    "load_study_config",
    "Probe",
    "ProbeStep",
    "SizeCategory",
    "StimulusItem",
    "StimulusStep",
    "TimelineStep",
    "shuffle",
    "TimelineCursor",
    "build_timeline",
    "probe_count",
]
