"""Headless step sequencer that plays equation grids."""

from .engine import PlaybackEngine, StepOutcome, StepStatus, TransportState
from .evaluator import EvaluationResult, evaluate, graph
from .grid import EquationGrid, EquationSlot
from .notes import SCALE_FREQUENCIES, frequency_for, note_index
from .scheduler import AsyncioScheduler, ManualScheduler, Scheduler, ThreadedScheduler
from .tone import NullSink, RecordingSink, SoundDeviceSink, ToneTrigger, WaveType, render_tone

__all__ = [
    "PlaybackEngine",
    "StepOutcome",
    "StepStatus",
    "TransportState",
    "EvaluationResult",
    "evaluate",
    "graph",
    "EquationGrid",
    "EquationSlot",
    "SCALE_FREQUENCIES",
    "frequency_for",
    "note_index",
    "AsyncioScheduler",
    "ManualScheduler",
    "Scheduler",
    "ThreadedScheduler",
    "NullSink",
    "RecordingSink",
    "SoundDeviceSink",
    "ToneTrigger",
    "WaveType",
    "render_tone",
]
