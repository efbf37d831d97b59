"""
Playback engine.

A step sequencer over an :class:`EquationGrid`. While running, a periodic
scheduler task calls :meth:`PlaybackEngine.advance` once per eighth note.
Each tick evaluates the equation under the cursor with ``x`` bound to the
step index, plays the matching scale note, and moves the cursor on.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterable, List, Optional, Union

from ..core.exceptions import ExpressionError, ValidationError
from ..infrastructure.monitoring.logging import LoggerMixin
from ..infrastructure.monitoring.metrics import metrics
from .evaluator import GRAPH_POINTS, EvaluationResult, evaluate, graph
from .grid import DEFAULT_GRID_SIZE, EquationGrid, validate_grid_size
from .notes import frequency_for, note_index
from .scheduler import Handle, Scheduler
from .tone import ToneTrigger, WaveType

DEFAULT_TEMPO = 120
ACTIVE_MARKER_SECONDS = 0.1
ERROR_DISPLAY_SECONDS = 5.0

GraphSamples = List[Optional[float]]


class TransportState(str, Enum):
    STOPPED = "stopped"
    RUNNING = "running"


class StepStatus(str, Enum):
    PLAYED = "played"
    SKIPPED = "skipped"
    ERROR = "error"


@dataclass(frozen=True)
class StepOutcome:
    """What happened on one tick."""

    step: int
    expression: str
    status: StepStatus
    result: Optional[EvaluationResult] = None
    error: Optional[str] = None
    note_index: Optional[int] = None
    frequency: Optional[float] = None

    @property
    def tone_fired(self) -> bool:
        return self.status is StepStatus.PLAYED


def step_interval_ms(tempo: float) -> float:
    """Milliseconds between ticks: an eighth note at ``tempo`` BPM."""
    return (60 / tempo) * 1000 / 2


def validate_tempo(bpm) -> int:
    if isinstance(bpm, bool) or not isinstance(bpm, (int, float)) or bpm != int(bpm) or bpm <= 0:
        raise ValidationError(
            "Tempo must be a positive whole number of beats per minute",
            details={"tempo": bpm},
        )
    return int(bpm)


class ErrorReporter:
    """Holds the latest error message for a fixed stretch of scheduler time."""

    def __init__(self, scheduler: Scheduler, display_seconds: float = ERROR_DISPLAY_SECONDS):
        self.scheduler = scheduler
        self.display_seconds = display_seconds
        self.message: Optional[str] = None
        self._handle: Optional[Handle] = None

    def report(self, message: str) -> None:
        self.clear()
        self.message = message
        self._handle = self.scheduler.call_later(self.display_seconds, self._expire)

    def _expire(self) -> None:
        self.message = None
        self._handle = None

    def clear(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
        self._expire()


class PlaybackEngine(LoggerMixin):
    """
    Transport, grid and playback state for one sequencer.

    All timing goes through the injected scheduler, so the engine runs the
    same way against a live clock and against :class:`ManualScheduler`.
    """

    def __init__(
        self,
        scheduler: Scheduler,
        tone_trigger: Optional[ToneTrigger] = None,
        grid_size: int = DEFAULT_GRID_SIZE,
        tempo: int = DEFAULT_TEMPO,
        wave_type: Union[str, WaveType] = WaveType.SINE,
        error_display_seconds: float = ERROR_DISPLAY_SECONDS,
    ):
        self.scheduler = scheduler
        self.tone_trigger = tone_trigger or ToneTrigger(clock=scheduler.now)
        self.grid = EquationGrid(grid_size)
        self.errors = ErrorReporter(scheduler, error_display_seconds)

        self._tempo = validate_tempo(tempo)
        self._wave_type = WaveType.parse(wave_type)
        self._state = TransportState.STOPPED
        self._timer: Optional[Handle] = None
        self.current_step = 0

        self.graph: GraphSamples = [None] * GRAPH_POINTS
        self.last_error: Optional[str] = None

        self._graph_listeners: List[Callable[[GraphSamples], None]] = []
        self._error_listeners: List[Callable[[str], None]] = []
        self._step_listeners: List[Callable[[StepOutcome], None]] = []

    # Observers

    def on_graph(self, callback: Callable[[GraphSamples], None]):
        self._graph_listeners.append(callback)
        return callback

    def on_error(self, callback: Callable[[str], None]):
        self._error_listeners.append(callback)
        return callback

    def on_step(self, callback: Callable[[StepOutcome], None]):
        self._step_listeners.append(callback)
        return callback

    # State

    @property
    def state(self) -> TransportState:
        return self._state

    @property
    def is_playing(self) -> bool:
        return self._state is TransportState.RUNNING

    @property
    def tempo(self) -> int:
        return self._tempo

    @property
    def wave_type(self) -> WaveType:
        return self._wave_type

    @property
    def interval_ms(self) -> float:
        return step_interval_ms(self._tempo)

    @property
    def error_message(self) -> Optional[str]:
        """Error currently on display, if any."""
        return self.errors.message

    # Transport

    def start(self) -> None:
        if self.is_playing:
            return

        interval = self.interval_ms / 1000
        self._timer = self.scheduler.call_every(interval, self._tick)
        self._state = TransportState.RUNNING
        self.logger.info("Playback started", tempo=self._tempo, interval_ms=self.interval_ms)

    def stop(self) -> None:
        if not self.is_playing:
            return

        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        self._state = TransportState.STOPPED
        self.current_step = 0
        self.grid.clear_active()
        self.logger.info("Playback stopped")

    def toggle(self) -> None:
        if self.is_playing:
            self.stop()
        else:
            self.start()

    def set_tempo(self, bpm: int) -> None:
        """Change the tempo. A running transport restarts with the new interval."""
        self._tempo = validate_tempo(bpm)
        if self.is_playing:
            self.stop()
            self.start()

    def set_wave_type(self, wave_type: Union[str, WaveType]) -> None:
        try:
            self._wave_type = WaveType.parse(wave_type)
        except ValueError as e:
            raise ValidationError(str(e), details={"wave_type": wave_type}) from e

    # Grid

    def resize(self, new_size: int) -> None:
        """Stop playback and replace the grid with ``new_size`` empty slots."""
        size = validate_grid_size(new_size)
        self.stop()
        self.grid.resize(size)
        self.logger.info("Grid resized", size=size)

    def load(self, expressions: Iterable[str]) -> None:
        """Stop playback and replace the grid with ``expressions``."""
        texts = list(expressions)
        validate_grid_size(len(texts))
        self.stop()
        self.grid.load(texts)
        self.logger.info("Grid loaded", size=len(self.grid))

        first = next((text for text in self.grid.expressions if text.strip()), "")
        self._update_graph(first)

    def set_expression(self, index: int, text: str) -> None:
        self.grid.set_expression(index, text)
        self._update_graph(text)

    def _update_graph(self, expression: str) -> None:
        self.graph = graph(expression)
        for callback in self._graph_listeners:
            callback(self.graph)

    # Sequencing

    def _tick(self) -> None:
        self.advance()

    def advance(self) -> StepOutcome:
        """Play the slot under the cursor and move the cursor on by one."""
        step = self.current_step
        slot = self.grid[step]
        expression = slot.expression

        self.grid.mark_active(step)
        grid = self.grid
        self.scheduler.call_later(ACTIVE_MARKER_SECONDS, lambda: grid.clear_active(step))

        if slot.is_blank:
            outcome = StepOutcome(step=step, expression=expression, status=StepStatus.SKIPPED)
        else:
            outcome = self._play(step, expression)

        self.current_step = (step + 1) % len(self.grid)

        metrics.record_step(outcome.status.value)
        self.logger.debug("Step", step=step, status=outcome.status.value, frequency=outcome.frequency)
        for callback in self._step_listeners:
            callback(outcome)
        return outcome

    def _play(self, step: int, expression: str) -> StepOutcome:
        try:
            result = evaluate(expression, step)
        except ExpressionError as e:
            message = f"Error in step {step + 1}: {e.message}"
            self._report_error(message)
            return StepOutcome(
                step=step, expression=expression, status=StepStatus.ERROR, error=message
            )

        index = note_index(result.magnitude)
        frequency = frequency_for(result.magnitude)
        self.tone_trigger.trigger(frequency, self._wave_type)
        self._update_graph(expression)

        return StepOutcome(
            step=step,
            expression=expression,
            status=StepStatus.PLAYED,
            result=result,
            note_index=index,
            frequency=frequency,
        )

    def _report_error(self, message: str) -> None:
        self.last_error = message
        self.errors.report(message)
        self.logger.debug("Step failed", error=message)
        for callback in self._error_listeners:
            callback(message)
