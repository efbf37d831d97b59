"""
Tests for mathemelody.playback.engine
"""

import pytest

from mathemelody.core.exceptions import GridSizeError, ValidationError
from mathemelody.playback.engine import (
    ACTIVE_MARKER_SECONDS,
    ERROR_DISPLAY_SECONDS,
    StepStatus,
    TransportState,
    step_interval_ms,
)
from mathemelody.playback.notes import SCALE_FREQUENCIES
from mathemelody.playback.tone import WaveType

TICK = 0.25  # eighth note at 120 BPM


def fill(engine, *expressions):
    for index, text in enumerate(expressions):
        engine.set_expression(index, text)


@pytest.mark.unit
class TestTransport:
    """Start, stop and tempo."""

    def test_initial_state(self, engine):
        assert engine.state is TransportState.STOPPED
        assert not engine.is_playing
        assert engine.current_step == 0
        assert engine.tempo == 120
        assert engine.wave_type is WaveType.SINE

    @pytest.mark.parametrize("tempo, expected", [(120, 250.0), (60, 500.0), (90, 1000 / 3), (240, 125.0)])
    def test_eighth_note_interval(self, tempo, expected):
        assert step_interval_ms(tempo) == pytest.approx(expected)

    def test_start_schedules_one_periodic_task(self, engine, scheduler):
        engine.start()
        assert engine.state is TransportState.RUNNING
        assert scheduler.pending == 1

    def test_start_is_idempotent(self, engine, scheduler, sink):
        fill(engine, "x", "x", "x", "x")
        engine.start()
        engine.start()

        assert scheduler.pending == 1
        scheduler.advance_time(TICK)
        assert len(sink) == 1

    def test_stop_is_idempotent(self, engine, scheduler):
        engine.stop()
        assert engine.state is TransportState.STOPPED

        engine.start()
        engine.stop()
        engine.stop()
        assert engine.state is TransportState.STOPPED

    def test_stop_resets_cursor_and_markers(self, engine, scheduler):
        fill(engine, "x", "x", "x", "x")
        engine.start()
        scheduler.advance_time(TICK * 2 + 0.05)

        assert engine.current_step == 2
        assert engine.grid[1].active

        engine.stop()

        assert engine.current_step == 0
        assert not any(slot.active for slot in engine.grid)

    def test_no_ticks_after_stop(self, engine, scheduler, sink):
        fill(engine, "x", "x", "x", "x")
        engine.start()
        scheduler.advance_time(TICK)
        engine.stop()
        scheduler.advance_time(TICK * 10)

        assert len(sink) == 1

    def test_tempo_change_restarts_timer(self, engine, scheduler, sink):
        fill(engine, "x", "x", "x", "x")
        engine.start()
        engine.set_tempo(60)

        assert engine.is_playing
        assert engine.interval_ms == pytest.approx(500.0)

        scheduler.advance_time(TICK)
        assert len(sink) == 0
        scheduler.advance_time(TICK)
        assert len(sink) == 1

    def test_tempo_change_while_stopped(self, engine):
        engine.set_tempo(90)
        assert engine.tempo == 90
        assert not engine.is_playing

    @pytest.mark.parametrize("tempo", [0, -10, 1.5, "fast", True])
    def test_invalid_tempo(self, engine, tempo):
        with pytest.raises(ValidationError):
            engine.set_tempo(tempo)
        assert engine.tempo == 120

    def test_wave_type(self, engine, scheduler, sink):
        fill(engine, "x")
        engine.set_wave_type("square")
        engine.start()
        scheduler.advance_time(TICK)

        assert sink.tones[0].wave_type is WaveType.SQUARE

    def test_invalid_wave_type(self, engine):
        with pytest.raises(ValidationError):
            engine.set_wave_type("noise")
        assert engine.wave_type is WaveType.SINE

    def test_toggle(self, engine):
        engine.toggle()
        assert engine.is_playing
        engine.toggle()
        assert not engine.is_playing


@pytest.mark.unit
class TestAdvance:
    """Individual ticks."""

    def test_cursor_wraps_after_grid_length(self, engine):
        fill(engine, "x", "", "bad +", "x^2")
        start = engine.current_step

        for _ in range(len(engine.grid)):
            engine.advance()

        assert engine.current_step == start

    def test_x_at_step_three(self, engine):
        fill(engine, "", "", "", "x")
        outcomes = [engine.advance() for _ in range(4)]

        outcome = outcomes[3]
        assert outcome.status is StepStatus.PLAYED
        assert outcome.result.magnitude == 3
        assert outcome.note_index == 3
        assert outcome.frequency == SCALE_FREQUENCIES[3]

    def test_x_squared_at_step_five(self, scheduler, sink):
        from mathemelody.playback.engine import PlaybackEngine
        from mathemelody.playback.tone import ToneTrigger

        engine = PlaybackEngine(scheduler, ToneTrigger(sink, sample_rate=8000), grid_size=8)
        engine.set_expression(5, "x^2")
        outcomes = [engine.advance() for _ in range(6)]

        assert outcomes[5].result.magnitude == 25
        assert outcomes[5].note_index == 1
        assert sink.frequencies == [SCALE_FREQUENCIES[1]]

    def test_imaginary_unit(self, engine):
        fill(engine, "i")
        outcome = engine.advance()
        assert outcome.result.magnitude == pytest.approx(1.0)
        assert outcome.note_index == 1

    def test_blank_slot_is_skipped(self, engine, sink):
        fill(engine, "  ")
        outcome = engine.advance()

        assert outcome.status is StepStatus.SKIPPED
        assert not outcome.tone_fired
        assert len(sink) == 0
        assert engine.current_step == 1

    def test_syntax_error_reports_step_and_moves_on(self, engine, scheduler, sink):
        fill(engine, "x", "x", "", "(x +")
        errors_seen = []
        engine.on_error(errors_seen.append)

        engine.start()
        scheduler.advance_time(TICK * 4)

        assert len(errors_seen) == 1
        assert errors_seen[0].startswith("Error in step 4: ")
        assert engine.last_error == errors_seen[0]
        assert engine.error_message == errors_seen[0]
        assert len(sink) == 2
        assert engine.current_step == 0

        scheduler.advance_time(TICK)
        assert engine.current_step == 1

    def test_error_message_is_transient(self, engine, scheduler):
        fill(engine, "1/x")
        outcome = engine.advance()

        assert outcome.status is StepStatus.ERROR
        assert outcome.error.startswith("Error in step 1: ")
        assert engine.error_message == outcome.error

        scheduler.advance_time(ERROR_DISPLAY_SECONDS)
        assert engine.error_message is None
        assert engine.last_error == outcome.error

    def test_newer_error_replaces_older(self, engine, scheduler):
        fill(engine, "y", "z")
        engine.advance()
        scheduler.advance_time(ERROR_DISPLAY_SECONDS - 1)
        engine.advance()
        scheduler.advance_time(2)

        assert engine.error_message.startswith("Error in step 2: ")

    def test_active_marker_clears(self, engine, scheduler):
        fill(engine, "x")
        engine.advance()
        assert engine.grid[0].active

        scheduler.advance_time(ACTIVE_MARKER_SECONDS)
        assert not engine.grid[0].active

    def test_step_listener(self, engine):
        seen = []
        engine.on_step(seen.append)
        fill(engine, "x")
        engine.advance()
        engine.advance()

        assert [outcome.status for outcome in seen] == [StepStatus.PLAYED, StepStatus.SKIPPED]

    def test_playback_uses_magnitude_graph_keeps_sign(self, engine):
        fill(engine, "", "x - 5")
        engine.advance()
        outcome = engine.advance()

        assert outcome.result.magnitude == 4
        assert outcome.note_index == 4
        assert engine.graph[1] == -4
        assert engine.graph[0] == -5


@pytest.mark.unit
class TestGridOperations:
    """Resizing and editing through the engine."""

    def test_resize_while_running_stops(self, engine, scheduler, sink):
        fill(engine, "x", "x", "x", "x")
        engine.start()
        scheduler.advance_time(TICK * 2)

        engine.resize(8)

        assert engine.state is TransportState.STOPPED
        assert engine.current_step == 0
        assert len(engine.grid) == 8
        scheduler.advance_time(TICK * 8)
        assert len(sink) == 2

    def test_invalid_resize_leaves_everything_alone(self, engine, scheduler):
        fill(engine, "x", "x^2")
        engine.start()

        with pytest.raises(GridSizeError):
            engine.resize(33)

        assert engine.is_playing
        assert len(engine.grid) == 4
        assert engine.grid.expressions[:2] == ["x", "x^2"]

    def test_set_expression_recomputes_graph(self, engine):
        graphs = []
        engine.on_graph(graphs.append)
        engine.advance()

        engine.set_expression(2, "1/(x-5)")

        assert engine.current_step == 1
        assert len(graphs) == 1
        assert engine.graph[5] is None
        assert engine.graph[6] == pytest.approx(1.0)

    def test_set_expression_out_of_range(self, engine):
        with pytest.raises(IndexError):
            engine.set_expression(4, "x")

    def test_load_stops_and_graphs_first_equation(self, engine, scheduler):
        engine.start()
        engine.load(["", "x^2", "x"])

        assert not engine.is_playing
        assert engine.grid.expressions == ["", "x^2", "x"]
        assert engine.graph[3] == 9
