"""
Tests for the command-line interface.
"""

import sys
import threading

import pytest
import soundfile as sf
from typer.testing import CliRunner

from mathemelody.cli import _stop_on_worker, app
from mathemelody.playback.engine import PlaybackEngine
from mathemelody.playback.scheduler import ThreadedScheduler
from mathemelody.playback.tone import RecordingSink, ToneTrigger

runner = CliRunner()


@pytest.fixture(autouse=True)
def quiet(monkeypatch, tmp_path):
    monkeypatch.setenv("MATHEMELODY_LOG_LEVEL", "WARNING")
    monkeypatch.setenv("MATHEMELODY_SAMPLE_RATE", "8000")
    monkeypatch.delenv("MATHEMELODY_CONFIG", raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.mark.unit
class TestCLI:
    def test_evaluate(self):
        result = runner.invoke(app, ["evaluate", "x^2", "--x", "5"])
        assert result.exit_code == 0
        assert "25" in result.output
        assert "293.66 Hz" in result.output

    def test_evaluate_error(self):
        result = runner.invoke(app, ["evaluate", "x +* 2"])
        assert result.exit_code == 1
        assert "Error" in result.output

    def test_graph(self):
        result = runner.invoke(app, ["graph", "1/(x-5)"])
        assert result.exit_code == 0
        assert "-0.2" in result.output

    def test_render(self, tmp_path):
        output = tmp_path / "out.wav"
        result = runner.invoke(app, ["render", "x", "x^2", "", "y", "--output", str(output)])

        assert result.exit_code == 0, result.output
        assert "Error in step 4" in result.output
        data, sample_rate = sf.read(str(output))
        assert sample_rate == 8000
        # two tones a quarter second apart at 120 BPM
        assert len(data) == int(0.25 * 8000) + int(0.3 * 8000)

    def test_render_without_equations(self, tmp_path):
        result = runner.invoke(app, ["render", "--output", str(tmp_path / "out.wav")])
        assert result.exit_code == 1

    def test_render_bad_wave(self, tmp_path):
        result = runner.invoke(app, ["render", "x", "--wave", "noise", "-o", str(tmp_path / "out.wav")])
        assert result.exit_code == 1
        assert "noise" in result.output

    def test_render_silence(self, tmp_path):
        output = tmp_path / "out.wav"
        result = runner.invoke(app, ["render", "", "--output", str(output)])

        assert result.exit_code == 1
        assert "Nothing recorded" in result.output
        assert not output.exists()

    def test_play_without_audio_output(self, monkeypatch):
        monkeypatch.setitem(sys.modules, "sounddevice", None)

        result = runner.invoke(app, ["play", "x"])

        assert result.exit_code == 1
        assert "Audio output is not available" in result.output


@pytest.mark.unit
def test_stop_runs_on_scheduler_thread():
    stop_threads = []

    with ThreadedScheduler(name="test-scheduler") as scheduler:
        engine = PlaybackEngine(scheduler, ToneTrigger(RecordingSink(), sample_rate=8000), tempo=240)
        original_stop = engine.stop

        def stop():
            stop_threads.append(threading.current_thread().name)
            original_stop()

        engine.stop = stop
        engine.start()
        _stop_on_worker(scheduler, engine)

        assert not engine.is_playing
        assert stop_threads == ["test-scheduler"]
