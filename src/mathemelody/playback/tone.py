"""
Tone rendering and output.

Each step plays one short tone: a plain oscillator at the note frequency
under a fixed linear envelope (0 to 1 over 10 ms, back to 0 at 300 ms).
Rendering is done with NumPy/SciPy; where the samples go is up to a
``ToneSink``.
"""

import threading
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable, List, Optional, Union

import numpy as np
import soundfile as sf
from scipy import signal

from ..core.exceptions import PlaybackError
from ..infrastructure.monitoring.logging import get_logger
from ..infrastructure.monitoring.metrics import metrics

logger = get_logger(__name__)

TONE_DURATION = 0.3
ATTACK_TIME = 0.01
DEFAULT_SAMPLE_RATE = 44100


class WaveType(str, Enum):
    """Oscillator shapes."""

    SINE = "sine"
    SQUARE = "square"
    SAWTOOTH = "sawtooth"
    TRIANGLE = "triangle"

    @classmethod
    def parse(cls, value: Union[str, "WaveType"]) -> "WaveType":
        """Look up a wave type by name, case-insensitively."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            valid = ", ".join(w.value for w in cls)
            raise ValueError(f"Unknown wave type {value!r}; expected one of {valid}") from None


def envelope(num_samples: int, sample_rate: int) -> np.ndarray:
    """Linear attack to 1.0 at 10 ms, then linear release to 0.0 at 300 ms."""
    t = np.arange(num_samples) / sample_rate
    return np.interp(t, [0.0, ATTACK_TIME, TONE_DURATION], [0.0, 1.0, 0.0]).astype(np.float32)


def oscillator(frequency: float, wave_type: WaveType, num_samples: int, sample_rate: int) -> np.ndarray:
    phase = 2 * np.pi * frequency * np.arange(num_samples) / sample_rate

    if wave_type is WaveType.SINE:
        wave = np.sin(phase)
    elif wave_type is WaveType.SQUARE:
        wave = signal.square(phase)
    elif wave_type is WaveType.SAWTOOTH:
        wave = signal.sawtooth(phase)
    else:
        wave = signal.sawtooth(phase, width=0.5)

    return wave.astype(np.float32)


def render_tone(
    frequency: float,
    wave_type: Union[str, WaveType] = WaveType.SINE,
    sample_rate: int = DEFAULT_SAMPLE_RATE,
) -> np.ndarray:
    """
    Render one 300 ms enveloped tone.

    Args:
        frequency: Oscillator frequency in Hz
        wave_type: Oscillator shape
        sample_rate: Output sample rate

    Returns:
        Mono float32 samples in [-1, 1]
    """
    if frequency <= 0:
        raise ValueError(f"frequency must be positive, got {frequency}")
    if sample_rate <= 0:
        raise ValueError(f"sample_rate must be positive, got {sample_rate}")

    num_samples = int(round(TONE_DURATION * sample_rate))
    wave = oscillator(frequency, WaveType.parse(wave_type), num_samples, sample_rate)
    return wave * envelope(num_samples, sample_rate)


@dataclass
class Tone:
    """A rendered tone and when it was triggered."""

    frequency: float
    wave_type: WaveType
    samples: np.ndarray
    sample_rate: int
    timestamp: float

    @property
    def duration(self) -> float:
        return len(self.samples) / self.sample_rate


class ToneSink(ABC):
    """Destination for rendered tones."""

    @abstractmethod
    def play(self, tone: Tone) -> None:
        """Start playing ``tone``. Must not block for its duration."""

    def close(self) -> None:
        pass


class NullSink(ToneSink):
    """Discards every tone."""

    def play(self, tone: Tone) -> None:
        pass


class RecordingSink(ToneSink):
    """Keeps every tone so it can be inspected or mixed down to a file."""

    def __init__(self):
        self.tones: List[Tone] = []

    def __len__(self) -> int:
        return len(self.tones)

    def play(self, tone: Tone) -> None:
        self.tones.append(tone)

    @property
    def frequencies(self) -> List[float]:
        return [tone.frequency for tone in self.tones]

    def mixdown(self, origin: Optional[float] = None, tail: float = 0.0) -> np.ndarray:
        """
        Overlay all recorded tones on one timeline.

        Args:
            origin: Time that maps to the first sample. Defaults to the first
                tone's timestamp.
            tail: Extra silence appended after the last tone, in seconds

        Returns:
            Mono float32 mix, clipped to [-1, 1]
        """
        if not self.tones:
            return np.zeros(0, dtype=np.float32)

        sample_rate = self.tones[0].sample_rate
        if any(tone.sample_rate != sample_rate for tone in self.tones):
            raise ValueError("Cannot mix tones recorded at different sample rates")

        if origin is None:
            origin = min(tone.timestamp for tone in self.tones)

        starts = [max(int(round((tone.timestamp - origin) * sample_rate)), 0) for tone in self.tones]
        length = max(start + len(tone.samples) for start, tone in zip(starts, self.tones))
        mix = np.zeros(length + int(round(tail * sample_rate)), dtype=np.float32)

        for start, tone in zip(starts, self.tones):
            mix[start : start + len(tone.samples)] += tone.samples

        return np.clip(mix, -1.0, 1.0)

    def write_wav(self, path: Union[str, Path], origin: Optional[float] = None) -> Path:
        """Write the mixdown as 16-bit PCM WAV."""
        if not self.tones:
            raise PlaybackError("Nothing recorded")

        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        sf.write(str(path), self.mixdown(origin), self.tones[0].sample_rate, subtype="PCM_16")
        logger.info("Wrote recording", path=str(path), tones=len(self.tones))
        return path


class SoundDeviceSink(ToneSink):
    """Live output through a sounddevice stream.

    Voices are mixed in the stream callback. Overlapping tones add up;
    nothing is queued or cut short.
    """

    def __init__(self, sample_rate: int = DEFAULT_SAMPLE_RATE, device=None, blocksize: int = 512):
        self.sample_rate = sample_rate
        self.device = device
        self.blocksize = blocksize
        self._voices: List[List] = []
        self._lock = threading.Lock()
        self._stream = None

    def open(self) -> "SoundDeviceSink":
        if self._stream is not None:
            return self

        try:
            import sounddevice as sd
        except (ImportError, OSError) as e:
            # OSError when the PortAudio library itself is missing
            raise PlaybackError("Audio output is not available", details={"reason": str(e)}) from e

        try:
            stream = sd.OutputStream(
                samplerate=self.sample_rate,
                channels=1,
                dtype="float32",
                blocksize=self.blocksize,
                device=self.device,
                callback=self._callback,
            )
            stream.start()
        except sd.PortAudioError as e:
            raise PlaybackError(
                "Could not open audio output", details={"reason": str(e), "device": self.device}
            ) from e
        self._stream = stream
        logger.info("Opened audio output", sample_rate=self.sample_rate, device=self.device)
        return self

    def play(self, tone: Tone) -> None:
        if tone.sample_rate != self.sample_rate:
            raise ValueError(
                f"Tone sample rate {tone.sample_rate} does not match output rate {self.sample_rate}"
            )
        if self._stream is None:
            self.open()
        with self._lock:
            self._voices.append([tone.samples, 0])

    def _callback(self, outdata, frames, time_info, status) -> None:
        if status:
            logger.debug("Audio stream status", status=str(status))

        block = np.zeros(frames, dtype=np.float32)
        with self._lock:
            for voice in self._voices:
                samples, position = voice
                chunk = samples[position : position + frames]
                block[: len(chunk)] += chunk
                voice[1] = position + frames
            self._voices = [v for v in self._voices if v[1] < len(v[0])]

        outdata[:, 0] = np.clip(block, -1.0, 1.0)

    def close(self) -> None:
        if self._stream is None:
            return
        self._stream.stop()
        self._stream.close()
        self._stream = None
        with self._lock:
            self._voices.clear()

    def __enter__(self) -> "SoundDeviceSink":
        return self.open()

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


class ToneTrigger:
    """Renders tones and hands them to a sink."""

    def __init__(
        self,
        sink: Optional[ToneSink] = None,
        sample_rate: int = DEFAULT_SAMPLE_RATE,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.sink = sink or NullSink()
        self.sample_rate = sample_rate
        self.clock = clock

    def trigger(self, frequency: float, wave_type: Union[str, WaveType] = WaveType.SINE) -> Tone:
        wave = WaveType.parse(wave_type)
        tone = Tone(
            frequency=frequency,
            wave_type=wave,
            samples=render_tone(frequency, wave, self.sample_rate),
            sample_rate=self.sample_rate,
            timestamp=self.clock(),
        )
        self.sink.play(tone)
        metrics.record_tone(wave.value)
        return tone
