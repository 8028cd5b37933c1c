"""
Alert sound synthesis and tiered playback.

Two cues:
  - STANDARD: three-note ascending chime (C5, E5, G5), 0.5 s exponential decay
  - URGENT:   two short 800 Hz beeps, 0.2 s apart, 0.1 s each

Playback falls back from the synthesized cue to a pre-encoded beep sample and
finally to silence. A sound failure never reaches the caller.
"""

import io
import wave
from collections.abc import Callable
from functools import lru_cache
from typing import Literal, Protocol

import numpy as np
import structlog

from reminder_alerts.config import SoundConfig
from reminder_alerts.domain.models import SoundTier

logger = structlog.get_logger(__name__)

CHIME_FREQUENCIES_HZ = (523.25, 659.25, 783.99)
CHIME_NOTE_SECONDS = 0.1
CHIME_SECONDS = 0.5

BEEP_FREQUENCY_HZ = 800.0
BEEP_SECONDS = 0.1
BEEP_SPACING_SECONDS = 0.2

# Gain decays from peak to 1/30 of peak over each envelope
DECAY_RATIO = 0.01 / 0.3

FALLBACK_SAMPLE_RATE = 8000
FALLBACK_BEEP_HZ = 880.0
FALLBACK_BEEP_SECONDS = 0.15

PlaybackChannel = Literal["synthesized", "sample", "silent", "disabled"]


class AudioOutput(Protocol):
    """Non-blocking playback of float32 mono samples."""

    def play(self, samples: np.ndarray, sample_rate: int) -> None: ...


class SamplePlayer(Protocol):
    """Non-blocking playback of an encoded WAV file."""

    def play_wav(self, data: bytes) -> None: ...


def _decay_envelope(sample_count: int, peak: float) -> np.ndarray:
    position = np.arange(sample_count) / sample_count
    return peak * np.power(DECAY_RATIO, position)


def synthesize_chime(sample_rate: int, peak: float = 0.3) -> np.ndarray:
    """Ascending three-note chime with a single decay envelope."""
    sample_count = int(sample_rate * CHIME_SECONDS)
    t = np.arange(sample_count) / sample_rate
    note_index = np.minimum((t / CHIME_NOTE_SECONDS).astype(int), len(CHIME_FREQUENCIES_HZ) - 1)
    frequencies = np.asarray(CHIME_FREQUENCIES_HZ)[note_index]
    # Integrate frequency so note changes do not click
    phase = 2 * np.pi * np.cumsum(frequencies) / sample_rate
    return (np.sin(phase) * _decay_envelope(sample_count, peak)).astype(np.float32)


def synthesize_double_beep(sample_rate: int, peak: float = 0.3) -> np.ndarray:
    """Two sharp beeps, the second starting BEEP_SPACING_SECONDS after the first."""
    beep_count = int(sample_rate * BEEP_SECONDS)
    t = np.arange(beep_count) / sample_rate
    beep = np.sin(2 * np.pi * BEEP_FREQUENCY_HZ * t) * _decay_envelope(beep_count, peak)

    offset = int(sample_rate * BEEP_SPACING_SECONDS)
    samples = np.zeros(offset + beep_count, dtype=np.float32)
    samples[:beep_count] = beep
    samples[offset:] = beep
    return samples


def synthesize(tier: SoundTier, sample_rate: int, peak: float = 0.3) -> np.ndarray:
    if tier is SoundTier.URGENT:
        return synthesize_double_beep(sample_rate, peak)
    return synthesize_chime(sample_rate, peak)


def encode_wav(samples: np.ndarray, sample_rate: int) -> bytes:
    """Wrap float samples in [-1, 1] as a 16-bit mono WAV (in memory)."""
    pcm = (np.clip(samples, -1.0, 1.0) * 32767).astype("<i2")
    buf = io.BytesIO()
    with wave.open(buf, "wb") as w:
        w.setnchannels(1)
        w.setsampwidth(2)
        w.setframerate(sample_rate)
        w.writeframes(pcm.tobytes())
    return buf.getvalue()


@lru_cache(maxsize=1)
def fallback_beep_wav() -> bytes:
    """Short plain beep, encoded once per process."""
    sample_count = int(FALLBACK_SAMPLE_RATE * FALLBACK_BEEP_SECONDS)
    t = np.arange(sample_count) / FALLBACK_SAMPLE_RATE
    samples = 0.5 * np.sin(2 * np.pi * FALLBACK_BEEP_HZ * t)
    return encode_wav(samples, FALLBACK_SAMPLE_RATE)


class AlertSoundPlayer:
    """
    Plays alert cues through the best channel available.

    The audio output is created lazily on first use. If it cannot be created the
    next alert tries again, as the host may gain an output device later.
    """

    def __init__(
        self,
        config: SoundConfig,
        output_factory: Callable[[], AudioOutput],
        sample_player: SamplePlayer,
    ) -> None:
        self.config = config
        self._output_factory = output_factory
        self._sample_player = sample_player
        self._output: AudioOutput | None = None
        self.logger = logger.bind(component="alert_sound_player")

    def _ensure_output(self) -> AudioOutput:
        if self._output is None:
            self._output = self._output_factory()
            self.logger.info("audio_output_initialized", output=type(self._output).__name__)
        return self._output

    def play(self, tier: SoundTier) -> PlaybackChannel:
        """Play the cue for ``tier`` and report which channel carried it."""
        if not self.config.enabled:
            return "disabled"

        try:
            output = self._ensure_output()
            samples = synthesize(tier, self.config.sample_rate, self.config.volume)
            output.play(samples, self.config.sample_rate)
            return "synthesized"
        except Exception as e:
            self.logger.warning("tone_playback_failed", tier=tier.value, error=str(e))

        try:
            self._sample_player.play_wav(fallback_beep_wav())
            return "sample"
        except Exception as e:
            self.logger.warning("fallback_sound_failed", tier=tier.value, error=str(e))

        self.logger.warning("alert_sound_unavailable", tier=tier.value)
        return "silent"
