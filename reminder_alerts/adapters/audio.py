"""
Host audio playback.

  - SounddeviceOutput: PortAudio stream via sounddevice (primary)
  - SubprocessSamplePlayer: platform player child process for WAV samples
    (aplay on Linux, afplay on macOS, PowerShell on Windows)

Neither waits for playback to finish.
"""

import hashlib
import platform
import subprocess
import tempfile
from pathlib import Path

import numpy as np


class SounddeviceOutput:
    """
    Plays synthesized tones through the default output device.

    Construction fails when PortAudio or an output device is missing; callers
    treat that as "no audio context" and fall back to sample playback.
    """

    def __init__(self) -> None:
        import sounddevice as sd

        sd.query_devices(kind="output")
        self._sd = sd

    def play(self, samples: np.ndarray, sample_rate: int) -> None:
        self._sd.play(samples, samplerate=sample_rate)


class SubprocessSamplePlayer:
    """Hands a WAV file to the platform's command-line audio player."""

    def __init__(self, cache_dir: Path | None = None) -> None:
        self.cache_dir = cache_dir or Path(tempfile.gettempdir())
        self.system = platform.system()
        self._children: list[subprocess.Popen[bytes]] = []

    def _command(self, path: Path) -> list[str]:
        if self.system == "Linux":
            return ["aplay", "-q", str(path)]
        if self.system == "Darwin":
            return ["afplay", str(path)]
        if self.system == "Windows":
            return ["powershell", "-c", f"(New-Object Media.SoundPlayer '{path}').PlaySync()"]
        raise RuntimeError(f"No audio player known for platform {self.system!r}")

    def _materialize(self, data: bytes) -> Path:
        # The same sample is reused for every alert, so write it once
        digest = hashlib.sha1(data).hexdigest()[:12]
        path = self.cache_dir / f"reminder-alert-{digest}.wav"
        if not path.exists():
            path.write_bytes(data)
        return path

    @property
    def active_players(self) -> int:
        return len(self._children)

    def play_wav(self, data: bytes) -> None:
        command = self._command(self._materialize(data))
        # poll() reaps players that have exited without waiting on running ones
        self._children = [child for child in self._children if child.poll() is None]
        self._children.append(
            subprocess.Popen(command, stdout=subprocess.DEVNULL, stderr=subprocess.DEVNULL)
        )
