"""Audio decoding behind a single capability interface."""

from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

import librosa
import numpy as np


@dataclass(frozen=True)
class DecodedAudio:
    """Mono sample buffer and its sample rate."""

    samples: np.ndarray
    sample_rate: int

    @property
    def duration_seconds(self) -> float:
        if self.sample_rate <= 0:
            return 0.0
        return float(len(self.samples) / self.sample_rate)


class AudioDecoder(Protocol):
    """Anything that can turn an audio file into a mono sample buffer."""

    def decode(self, audio_path: Path) -> DecodedAudio: ...


class LibrosaAudioDecoder:
    """Decode audio with librosa at the file's native sample rate."""

    def __init__(self, mono: bool = True) -> None:
        """Initialize the decoder.

        Args:
            mono: Mix down to mono. When False only the first channel is kept.
        """
        self.mono = mono

    def decode(self, audio_path: Path) -> DecodedAudio:
        """Load an audio file.

        Args:
            audio_path: Path to the audio file (mp3, wav, etc.)

        Returns:
            DecodedAudio with float32 samples.
        """
        y, sr = librosa.load(str(audio_path), sr=None, mono=self.mono)
        if y.ndim > 1:
            y = y[0]
        return DecodedAudio(samples=np.asarray(y, dtype=np.float32), sample_rate=int(sr))
