"""Transport clock for live preview."""

import logging
import time
from collections.abc import Callable
from typing import Protocol

from beatcutter.timeline.schemas import PlaybackState

logger = logging.getLogger(__name__)

# Length of the audio snippet played while scrubbing
SCRUB_GRAIN_SEC = 0.12


class AudioOutput(Protocol):
    """Sink for the soundtrack during preview.

    Offsets are in soundtrack seconds. A negative offset means the soundtrack
    starts that many seconds after the call.
    """

    def start(self, offset_sec: float) -> None: ...

    def stop(self) -> None: ...

    def play_grain(self, offset_sec: float, duration_sec: float) -> None: ...


class NullAudioOutput:
    """Audio output that plays nothing (headless preview, tests)."""

    def start(self, offset_sec: float) -> None:
        pass

    def stop(self) -> None:
        pass

    def play_grain(self, offset_sec: float, duration_sec: float) -> None:
        pass


class PlaybackEngine:
    """Advances the timeline cursor from a monotonic clock.

    The engine owns the transport state. The cursor advances by wall time
    times the transport rate and loops to 0 at the end of the timeline.
    """

    def __init__(
        self,
        duration_ms: int,
        audio: AudioOutput | None = None,
        clock: Callable[[], float] = time.monotonic,
        intro_skip_ms: int = 0,
        state: PlaybackState | None = None,
    ):
        self._duration_ms = max(0, duration_ms)
        self._audio = audio or NullAudioOutput()
        self._clock = clock
        self._intro_skip_ms = intro_skip_ms
        self._state = state or PlaybackState()

        # Cursor position and clock reading when playback last (re)started
        self._anchor_ms = float(self._state.current_time_ms)
        self._anchor_clock = clock()

        if self._state.is_playing:
            self._start_audio()

    @property
    def state(self) -> PlaybackState:
        return self._state

    @property
    def duration_ms(self) -> int:
        return self._duration_ms

    def set_duration(self, duration_ms: int) -> None:
        """Follow timeline length changes, pulling the cursor back inside."""
        self._duration_ms = max(0, duration_ms)
        if self._state.current_time_ms > self._duration_ms:
            self._set_time(self._duration_ms)

    def set_intro_skip(self, intro_skip_ms: int) -> None:
        if intro_skip_ms == self._intro_skip_ms:
            return
        self._intro_skip_ms = intro_skip_ms
        if self._state.is_playing:
            self._start_audio()

    def set_rate(self, playback_rate: float) -> PlaybackState:
        """Change the transport rate without jumping the cursor."""
        self.tick()
        self._anchor_ms = float(self._state.current_time_ms)
        self._anchor_clock = self._clock()
        self._state = self._state.model_copy(update={"playback_rate": playback_rate})
        return self._state

    def play(self) -> PlaybackState:
        if self._state.is_playing:
            return self._state
        start_ms = self._state.current_time_ms
        if start_ms >= self._duration_ms:
            start_ms = 0
        self._anchor_ms = float(start_ms)
        self._anchor_clock = self._clock()
        self._state = self._state.model_copy(
            update={"is_playing": True, "current_time_ms": start_ms}
        )
        self._start_audio()
        return self._state

    def pause(self) -> PlaybackState:
        if not self._state.is_playing:
            return self._state
        self.tick()
        self._audio.stop()
        self._state = self._state.model_copy(update={"is_playing": False})
        return self._state

    def toggle(self) -> PlaybackState:
        return self.pause() if self._state.is_playing else self.play()

    def seek(self, time_ms: float, preview_grain: bool = True) -> PlaybackState:
        """Move the cursor; seeking while playing pauses playback.

        Args:
            time_ms: Target timeline time (clamped to the timeline).
            preview_grain: Play a short audio snippet at the target.
        """
        if self._state.is_playing:
            self.pause()
        self._set_time(time_ms)
        if preview_grain:
            self._audio.play_grain(self._audio_offset_sec(), SCRUB_GRAIN_SEC)
        return self._state

    def tick(self, now: float | None = None) -> PlaybackState:
        """Advance the cursor to the clock reading ``now``."""
        if not self._state.is_playing:
            return self._state

        if now is None:
            now = self._clock()
        elapsed_ms = (now - self._anchor_clock) * 1000 * self._state.playback_rate
        position = self._anchor_ms + elapsed_ms

        if position >= self._duration_ms:
            logger.debug("Reached timeline end at %.0f ms, looping", position)
            self._anchor_ms = 0.0
            self._anchor_clock = now
            self._state = self._state.model_copy(update={"current_time_ms": 0})
            self._start_audio()
            return self._state

        self._state = self._state.model_copy(
            update={"current_time_ms": max(0, int(position))}
        )
        return self._state

    def _set_time(self, time_ms: float) -> None:
        clamped = min(max(0.0, time_ms), float(self._duration_ms))
        self._anchor_ms = clamped
        self._anchor_clock = self._clock()
        self._state = self._state.model_copy(update={"current_time_ms": round(clamped)})

    def _audio_offset_sec(self) -> float:
        return (self._state.current_time_ms + self._intro_skip_ms) / 1000

    def _start_audio(self) -> None:
        self._audio.stop()
        self._audio.start(self._audio_offset_sec())
