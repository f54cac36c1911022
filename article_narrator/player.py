"""Playback of a finished audio artifact."""

import asyncio
import logging
import os
import time
from typing import Callable, Protocol

import numpy as np
from pydub import AudioSegment

from article_narrator.constants import DEFAULT_PLAYBACK_RATE
from article_narrator.errors import PlayerConstructionFailure
from article_narrator.models import clamp_rate

logger = logging.getLogger(__name__)


class AudioOutput(Protocol):
    """Non-blocking sink for float32 samples shaped (frames, channels)."""

    def play(self, samples: np.ndarray, sample_rate: int) -> None:
        ...

    def stop(self) -> None:
        ...


class SounddeviceOutput:
    """AudioOutput on the default sounddevice stream."""

    def __init__(self) -> None:
        try:
            import sounddevice as sd
        except (ImportError, OSError) as e:
            raise PlayerConstructionFailure(f"sounddevice is unavailable: {e}") from e
        self._sd = sd

    def play(self, samples: np.ndarray, sample_rate: int) -> None:
        self._sd.play(samples, samplerate=sample_rate, blocking=False)

    def stop(self) -> None:
        self._sd.stop()


def decode(path: str) -> tuple[np.ndarray, int]:
    """Decode an audio file into float32 samples in [-1, 1] and its frame rate."""
    fmt = os.path.splitext(path)[1].lstrip(".").lower() or None
    segment = AudioSegment.from_file(path, format=fmt)
    scale = float(1 << (8 * segment.sample_width - 1))
    samples = np.array(segment.get_array_of_samples(), dtype=np.float32) / scale
    return samples.reshape(-1, segment.channels), segment.frame_rate


class PlaybackController:
    """Plays one loaded file with pause, seek and rate control.

    Rate is applied by resampling on output, so the output device runs at
    frame_rate * rate. End of playback is detected with a loop timer; each
    restart bumps a generation counter so that old timers are ignored.
    """

    def __init__(self, output: AudioOutput, clock=time.monotonic):
        self.output = output
        self.clock = clock
        self.rate = DEFAULT_PLAYBACK_RATE
        self.is_playing = False
        self._samples: np.ndarray | None = None
        self._frame_rate = 0
        self._position = 0.0        # seconds into the file when last started/paused
        self._started_at = 0.0
        self._timer: asyncio.TimerHandle | None = None
        self._generation = 0
        self._on_finished: Callable[[], None] | None = None

    @property
    def loaded(self) -> bool:
        return self._samples is not None

    @property
    def duration(self) -> float:
        if self._samples is None or not self._frame_rate:
            return 0.0
        return len(self._samples) / self._frame_rate

    @property
    def elapsed(self) -> float:
        if not self.is_playing:
            return self._position
        played = (self.clock() - self._started_at) * self.rate
        return min(self.duration, self._position + played)

    def load(self, path: str) -> None:
        """Decode `path` on the calling thread. Blocks while ffmpeg runs for mp3."""
        try:
            samples, frame_rate = decode(path)
        except Exception as e:
            raise PlayerConstructionFailure(f"Could not open audio file {path}: {e}") from e
        self._attach(path, samples, frame_rate)

    async def open(self, path: str) -> None:
        """Like load(), but decodes in a worker thread.

        If the awaiting task is cancelled the decoded audio is dropped and
        the controller is left as it was.
        """
        try:
            samples, frame_rate = await asyncio.to_thread(decode, path)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            raise PlayerConstructionFailure(f"Could not open audio file {path}: {e}") from e
        self._attach(path, samples, frame_rate)

    def _attach(self, path: str, samples: np.ndarray, frame_rate: int) -> None:
        self.unload()
        self._samples, self._frame_rate = samples, frame_rate
        logger.debug("Loaded %s (%.1fs at %d Hz)", path, self.duration, self._frame_rate)

    def play(self, on_finished: Callable[[], None] | None = None) -> None:
        if not self.loaded:
            raise PlayerConstructionFailure("No audio loaded.")
        if on_finished is not None:
            self._on_finished = on_finished
        if self._position >= self.duration:
            self._position = 0.0
        self._start_output()

    def pause(self) -> None:
        if not self.is_playing:
            return
        self._position = self.elapsed
        self._halt()

    def seek(self, fraction: float) -> None:
        if not self.loaded:
            return
        fraction = max(0.0, min(1.0, fraction))
        was_playing = self.is_playing
        if was_playing:
            self._halt()
        self._position = fraction * self.duration
        if was_playing:
            self._start_output()

    def set_rate(self, rate: float) -> None:
        rate = clamp_rate(rate)
        if rate == self.rate:
            return
        if self.is_playing:
            self._position = self.elapsed
            self._halt()
            self.rate = rate
            self._start_output()
        else:
            self.rate = rate

    def unload(self) -> None:
        """Stop output and release the decoded samples."""
        if self.is_playing:
            self._halt()
        self._samples = None
        self._frame_rate = 0
        self._position = 0.0
        self._on_finished = None

    def _start_output(self) -> None:
        start_frame = int(self._position * self._frame_rate)
        remaining = self.duration - self._position
        self.output.play(self._samples[start_frame:], int(self._frame_rate * self.rate))
        self._started_at = self.clock()
        self.is_playing = True
        self._generation += 1
        generation = self._generation
        self._timer = asyncio.get_running_loop().call_later(
            remaining / self.rate, self._reached_end, generation
        )

    def _halt(self) -> None:
        self._generation += 1
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        self.output.stop()
        self.is_playing = False

    def _reached_end(self, generation: int) -> None:
        if generation != self._generation or not self.is_playing:
            return
        self._timer = None
        self.is_playing = False
        self._position = self.duration
        logger.debug("Playback reached end of file")
        if self._on_finished is not None:
            self._on_finished()
