"""Data models for article narration sessions."""

import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

from article_narrator.constants import (
    DEFAULT_LANGUAGE,
    DEFAULT_PLAYBACK_RATE,
    DEFAULT_TITLE,
    MAX_PLAYBACK_RATE,
    MIN_PLAYBACK_RATE,
    WATCHDOG_POLL_SECONDS,
    WATCHDOG_TIMEOUT_SECONDS,
)


class PlaybackState(str, Enum):
    IDLE = "idle"
    SYNTHESIZING = "synthesizing"
    PLAYING = "playing"
    PAUSED = "paused"
    FINISHED = "finished"
    FAILED = "failed"


def clamp_rate(rate: float) -> float:
    """Clamp a playback rate into the supported range."""
    return max(MIN_PLAYBACK_RATE, min(MAX_PLAYBACK_RATE, float(rate)))


@dataclass(frozen=True)
class AudioFormat:
    codec: str          # "pcm_s16le", "pcm_f32le" or "mp3"
    sample_rate: int
    channels: int = 1


@dataclass(frozen=True)
class SynthesisBuffer:
    data: bytes
    format: AudioFormat | None = None

    @property
    def is_end(self) -> bool:
        """A zero-length buffer marks the end of the utterance."""
        return len(self.data) == 0


@dataclass(frozen=True)
class Voice:
    name: str           # engine voice id, e.g. "zh-CN-XiaoxiaoNeural"
    locale: str         # BCP-47 tag, e.g. "zh-CN"
    quality: str = "default"   # "premium", "enhanced" or "default"


@dataclass
class WatchdogState:
    last_progress_at: float = field(default_factory=time.monotonic)
    timeout: float = WATCHDOG_TIMEOUT_SECONDS
    poll_interval: float = WATCHDOG_POLL_SECONDS

    def touch(self, now: float) -> None:
        self.last_progress_at = now


@dataclass(frozen=True)
class SynthesisEvent:
    completed: bool
    error: Exception | None = None

    @classmethod
    def success(cls) -> "SynthesisEvent":
        return cls(completed=True)

    @classmethod
    def failure(cls, error: Exception) -> "SynthesisEvent":
        return cls(completed=False, error=error)


@dataclass
class PlaybackSession:
    source_text: str
    normalized_text: str
    title: str = DEFAULT_TITLE
    language_hint: str = DEFAULT_LANGUAGE
    playback_rate: float = DEFAULT_PLAYBACK_RATE
    auto_advance_enabled: bool = False
    state: PlaybackState = PlaybackState.IDLE
    session_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    voice: Voice | None = None
    artifact: object | None = None      # AudioArtifact, owned exclusively by this session
    duration: float = 0.0
    error_message: str | None = None

    def __post_init__(self):
        self.playback_rate = clamp_rate(self.playback_rate)


@dataclass(frozen=True)
class NowPlayingInfo:
    title: str
    elapsed: float = 0.0
    duration: float = 0.0
    rate: float = 0.0   # 0 while paused, stalled or synthesizing
    artist: str = ""
    album: str = ""
