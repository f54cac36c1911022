"""Playback state machine: one live session from synthesis to the end of playback.

All methods must be called on the event loop thread. Synthesis completion,
stalls and end-of-file arrive as loop callbacks tagged with the session id
that scheduled them; callbacks from a superseded session are dropped.
"""

import asyncio
import logging
import time
from functools import partial
from typing import Callable

from article_narrator.artifacts import AudioArtifact
from article_narrator.audio_session import AudioSession
from article_narrator.constants import (
    ARTIFACT_DIR,
    ARTIST_AUTO_ADVANCE,
    ARTIST_SINGLE,
    DEFAULT_LANGUAGE,
    DEFAULT_TITLE,
    RATE_STEPS,
    WATCHDOG_POLL_SECONDS,
    WATCHDOG_TIMEOUT_SECONDS,
)
from article_narrator.errors import (
    EmptyInput,
    NarrationError,
    PlayerConstructionFailure,
    ResourceActivationFailure,
)
from article_narrator.models import (
    NowPlayingInfo,
    PlaybackSession,
    PlaybackState,
    Voice,
    WatchdogState,
    clamp_rate,
)
from article_narrator.normalizer import normalize
from article_narrator.player import AudioOutput, PlaybackController
from article_narrator.preferences import PreferenceStore
from article_narrator.synthesis import SynthesisCoordinator
from article_narrator.tts import SpeechEngine
from article_narrator.voices import select_voice
from article_narrator.watchdog import StallWatchdog

logger = logging.getLogger(__name__)

EVENTS = ("state_changed", "now_playing_changed", "playback_finished", "next_requested", "failed")

_ACTIVE_STATES = (PlaybackState.SYNTHESIZING, PlaybackState.PLAYING, PlaybackState.PAUSED)


class PlaybackStateMachine:
    def __init__(
        self,
        engine: SpeechEngine,
        output: AudioOutput,
        audio_session: AudioSession | None = None,
        preferences: PreferenceStore | None = None,
        voices: list[Voice] | None = None,
        artifact_dir: str = ARTIFACT_DIR,
        watchdog_timeout: float = WATCHDOG_TIMEOUT_SECONDS,
        watchdog_poll: float = WATCHDOG_POLL_SECONDS,
        clock=time.monotonic,
    ):
        self.clock = clock
        self.coordinator = SynthesisCoordinator(engine, clock=clock)
        self.player = PlaybackController(output, clock=clock)
        self.audio_session = audio_session or AudioSession()
        self.preferences = preferences or PreferenceStore()
        self.voices = voices
        self.artifact_dir = artifact_dir
        self.watchdog_timeout = watchdog_timeout
        self.watchdog_poll = watchdog_poll

        prefs = self.preferences.load()
        self._auto_advance = prefs.auto_advance_enabled
        self._rate = prefs.playback_rate

        self.session: PlaybackSession | None = None
        self.last_error: NarrationError | None = None
        self._state = PlaybackState.IDLE
        self._watchdog: StallWatchdog | None = None
        self._open_task: asyncio.Task | None = None
        self._listeners: dict[str, list[Callable]] = {name: [] for name in EVENTS}

    # --- Events ---

    def on(self, event: str, callback: Callable) -> None:
        """Subscribe to one of EVENTS."""
        if event not in self._listeners:
            raise ValueError(f"Unknown event: {event}")
        self._listeners[event].append(callback)

    def _emit(self, event: str, *args) -> None:
        for callback in list(self._listeners[event]):
            callback(*args)

    # --- Observable state ---

    @property
    def state(self) -> PlaybackState:
        return self._state

    def _set_state(self, state: PlaybackState) -> None:
        if state == self._state:
            return
        logger.debug("State %s -> %s", self._state.value, state.value)
        self._state = state
        if self.session is not None:
            self.session.state = state
        self._emit("state_changed", state)

    @property
    def playback_rate(self) -> float:
        return self._rate

    @property
    def elapsed(self) -> float:
        if self._state == PlaybackState.FINISHED:
            return self.duration
        return self.player.elapsed if self.player.loaded else 0.0

    @property
    def duration(self) -> float:
        if self.player.loaded:
            return self.player.duration
        # The player is released at a natural end; the session remembers the length.
        if self._state == PlaybackState.FINISHED and self.session is not None:
            return self.session.duration
        return 0.0

    @property
    def progress(self) -> float:
        """Fraction of the current article already played."""
        if not self.duration:
            return 0.0
        return min(1.0, self.elapsed / self.duration)

    @property
    def auto_advance_enabled(self) -> bool:
        return self._auto_advance

    @auto_advance_enabled.setter
    def auto_advance_enabled(self, enabled: bool) -> None:
        enabled = bool(enabled)
        if enabled == self._auto_advance:
            return
        self._auto_advance = enabled
        if self.session is not None:
            self.session.auto_advance_enabled = enabled
        self._persist(auto_advance_enabled=enabled)
        self._emit("now_playing_changed")

    def _persist(self, **changes) -> None:
        try:
            self.preferences.update(**changes)
        except OSError as e:
            logger.warning("Could not save preferences: %s", e)

    def _is_current(self, session_id: str) -> bool:
        return self.session is not None and self.session.session_id == session_id

    # --- Session lifecycle ---

    def start(self, text: str, title: str | None = None, language_hint: str = DEFAULT_LANGUAGE) -> PlaybackSession:
        """Supersede any live session and begin synthesizing `text`.

        Raises EmptyInput, with nothing torn down, if there is nothing to read.
        """
        if not text or not text.strip():
            raise EmptyInput("Nothing to read: the article text is empty.")
        normalized = normalize(text, language_hint)
        if not normalized.strip():
            raise EmptyInput("Nothing to read after normalization.")

        if self.session is not None:
            logger.info("Superseding session %s", self.session.session_id)
            self._teardown(deactivate=False)

        session = PlaybackSession(
            source_text=text,
            normalized_text=normalized,
            title=title or DEFAULT_TITLE,
            language_hint=language_hint or DEFAULT_LANGUAGE,
            playback_rate=self._rate,
            auto_advance_enabled=self._auto_advance,
        )
        session.voice = select_voice(text, language_hint, self.voices)
        session.artifact = AudioArtifact(self.artifact_dir, session.session_id)
        self.session = session
        self.last_error = None

        try:
            self.audio_session.activate()
        except ResourceActivationFailure as e:
            logger.warning("%s (retrying when playback begins)", e.message)

        self._set_state(PlaybackState.SYNTHESIZING)

        progress = WatchdogState(timeout=self.watchdog_timeout, poll_interval=self.watchdog_poll)
        self._watchdog = StallWatchdog(
            progress, partial(self._on_stall, session.session_id), clock=self.clock
        )
        self._watchdog.start()

        task = self.coordinator.start(normalized, session.voice, session.artifact, progress)
        task.add_done_callback(partial(self._on_synthesis_done, session.session_id))
        logger.info("Started session %s: %r with %s", session.session_id, session.title, session.voice.name)
        return session

    def _on_stall(self, session_id: str, error: NarrationError) -> None:
        if self._is_current(session_id) and self._state == PlaybackState.SYNTHESIZING:
            self._fail(error)

    def _on_synthesis_done(self, session_id: str, task: asyncio.Task) -> None:
        if task.cancelled():
            return
        if not self._is_current(session_id) or self._state != PlaybackState.SYNTHESIZING:
            return
        event = task.result()
        if not event.completed:
            self._fail(event.error)
            return
        self._begin_playback()

    def _begin_playback(self) -> None:
        if self._watchdog is not None:
            self._watchdog.cancel()
            self._watchdog = None

        try:
            self.audio_session.activate()
        except ResourceActivationFailure as e:
            self._fail(e)
            return

        # Decoding an mp3 runs ffmpeg, so it happens off the loop. The state
        # stays SYNTHESIZING until the player is ready.
        self._open_task = asyncio.get_running_loop().create_task(
            self._open_player(self.session.session_id)
        )

    async def _open_player(self, session_id: str) -> None:
        if not self._is_current(session_id):
            return
        session = self.session
        try:
            await self.player.open(session.artifact.path)
        except PlayerConstructionFailure as e:
            if self._is_current(session_id):
                self._fail(e)
            return
        if not self._is_current(session_id) or self._state != PlaybackState.SYNTHESIZING:
            return
        self._open_task = None

        try:
            self.player.set_rate(self._rate)
            self.player.play(on_finished=partial(self._on_playback_end, session.session_id))
        except PlayerConstructionFailure as e:
            self._fail(e)
            return
        except Exception as e:
            self._fail(PlayerConstructionFailure(f"Audio output failed: {e}"))
            return

        session.duration = self.player.duration
        self._set_state(PlaybackState.PLAYING)

    def _on_playback_end(self, session_id: str) -> None:
        if not self._is_current(session_id) or self._state != PlaybackState.PLAYING:
            return
        session = self.session
        self.player.unload()
        session.artifact.discard()
        self._set_state(PlaybackState.FINISHED)
        logger.info("Finished session %s", session_id)
        self._emit("playback_finished", session)
        if self._auto_advance:
            self._emit("next_requested", session)

    def _fail(self, error: NarrationError) -> None:
        if self._state not in _ACTIVE_STATES:
            return
        self._teardown(deactivate=True)
        self.last_error = error
        if self.session is not None:
            self.session.error_message = error.message
        logger.error("Playback failed: %s", error.message)
        self._set_state(PlaybackState.FAILED)
        self._emit("failed", error)

    def _teardown(self, deactivate: bool) -> None:
        """Release everything the session holds. Safe to repeat."""
        if self._watchdog is not None:
            self._watchdog.cancel()
            self._watchdog = None
        self.coordinator.cancel()
        if self._open_task is not None:
            self._open_task.cancel()
            self._open_task = None
        self.player.unload()
        if self.session is not None and self.session.artifact is not None:
            self.session.artifact.discard()
        if deactivate:
            self.audio_session.deactivate()

    # --- Controls ---

    def play(self) -> bool:
        """Resume from PAUSED. Returns False when there is nothing to resume."""
        if self._state != PlaybackState.PAUSED:
            return False
        try:
            self.audio_session.activate()
        except ResourceActivationFailure as e:
            self._fail(e)
            return False
        try:
            self.player.play()
        except Exception as e:
            self._fail(PlayerConstructionFailure(f"Audio output failed: {e}"))
            return False
        self._set_state(PlaybackState.PLAYING)
        return True

    def pause(self) -> bool:
        if self._state != PlaybackState.PLAYING:
            return False
        self.player.pause()
        self._set_state(PlaybackState.PAUSED)
        return True

    def play_pause(self) -> bool:
        if self._state == PlaybackState.PLAYING:
            return self.pause()
        return self.play()

    def stop(self) -> None:
        """Tear everything down and release the audio output."""
        if self._state == PlaybackState.IDLE:
            return
        self._teardown(deactivate=True)
        self.session = None
        self._set_state(PlaybackState.IDLE)

    def prepare_for_next_transition(self) -> None:
        """Like stop(), but keep the audio output claimed for the next article."""
        if self._state == PlaybackState.IDLE:
            return
        self._teardown(deactivate=False)
        self.session = None
        self._set_state(PlaybackState.IDLE)

    def seek(self, fraction: float) -> None:
        if self._state not in (PlaybackState.PLAYING, PlaybackState.PAUSED):
            return
        try:
            self.player.seek(fraction)
        except Exception as e:
            self._fail(PlayerConstructionFailure(f"Audio output failed: {e}"))
            return
        self._emit("now_playing_changed")

    def set_rate(self, rate: float) -> float:
        """Clamp, remember and apply a playback rate. Never changes state on success."""
        rate = clamp_rate(rate)
        if rate == self._rate:
            return rate
        self._rate = rate
        if self.session is not None:
            self.session.playback_rate = rate
        self._persist(playback_rate=rate)
        if self.player.loaded:
            try:
                self.player.set_rate(rate)
            except Exception as e:
                self._fail(PlayerConstructionFailure(f"Audio output failed: {e}"))
                return rate
        self._emit("now_playing_changed")
        return rate

    def cycle_rate(self) -> float:
        """Step to the next rate in RATE_STEPS, wrapping around."""
        later = [step for step in RATE_STEPS if step > self._rate]
        return self.set_rate(later[0] if later else RATE_STEPS[0])

    def handle_interruption(self, began: bool, should_resume: bool = False) -> None:
        """React to another app taking the audio output (a call, an alarm).

        A resume hint when the interruption ends resumes any paused session,
        including one the user paused before it began.
        """
        if began:
            self.pause()
        elif should_resume:
            self.play()

    def request_next(self) -> None:
        """Ask the UI layer to advance. Playback itself is left untouched."""
        self._emit("next_requested", self.session)

    def now_playing(self) -> NowPlayingInfo | None:
        if self.session is None or self._state == PlaybackState.IDLE:
            return None
        artist = ARTIST_AUTO_ADVANCE if self._auto_advance else ARTIST_SINGLE
        return NowPlayingInfo(
            title=self.session.title,
            elapsed=self.elapsed,
            duration=self.duration,
            rate=self._rate if self._state == PlaybackState.PLAYING else 0.0,
            artist=f"{artist} • {self._rate:g}x",
            album=f"Speed {self._rate:g}x",
        )
