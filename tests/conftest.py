"""Shared fixtures and fakes for article narrator tests."""

import asyncio

import numpy as np
import pytest

from article_narrator.errors import ResourceActivationFailure
from article_narrator.models import AudioFormat, SynthesisBuffer, Voice
from article_narrator.preferences import PreferenceStore
from article_narrator.state_machine import PlaybackStateMachine

PCM_FORMAT = AudioFormat(codec="pcm_s16le", sample_rate=8000, channels=1)
TEST_VOICE = Voice("zh-CN-XiaoxiaoNeural", "zh-CN", "premium")


def pcm_buffers(seconds=0.05, chunks=4, fmt=PCM_FORMAT, end=True):
    """A short 440 Hz tone split into engine-sized buffers."""
    t = np.arange(int(seconds * fmt.sample_rate)) / fmt.sample_rate
    tone = (np.sin(2 * np.pi * 440 * t) * 8000).astype(np.int16).tobytes()
    size = len(tone) // chunks
    size -= size % 2
    buffers = [SynthesisBuffer(tone[i:i + size], fmt) for i in range(0, len(tone), size)]
    if end:
        buffers.append(SynthesisBuffer(b"", fmt))
    return buffers


class FakeEngine:
    """SpeechEngine that yields canned buffers, then optionally raises or hangs."""

    def __init__(self, buffers=None, error=None, hang=False):
        self.buffers = pcm_buffers() if buffers is None else buffers
        self.error = error
        self.hang = hang
        self.calls = []

    async def stream(self, text, voice):
        self.calls.append((text, voice))
        for buffer in self.buffers:
            await asyncio.sleep(0)
            yield buffer
        if self.error is not None:
            raise self.error
        if self.hang:
            await asyncio.Event().wait()


class FakeOutput:
    """AudioOutput that records what it was asked to play."""

    def __init__(self):
        self.plays = []
        self.stops = 0

    def play(self, samples, sample_rate):
        self.plays.append((len(samples), sample_rate))

    def stop(self):
        self.stops += 1


class FakeAudioSession:
    def __init__(self, fail=False):
        self.fail = fail
        self.active = False
        self.activations = 0
        self.deactivations = 0

    def activate(self):
        self.activations += 1
        if self.fail:
            raise ResourceActivationFailure("Audio output unavailable: busy")
        self.active = True

    def deactivate(self):
        self.deactivations += 1
        self.active = False


@pytest.fixture
def prefs_store(tmp_path):
    return PreferenceStore(str(tmp_path / "prefs" / "preferences.json"))


@pytest.fixture
def make_machine(tmp_path, prefs_store):
    """Build a state machine wired to fakes. Returns (machine, output, audio_session)."""
    def factory(engine=None, session=None, timeout=15.0, poll=5.0, output=None):
        output = output or FakeOutput()
        audio_session = session or FakeAudioSession()
        machine = PlaybackStateMachine(
            engine=engine or FakeEngine(),
            output=output,
            audio_session=audio_session,
            preferences=prefs_store,
            voices=[TEST_VOICE],
            artifact_dir=str(tmp_path / "artifacts"),
            watchdog_timeout=timeout,
            watchdog_poll=poll,
        )
        return machine, output, audio_session
    return factory


def record_events(machine):
    """Subscribe to every event; returns the list they are appended to."""
    events = []
    machine.on("state_changed", lambda state: events.append(("state_changed", state)))
    machine.on("playback_finished", lambda session: events.append(("playback_finished", session)))
    machine.on("next_requested", lambda session: events.append(("next_requested", session)))
    machine.on("failed", lambda error: events.append(("failed", error)))
    return events


async def wait_for_state(machine, *states, timeout=2.0):
    """Poll the loop until the machine reaches one of `states`."""
    async def poll():
        while machine.state not in states:
            await asyncio.sleep(0.005)
    await asyncio.wait_for(poll(), timeout)
