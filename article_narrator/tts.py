"""Speech engine contract and the edge-tts streaming backend."""

from typing import AsyncIterator, Protocol

import edge_tts

from article_narrator.constants import EDGE_CHANNELS, EDGE_SAMPLE_RATE
from article_narrator.models import AudioFormat, SynthesisBuffer, Voice

EDGE_FORMAT = AudioFormat(codec="mp3", sample_rate=EDGE_SAMPLE_RATE, channels=EDGE_CHANNELS)


class SpeechEngine(Protocol):
    """Turns text into a stream of audio buffers.

    The stream ends with a zero-length buffer. Engines may raise at any
    point; the coordinator treats that as a synthesis failure.
    """

    def stream(self, text: str, voice: Voice) -> AsyncIterator[SynthesisBuffer]:
        ...


class EdgeTTSEngine:
    """Streams mp3 chunks from edge_tts.Communicate() as they arrive."""

    def __init__(self, rate: str = "+0%", pitch: str = "+0Hz", volume: str = "+0%"):
        self.rate = rate
        self.pitch = pitch
        self.volume = volume

    async def stream(self, text: str, voice: Voice) -> AsyncIterator[SynthesisBuffer]:
        communicate = edge_tts.Communicate(
            text,
            voice.name,
            rate=self.rate,
            pitch=self.pitch,
            volume=self.volume,
        )
        async for chunk in communicate.stream():
            # Word-boundary metadata chunks carry no audio
            if chunk.get("type") != "audio" or not chunk.get("data"):
                continue
            yield SynthesisBuffer(data=chunk["data"], format=EDGE_FORMAT)
        yield SynthesisBuffer(data=b"", format=EDGE_FORMAT)
