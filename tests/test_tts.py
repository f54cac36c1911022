"""Tests for tts module (Layer 1c)."""

import asyncio
from unittest.mock import patch, MagicMock

from article_narrator.models import Voice
from article_narrator.tts import EDGE_FORMAT, EdgeTTSEngine


def _make_mock_communicate(chunks):
    """Create a mock edge_tts.Communicate whose stream() yields `chunks`."""
    def factory(text, voice, **kwargs):
        mock = MagicMock()

        async def stream():
            for chunk in chunks:
                yield chunk
        mock.stream = stream
        return mock
    return factory


async def _collect(engine, text, voice):
    return [buffer async for buffer in engine.stream(text, voice)]


@patch("article_narrator.tts.edge_tts.Communicate")
def test_stream_yields_audio_then_end(mock_comm):
    """Audio chunks become buffers; metadata is skipped; an empty buffer ends the stream."""
    mock_comm.side_effect = _make_mock_communicate([
        {"type": "audio", "data": b"abc"},
        {"type": "WordBoundary", "offset": 0, "text": "你好"},
        {"type": "audio", "data": b"def"},
    ])
    voice = Voice("zh-CN-XiaoxiaoNeural", "zh-CN")
    buffers = asyncio.run(_collect(EdgeTTSEngine(), "你好", voice))

    assert [b.data for b in buffers] == [b"abc", b"def", b""]
    assert all(b.format == EDGE_FORMAT for b in buffers)
    assert buffers[-1].is_end


@patch("article_narrator.tts.edge_tts.Communicate")
def test_stream_passes_voice_and_prosody(mock_comm):
    mock_comm.side_effect = _make_mock_communicate([])
    engine = EdgeTTSEngine(rate="+10%")
    asyncio.run(_collect(engine, "hi", Voice("en-US-AriaNeural", "en-US")))

    args, kwargs = mock_comm.call_args
    assert args == ("hi", "en-US-AriaNeural")
    assert kwargs["rate"] == "+10%"
