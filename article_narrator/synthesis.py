"""Streams engine output into a session's audio artifact."""

import asyncio
import logging
import time

from article_narrator.artifacts import AudioArtifact
from article_narrator.errors import NarrationError, SynthesisEngineFailure
from article_narrator.models import SynthesisEvent, Voice, WatchdogState
from article_narrator.tts import SpeechEngine

logger = logging.getLogger(__name__)


class SynthesisCoordinator:
    """Runs at most one synthesis at a time.

    Each run consumes the engine's buffers in order, appends them to the
    artifact and resolves to a single SynthesisEvent. Partial artifacts are
    discarded on failure.
    """

    def __init__(self, engine: SpeechEngine, clock=time.monotonic):
        self.engine = engine
        self.clock = clock
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(
        self,
        text: str,
        voice: Voice,
        artifact: AudioArtifact,
        progress: WatchdogState | None = None,
    ) -> asyncio.Task:
        """Begin synthesizing `text` into `artifact`. Must be called on the event loop."""
        self.cancel()
        self._task = asyncio.get_running_loop().create_task(
            self._run(text, voice, artifact, progress)
        )
        return self._task

    def cancel(self) -> None:
        """Abort the in-flight run, if any. Its artifact is left for the owner to discard."""
        if self.running:
            self._task.cancel()
        self._task = None

    async def _run(self, text, voice, artifact, progress) -> SynthesisEvent:
        logger.info("Synthesizing %d characters with %s", len(text), voice.name)
        wrote_audio = False
        try:
            async for buffer in self.engine.stream(text, voice):
                if buffer.is_end:
                    break
                await asyncio.to_thread(artifact.write, buffer)
                wrote_audio = True
                if progress is not None:
                    progress.touch(self.clock())

            if not wrote_audio:
                raise SynthesisEngineFailure("Speech engine produced no audio.")
            await asyncio.to_thread(artifact.close)
        except NarrationError as e:
            return self._failed(artifact, e)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.debug("Speech engine raised", exc_info=True)
            return self._failed(artifact, SynthesisEngineFailure(f"Speech synthesis failed: {e}"))

        logger.info("Synthesis complete: %s (%d bytes)", artifact.path, artifact.bytes_written)
        return SynthesisEvent.success()

    def _failed(self, artifact: AudioArtifact, error: NarrationError) -> SynthesisEvent:
        logger.warning("Synthesis failed: %s", error.message)
        artifact.discard()
        return SynthesisEvent.failure(error)
