"""Transient audio artifact that accumulates synthesized audio for one session."""

import logging
import os
import threading

import numpy as np
import soundfile as sf

from article_narrator.errors import UnsupportedBuffer, WriteFailure
from article_narrator.models import AudioFormat, SynthesisBuffer

logger = logging.getLogger(__name__)

# Recognized buffer codecs → (file suffix, soundfile subtype, sample dtype).
# Compressed codecs have no subtype: their bytes are appended as they arrive.
CODECS = {
    "pcm_s16le": (".wav", "PCM_16", np.int16),
    "pcm_f32le": (".wav", "FLOAT", np.float32),
    "mp3": (".mp3", None, None),
}


class AudioArtifact:
    """A file exclusively owned by one playback session.

    The file is not created until the first buffer arrives, because only that
    buffer tells us the sample format. Every later buffer must match it.
    write(), close() and discard() may be called from different threads; once
    discarded the artifact is never recreated.
    """

    def __init__(self, directory: str, session_id: str):
        self.directory = directory
        self.session_id = session_id
        self.path: str | None = None
        self.format: AudioFormat | None = None
        self.bytes_written = 0
        self._writer = None
        self._closed = False
        self._discarded = False
        self._lock = threading.Lock()

    @property
    def exists(self) -> bool:
        return self.path is not None and os.path.exists(self.path)

    @property
    def suffix(self) -> str:
        if self.format is None:
            return ""
        return CODECS[self.format.codec][0]

    def write(self, buffer: SynthesisBuffer) -> None:
        """Append one non-empty buffer, opening the file on first use."""
        with self._lock:
            if self._discarded or self._closed:
                raise WriteFailure("Audio artifact is no longer writable.")

            fmt = buffer.format
            if fmt is None or fmt.codec not in CODECS:
                codec = fmt.codec if fmt else "unknown"
                raise UnsupportedBuffer(f"Synthesis produced an unrecognized audio format: {codec}")
            if self.format is None:
                self._open(fmt)
            elif fmt != self.format:
                raise UnsupportedBuffer(
                    f"Buffer format changed mid-stream: {fmt} (file opened as {self.format})"
                )
            self._append(buffer.data)

    def _open(self, fmt: AudioFormat) -> None:
        suffix, subtype, _ = CODECS[fmt.codec]
        path = os.path.join(self.directory, self.session_id + suffix)
        try:
            os.makedirs(self.directory, exist_ok=True)
            if subtype:
                writer = sf.SoundFile(
                    path,
                    mode="w",
                    samplerate=fmt.sample_rate,
                    channels=fmt.channels,
                    format="WAV",
                    subtype=subtype,
                )
            else:
                writer = open(path, "wb")
        except (OSError, RuntimeError) as e:
            raise WriteFailure(f"Could not create audio file {path}: {e}") from e

        self.path = path
        self.format = fmt
        self._writer = writer
        logger.debug("Opened audio artifact %s (%s)", path, fmt)

    def _append(self, data: bytes) -> None:
        _, subtype, dtype = CODECS[self.format.codec]
        try:
            if subtype:
                frame_bytes = np.dtype(dtype).itemsize * self.format.channels
                if len(data) % frame_bytes:
                    raise UnsupportedBuffer("Buffer does not hold a whole number of audio frames.")
                samples = np.frombuffer(data, dtype=dtype).reshape(-1, self.format.channels)
                self._writer.write(samples)
            else:
                self._writer.write(data)
        except (OSError, RuntimeError) as e:
            raise WriteFailure(f"Writing audio file failed: {e}") from e
        self.bytes_written += len(data)

    def close(self) -> None:
        """Finish the file so a player can read it. Idempotent."""
        with self._lock:
            self._close_writer()
            self._closed = True

    def discard(self) -> None:
        """Close and delete the file. Safe to call any number of times, from any state."""
        with self._lock:
            try:
                self._close_writer()
            except OSError as e:
                logger.warning("Closing audio artifact %s failed: %s", self.path, e)
            self._discarded = True
            if self.path and os.path.exists(self.path):
                os.remove(self.path)
                logger.debug("Deleted audio artifact %s", self.path)

    def _close_writer(self) -> None:
        writer, self._writer = self._writer, None
        if writer is not None:
            writer.close()
