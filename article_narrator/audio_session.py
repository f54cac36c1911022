"""The shared system audio output resource."""

import logging

from article_narrator.errors import ResourceActivationFailure

logger = logging.getLogger(__name__)


class AudioSession:
    """Claims the default output device for spoken audio.

    Activation probes the device so that a missing or busy output is reported
    before playback begins rather than in the middle of it.
    """

    def __init__(self, device=None):
        self.device = device
        self.active = False

    def activate(self) -> None:
        try:
            import sounddevice as sd
            info = sd.query_devices(self.device, kind="output")
        except Exception as e:
            raise ResourceActivationFailure(f"Audio output unavailable: {e}") from e
        if not self.active:
            logger.debug("Audio session active on %s", info.get("name", "default output"))
        self.active = True

    def deactivate(self) -> None:
        if self.active:
            logger.debug("Audio session released")
        self.active = False
