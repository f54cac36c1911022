"""Bridge between the state machine and a system media-control surface."""

import logging
from enum import Enum
from typing import Protocol

from article_narrator.models import NowPlayingInfo, PlaybackState
from article_narrator.state_machine import PlaybackStateMachine

logger = logging.getLogger(__name__)


class MediaCommand(str, Enum):
    PLAY = "play"
    PAUSE = "pause"
    STOP = "stop"
    NEXT = "next"
    PREVIOUS = "previous"


class CommandStatus(str, Enum):
    SUCCESS = "success"
    FAILED = "failed"
    DISABLED = "disabled"


class MediaSurface(Protocol):
    """Lock-screen / headset style control surface."""

    def publish(self, info: NowPlayingInfo) -> None:
        ...

    def clear(self) -> None:
        ...

    def set_enabled(self, command: MediaCommand, enabled: bool) -> None:
        ...


class LoggingMediaSurface:
    """MediaSurface that only logs. Used by the CLI, where there is no system surface."""

    def __init__(self):
        self.info: NowPlayingInfo | None = None
        self.enabled: dict[MediaCommand, bool] = {}

    def publish(self, info: NowPlayingInfo) -> None:
        self.info = info
        logger.info("Now playing: %s (%s)", info.title, info.artist)

    def clear(self) -> None:
        self.info = None
        logger.debug("Now playing cleared")

    def set_enabled(self, command: MediaCommand, enabled: bool) -> None:
        self.enabled[command] = enabled


class MediaControlBridge:
    def __init__(self, machine: PlaybackStateMachine, surface: MediaSurface):
        self.machine = machine
        self.surface = surface
        self.registered = False
        self.has_next = True
        machine.on("state_changed", self._on_state_changed)
        machine.on("now_playing_changed", self.refresh)

    def register(self) -> None:
        """Claim the surface. A second call is a no-op."""
        if self.registered:
            return
        self.registered = True
        for command in MediaCommand:
            self.surface.set_enabled(command, self._enabled(command))
        self.refresh()

    def unregister(self) -> None:
        if not self.registered:
            return
        for command in MediaCommand:
            self.surface.set_enabled(command, False)
        self.surface.clear()
        self.registered = False

    def set_has_next(self, has_next: bool) -> None:
        self.has_next = has_next
        if self.registered:
            self.surface.set_enabled(MediaCommand.NEXT, has_next)

    def _enabled(self, command: MediaCommand) -> bool:
        if command == MediaCommand.PREVIOUS:
            return False
        if command == MediaCommand.NEXT:
            return self.has_next
        return True

    def handle(self, command: MediaCommand) -> CommandStatus:
        """Run a remote command against the state machine."""
        command = MediaCommand(command)
        logger.debug("Media command: %s", command.value)

        if command == MediaCommand.PREVIOUS:
            return CommandStatus.DISABLED
        if command == MediaCommand.PLAY:
            return CommandStatus.SUCCESS if self.machine.play() else CommandStatus.FAILED
        if command == MediaCommand.PAUSE:
            return CommandStatus.SUCCESS if self.machine.pause() else CommandStatus.FAILED
        if command == MediaCommand.STOP:
            self.machine.stop()
            return CommandStatus.SUCCESS
        self.machine.request_next()
        return CommandStatus.SUCCESS

    def refresh(self) -> None:
        """Republish now-playing info, e.g. after a seek or rate change."""
        if not self.registered:
            return
        info = self.machine.now_playing()
        if info is None:
            self.surface.clear()
        else:
            self.surface.publish(info)

    def _on_state_changed(self, state: PlaybackState) -> None:
        self.refresh()
