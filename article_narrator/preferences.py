"""Persisted user preferences: auto-advance and playback rate."""

import json
import logging
import os
from dataclasses import asdict, dataclass

from article_narrator.constants import DEFAULT_PLAYBACK_RATE, PREFERENCES_PATH
from article_narrator.models import clamp_rate

logger = logging.getLogger(__name__)


@dataclass
class Preferences:
    auto_advance_enabled: bool = False
    playback_rate: float = DEFAULT_PLAYBACK_RATE


class PreferenceStore:
    """JSON-file backed preferences. A missing or unreadable file gives defaults."""

    def __init__(self, path: str = PREFERENCES_PATH):
        self.path = path

    def load(self) -> Preferences:
        if not os.path.exists(self.path):
            return Preferences()
        try:
            with open(self.path) as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Ignoring unreadable preferences %s: %s", self.path, e)
            return Preferences()

        if not isinstance(data, dict):
            logger.warning("Ignoring malformed preferences %s", self.path)
            return Preferences()

        prefs = Preferences()
        if isinstance(data.get("auto_advance_enabled"), bool):
            prefs.auto_advance_enabled = data["auto_advance_enabled"]
        if isinstance(data.get("playback_rate"), (int, float)):
            prefs.playback_rate = clamp_rate(data["playback_rate"])
        return prefs

    def save(self, prefs: Preferences) -> None:
        prefs.playback_rate = clamp_rate(prefs.playback_rate)
        directory = os.path.dirname(self.path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        with open(self.path, "w") as f:
            json.dump(asdict(prefs), f, indent=2)

    def update(self, **changes) -> Preferences:
        prefs = self.load()
        for key, value in changes.items():
            setattr(prefs, key, value)
        self.save(prefs)
        return prefs
