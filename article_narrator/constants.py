"""All magic numbers and configuration constants."""

import os

DEFAULT_LANGUAGE = "zh"                      # language hint for the default locale
DEFAULT_LOCALE = "zh-CN"
DEFAULT_TITLE = "正在播放的文章"               # now-playing title when none is given
URL_PLACEHOLDER = "link"                     # spoken in place of URLs in non-default locales
RANGE_CONNECTOR = "到"                       # joins the two sides of a numeric range
PAUSE_MARKER = ", "                          # short pause between Han and Latin runs

MIN_PLAYBACK_RATE = 0.5
MAX_PLAYBACK_RATE = 2.0
DEFAULT_PLAYBACK_RATE = 1.0
RATE_STEPS = (1.0, 1.25, 1.5, 1.75, 2.0)    # cycle order for the "next rate" control

WATCHDOG_TIMEOUT_SECONDS = 15.0              # synthesis silence treated as a stall
WATCHDOG_POLL_SECONDS = 5.0                  # watchdog tick interval

EDGE_SAMPLE_RATE = 24000                     # edge-tts default output: 24 kHz mono mp3
EDGE_CHANNELS = 1

ARTIFACT_DIR = os.path.join(os.path.expanduser("~"), ".article_narrator", "tmp")
PREFERENCES_PATH = os.path.join(os.path.expanduser("~"), ".article_narrator", "preferences.json")

ARTIST_AUTO_ADVANCE = "自动连播"
ARTIST_SINGLE = "单次播放"

VERSION = "0.1.0"
