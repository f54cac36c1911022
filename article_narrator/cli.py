"""CLI interface: normalize, list voices, play articles, change preferences."""

import argparse
import asyncio
import logging
import os
import sys

from article_narrator.audio_session import AudioSession
from article_narrator.constants import (
    ARTIFACT_DIR,
    DEFAULT_LANGUAGE,
    MAX_PLAYBACK_RATE,
    MIN_PLAYBACK_RATE,
    PREFERENCES_PATH,
    VERSION,
)
from article_narrator.errors import NarrationError
from article_narrator.media_control import LoggingMediaSurface, MediaControlBridge
from article_narrator.models import clamp_rate
from article_narrator.normalizer import normalize
from article_narrator.player import SounddeviceOutput
from article_narrator.preferences import PreferenceStore
from article_narrator.state_machine import PlaybackStateMachine
from article_narrator.tts import EdgeTTSEngine
from article_narrator.voices import VOICE_CATALOG, fetch_voices


def _read_article(file_path: str) -> str:
    """Read an article file, exiting on missing or empty input."""
    if not os.path.exists(file_path):
        print(f"Error: File not found: {file_path}", file=sys.stderr)
        raise SystemExit(1)

    with open(file_path, encoding="utf-8") as f:
        text = f.read()

    if not text.strip():
        print(f"Error: File is empty: {file_path}", file=sys.stderr)
        raise SystemExit(1)
    return text


def cmd_normalize(args):
    """Print the text exactly as it would be sent to the speech engine."""
    text = _read_article(args.file)
    print(normalize(text, args.lang))


def cmd_voices(args):
    """List available voices."""
    if args.online:
        try:
            voices = asyncio.run(fetch_voices())
        except Exception as e:
            print(f"Error: Could not fetch voices: {e}", file=sys.stderr)
            raise SystemExit(1)
    else:
        voices = VOICE_CATALOG

    filter_str = args.filter.lower() if args.filter else None
    if filter_str:
        voices = [v for v in voices if filter_str in v.name.lower() or filter_str in v.locale.lower()]
    if not voices:
        print("No matching voices found.")
        return
    print("Available voices:")
    for v in voices:
        print(f"  {v.name:<32} {v.locale:<8} {v.quality}")


async def _play_queue(machine: PlaybackStateMachine, articles: list, language_hint: str) -> list:
    """Play (title, text) pairs in order. Returns the errors that ended playback."""
    bridge = MediaControlBridge(machine, LoggingMediaSurface())
    queue = list(articles)
    errors = []
    done = asyncio.Event()

    def start_next():
        if not queue:
            done.set()
            return
        title, text = queue.pop(0)
        bridge.set_has_next(bool(queue))
        print(f"Playing: {title}")
        machine.start(text, title=title, language_hint=language_hint)

    def on_finished(session):
        print(f"Finished: {session.title}")
        if not machine.auto_advance_enabled or not queue:
            done.set()

    def on_next(session):
        if not queue:
            return
        machine.prepare_for_next_transition()
        start_next()

    def on_failed(error):
        errors.append(error)
        done.set()

    machine.on("playback_finished", on_finished)
    machine.on("next_requested", on_next)
    machine.on("failed", on_failed)

    bridge.register()
    try:
        start_next()
        await done.wait()
    finally:
        machine.stop()
        bridge.unregister()
    return errors


def cmd_play(args):
    """Synthesize and play one or more article files."""
    articles = []
    for file_path in args.files:
        text = _read_article(file_path)
        if args.title and len(args.files) == 1:
            title = args.title
        else:
            title = os.path.splitext(os.path.basename(file_path))[0]
        articles.append((title, text))

    store = PreferenceStore(args.preferences)
    try:
        output = SounddeviceOutput()
    except NarrationError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        raise SystemExit(1)

    machine = PlaybackStateMachine(
        engine=EdgeTTSEngine(),
        output=output,
        audio_session=AudioSession(),
        preferences=store,
        artifact_dir=ARTIFACT_DIR,
    )
    # Flags become the saved preference, like changing them in the player.
    if args.rate is not None:
        machine.set_rate(args.rate)
    if args.auto_advance is not None:
        machine.auto_advance_enabled = args.auto_advance

    try:
        errors = asyncio.run(_play_queue(machine, articles, args.lang))
    except KeyboardInterrupt:
        print("\nStopped.")
        return

    if errors:
        print(f"Error: {errors[0].message}", file=sys.stderr)
        raise SystemExit(1)


def cmd_set(args):
    """Update a persisted preference."""
    store = PreferenceStore(args.preferences)
    key = args.key
    value = args.value

    if key == "auto-advance":
        if value not in ("on", "off"):
            print("Error: auto-advance must be 'on' or 'off'.", file=sys.stderr)
            raise SystemExit(1)
        store.update(auto_advance_enabled=(value == "on"))
        print(f"Auto-advance {value}.")
    elif key == "rate":
        try:
            rate = float(value)
        except ValueError:
            print(f"Error: Invalid rate: {value}", file=sys.stderr)
            raise SystemExit(1)
        clamped = clamp_rate(rate)
        if clamped != rate:
            print(f"Rate clamped to {clamped:g}x (allowed {MIN_PLAYBACK_RATE:g}-{MAX_PLAYBACK_RATE:g}).")
        store.update(playback_rate=clamped)
        print(f"Playback rate set to {clamped:g}x.")
    else:
        print(f"Error: Unknown setting '{key}'. Use 'auto-advance' or 'rate'.", file=sys.stderr)
        raise SystemExit(1)


def main():
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="article-narrator",
        description="Article Narrator: read news articles aloud",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {VERSION}")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    parser.add_argument("--preferences", default=PREFERENCES_PATH, help="Preferences file")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # normalize
    normalize_parser = subparsers.add_parser("normalize", help="Show the text as it will be spoken")
    normalize_parser.add_argument("file", help="Path to the article text file")
    normalize_parser.add_argument("--lang", default=DEFAULT_LANGUAGE, help="Language hint")
    normalize_parser.set_defaults(func=cmd_normalize)

    # voices
    voices_parser = subparsers.add_parser("voices", help="List available voices")
    voices_parser.add_argument("--filter", help="Filter voices by substring")
    voices_parser.add_argument("--online", action="store_true", help="Query the live edge-tts voice list")
    voices_parser.set_defaults(func=cmd_voices)

    # play
    play_parser = subparsers.add_parser("play", help="Read one or more articles aloud")
    play_parser.add_argument("files", nargs="+", help="Article text file(s), played in order")
    play_parser.add_argument("--title", help="Now-playing title (single file only)")
    play_parser.add_argument("--lang", default=DEFAULT_LANGUAGE, help="Language hint")
    play_parser.add_argument("--rate", type=float, help="Playback rate (0.5-2.0)")
    play_parser.add_argument(
        "--auto-advance",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Continue with the next file when one finishes",
    )
    play_parser.set_defaults(func=cmd_play)

    # set
    set_parser = subparsers.add_parser("set", help="Update a saved preference")
    set_parser.add_argument("key", help="Setting key: auto-advance or rate")
    set_parser.add_argument("value", help="Setting value")
    set_parser.set_defaults(func=cmd_set)

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if not args.command:
        parser.print_help()
        return

    args.func(args)
