"""Voice catalog and deterministic voice selection."""

import logging
import re

import edge_tts

from article_narrator.constants import DEFAULT_LOCALE
from article_narrator.models import Voice
from article_narrator.normalizer import is_default_language

logger = logging.getLogger(__name__)

# Evaluated in order; the first quality tier with a matching voice wins.
QUALITY_PREFERENCE = ("premium", "enhanced", "default")

# Hardcoded catalog (avoids a network call at startup). fetch_voices() gives the live list.
VOICE_CATALOG = [
    Voice("zh-CN-XiaoxiaoNeural", "zh-CN", "premium"),
    Voice("zh-CN-YunxiNeural", "zh-CN", "enhanced"),
    Voice("zh-CN-YunjianNeural", "zh-CN", "enhanced"),
    Voice("zh-CN-XiaoyiNeural", "zh-CN"),
    Voice("zh-TW-HsiaoChenNeural", "zh-TW", "enhanced"),
    Voice("zh-HK-HiuMaanNeural", "zh-HK", "enhanced"),
    Voice("en-US-AriaNeural", "en-US", "premium"),
    Voice("en-US-GuyNeural", "en-US", "enhanced"),
    Voice("en-US-JennyNeural", "en-US"),
    Voice("en-GB-SoniaNeural", "en-GB", "enhanced"),
    Voice("ja-JP-NanamiNeural", "ja-JP", "premium"),
    Voice("ja-JP-KeitaNeural", "ja-JP"),
    Voice("ko-KR-SunHiNeural", "ko-KR", "premium"),
    Voice("ru-RU-SvetlanaNeural", "ru-RU", "enhanced"),
    Voice("fr-FR-DeniseNeural", "fr-FR", "enhanced"),
    Voice("de-DE-KatjaNeural", "de-DE", "enhanced"),
    Voice("es-ES-ElviraNeural", "es-ES", "enhanced"),
]

# Locale used when a bare language code ("en") is given as a hint.
DEFAULT_REGION = {
    "zh": "zh-CN",
    "en": "en-US",
    "ja": "ja-JP",
    "ko": "ko-KR",
    "ru": "ru-RU",
    "fr": "fr-FR",
    "de": "de-DE",
    "es": "es-ES",
}

_HAN_RE = re.compile(r"[\u4e00-\u9fff]")
_SCRIPTS = (
    ("ja-JP", re.compile(r"[\u3040-\u30ff]")),    # hiragana + katakana
    ("ko-KR", re.compile(r"[\uac00-\ud7af]")),    # hangul syllables
    ("ru-RU", re.compile(r"[\u0400-\u04ff]")),    # cyrillic
    ("en-US", re.compile(r"[A-Za-z]")),
)


def _locale_for_hint(language_hint: str) -> str:
    hint = language_hint.strip().replace("_", "-")
    if "-" in hint:
        lang, region = hint.split("-", 1)
        return f"{lang.lower()}-{region.upper()}"
    return DEFAULT_REGION.get(hint.lower(), hint.lower())


def detect_locale(text: str) -> str:
    """Pick a locale from the dominant script of `text`.

    Any Han character forces the default locale: mixed-script articles must
    not switch voices mid-utterance.
    """
    if _HAN_RE.search(text):
        return DEFAULT_LOCALE
    counts = [(len(pattern.findall(text)), locale) for locale, pattern in _SCRIPTS]
    best_count, best_locale = max(counts, key=lambda item: item[0])
    if best_count == 0:
        return DEFAULT_LOCALE
    return best_locale


def resolve_locale(text: str, language_hint: str | None) -> str:
    """A non-default hint always wins; otherwise detect from the text."""
    if not is_default_language(language_hint):
        return _locale_for_hint(language_hint)
    return detect_locale(text)


def select_voice(text: str, language_hint: str | None = None, voices: list[Voice] | None = None) -> Voice:
    """Choose the best voice for `text`.

    Exact locale matches are preferred over same-language matches; within
    each, QUALITY_PREFERENCE decides. Falls back to the first catalog voice
    for the language, then to a synthetic "<locale>" voice.
    """
    if voices is None:
        voices = VOICE_CATALOG

    locale = resolve_locale(text, language_hint)
    language = locale.split("-")[0]

    exact = [v for v in voices if v.locale.lower() == locale.lower()]
    same_language = [v for v in voices if v.locale.split("-")[0].lower() == language]

    for pool in (exact, same_language):
        for quality in QUALITY_PREFERENCE:
            for voice in pool:
                if voice.quality == quality:
                    logger.debug("Selected voice %s for locale %s", voice.name, locale)
                    return voice

    for voice in VOICE_CATALOG:
        if voice.locale.split("-")[0].lower() == language:
            return voice

    logger.warning("No installed voice for locale %s", locale)
    return Voice(name=locale, locale=locale)


def _quality_from_catalog(name: str) -> str:
    for voice in VOICE_CATALOG:
        if voice.name == name:
            return voice.quality
    return "default"


async def fetch_voices() -> list[Voice]:
    """Enumerate the voices edge-tts currently offers.

    Catalog voices keep their quality tier; everything else is "default".
    """
    entries = await edge_tts.list_voices()
    voices = []
    for entry in entries:
        name = entry.get("ShortName", "")
        locale = entry.get("Locale", "")
        if not name or not locale:
            continue
        voices.append(Voice(name=name, locale=locale, quality=_quality_from_catalog(name)))
    return voices
