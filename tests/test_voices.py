"""Tests for voices module (Layer 1b)."""

import asyncio
from unittest.mock import patch, AsyncMock

from article_narrator.models import Voice
from article_narrator.voices import (
    VOICE_CATALOG,
    detect_locale,
    fetch_voices,
    resolve_locale,
    select_voice,
)


def test_detect_han_forces_default_locale():
    assert detect_locale("Apple发布了新的iPhone") == "zh-CN"


def test_detect_dominant_script():
    assert detect_locale("Hello world") == "en-US"
    assert detect_locale("こんにちは") == "ja-JP"
    assert detect_locale("안녕하세요") == "ko-KR"
    assert detect_locale("Привет мир") == "ru-RU"


def test_detect_no_letters_uses_default():
    assert detect_locale("12345 !!") == "zh-CN"


def test_resolve_locale_hint_wins():
    assert resolve_locale("中文内容", "en") == "en-US"
    assert resolve_locale("anything", "fr_fr") == "fr-FR"


def test_resolve_locale_default_hint_detects():
    assert resolve_locale("Hello", "zh") == "en-US"


def test_select_voice_prefers_quality():
    voices = [
        Voice("zh-CN-Plain", "zh-CN", "default"),
        Voice("zh-CN-Better", "zh-CN", "enhanced"),
        Voice("zh-CN-Best", "zh-CN", "premium"),
    ]
    assert select_voice("你好", voices=voices).name == "zh-CN-Best"


def test_select_voice_exact_locale_before_language():
    voices = [
        Voice("zh-TW-Premium", "zh-TW", "premium"),
        Voice("zh-CN-Plain", "zh-CN", "default"),
    ]
    assert select_voice("你好", voices=voices).name == "zh-CN-Plain"


def test_select_voice_same_language_fallback():
    voices = [Voice("zh-TW-Only", "zh-TW", "enhanced")]
    assert select_voice("你好", voices=voices).name == "zh-TW-Only"


def test_select_voice_catalog_fallback():
    """No enumerated voice for the language: first catalog voice for it."""
    voice = select_voice("Hello there", voices=[Voice("ja-JP-X", "ja-JP")])
    assert voice.locale.startswith("en")
    assert voice in VOICE_CATALOG


def test_select_voice_synthetic_fallback():
    voice = select_voice("text", language_hint="sw-KE", voices=[])
    assert voice.name == "sw-KE"
    assert voice.locale == "sw-KE"


def test_select_voice_default_catalog():
    assert select_voice("今天的新闻").name == "zh-CN-XiaoxiaoNeural"


@patch("article_narrator.voices.edge_tts.list_voices", new_callable=AsyncMock)
def test_fetch_voices(mock_list):
    mock_list.return_value = [
        {"ShortName": "zh-CN-XiaoxiaoNeural", "Locale": "zh-CN"},
        {"ShortName": "en-AU-NatashaNeural", "Locale": "en-AU"},
        {"ShortName": "", "Locale": "xx"},
    ]
    voices = asyncio.run(fetch_voices())
    assert [v.name for v in voices] == ["zh-CN-XiaoxiaoNeural", "en-AU-NatashaNeural"]
    assert voices[0].quality == "premium"
    assert voices[1].quality == "default"
