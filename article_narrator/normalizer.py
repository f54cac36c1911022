"""Rewrite article text so the speech engine pronounces it correctly.

The rules run in a fixed order. Later rules assume earlier ones already
collapsed punctuation and number forms, so the order is part of the contract:
e.g. fractions must be read before the symbol table turns "/" into "每".
"""

import logging
import re
from dataclasses import dataclass
from typing import Callable

from article_narrator.constants import (
    DEFAULT_LANGUAGE,
    PAUSE_MARKER,
    RANGE_CONNECTOR,
    URL_PLACEHOLDER,
)
from article_narrator.numerals import cardinal, digits, formal

logger = logging.getLogger(__name__)

_HAN = r"[\u4e00-\u9fff]"
_LATIN = r"[A-Za-z]"
_NUM = r"\d+(?:\.\d+)?"
_RANGE_SEP = r"\s*-\s*"

_URL_RE = re.compile(r"(?:https?://|www\.)\S+", re.IGNORECASE)

# Units after which a range is a count of things, read as quantities.
COUNTABLE_UNITS = (
    "美元", "分钟", "小时", "公里", "厘米", "毫米", "公斤", "千克", "英寸",
    "个", "人", "名", "位", "家", "件", "种", "次", "项", "台", "辆", "款",
    "条", "只", "万", "亿", "千", "百", "元", "块", "倍", "天", "周", "月",
    "米", "克", "吨", "度",
)

# Acronyms spelled letter by letter, symbol words and brand respellings.
ABBREVIATIONS = {
    "API": "A.P.I",
    "URL": "U.R.L",
    "HTTP": "H.T.T.P",
    "JSON": "Jason",
    "HTML": "H.T.M.L",
    "CSS": "C.S.S",
    "JS": "J.S",
    "AI": "A.I",
    "OpenAI": "Open.A.I",
    "SDK": "S.D.K",
    "iOS": "i O S",
    "PSA": "P.S.A",
    "Jeep": "吉普",
    "EV": "电动车",
    "iPhone": "i Phone",
    "iPad": "i Pad",
    "macOS": "mac O S",
    "UI": "U.I",
    "GUI": "G.U.I",
    "CLI": "C.L.I",
    "SQL": "S.Q.L",
    "JPEG": "J.PEG",
    "PNG": "P.N.G",
    "PDF": "P.D.F",
    "ID": "I.D",
    "vs": "对阵",
    "etc": "等等",
    "i.e": "也就是说",
    "e.g": "举例来说",
    "DJI": "大疆",
    "Insta360": "Insta三六零",
    "Airbnb": "Air.B.N.B",
    "&": "和",
    "+": "加",
    "=": "等于",
    "@": "at",
    "~": "到",
    "/": "每",
}


@dataclass(frozen=True)
class NormalizationRule:
    name: str
    pattern: re.Pattern
    replacement: str | Callable[[re.Match], str]

    def apply(self, text: str) -> str:
        return self.pattern.sub(self.replacement, text)


def _rule(name: str, pattern: str, replacement) -> NormalizationRule:
    return NormalizationRule(name, re.compile(pattern), replacement)


def _joined(reader: Callable[[str], str]) -> Callable[[re.Match], str]:
    """Replacement reading both sides of a range with `reader`."""
    def replace(match: re.Match) -> str:
        return f"{reader(match.group(1))}{RANGE_CONNECTOR}{reader(match.group(2))}"
    return replace


def _percentage_range(match: re.Match) -> str:
    low, high = match.group(1), match.group(2)
    return f"百分之{cardinal(low)}{RANGE_CONNECTOR}{cardinal(high)}"


def _fraction(match: re.Match) -> str:
    numerator, denominator = match.group(1), match.group(2)
    return f"{cardinal(denominator)}分之{cardinal(numerator)}"


def _abbreviation_pattern() -> str:
    alternatives = []
    # Longest first so that a key never shadows a longer key sharing its prefix.
    for key in sorted(ABBREVIATIONS, key=len, reverse=True):
        escaped = re.escape(key)
        if key[0].isalnum():
            # Letter keys only match whole Latin tokens: "AI" must not hit "PAID".
            escaped = rf"(?<![A-Za-z]){escaped}(?![A-Za-z])"
        alternatives.append(escaped)
    return "|".join(alternatives)


def _abbreviation(match: re.Match) -> str:
    return ABBREVIATIONS[match.group(0)]


_UNITS = "|".join(COUNTABLE_UNITS)

DEFAULT_RULES = (
    _rule("strip_quotes", r"[“”\"「」『』]", ""),
    _rule("thousands_separators", r"(?<=\d),(?=\d{3}(?!\d))", ""),
    _rule("dash_variants", r"[‐‑‒–—―−－]", "-"),
    _rule("collapse_dashes", r"-{2,}", "-"),
    _rule("percentage_point_decimal", r"(\d+)\.(\d+)(?=\s*个?百分点)", r"\1点\2"),
    _rule(
        "percentage_range",
        rf"(?<![\d.])({_NUM})\s*[%％]?{_RANGE_SEP}({_NUM})\s*[%％]",
        _percentage_range,
    ),
    _rule("fraction", r"(?<![\d/])(\d+)/(\d+)(?![\d/])", _fraction),
    _rule("age_range", rf"(?<!\d)(\d{{2}}){_RANGE_SEP}(\d{{2}})(?!\d)(?=\s*周?岁)", _joined(formal)),
    _rule(
        "academic_year_range",
        rf"(?<!\d)(\d{{4}}){_RANGE_SEP}(\d{{2}})(?!\d)(?=\s*(?:学年|年代|年度|财年|赛季|年))",
        _joined(digits),
    ),
    _rule(
        "calendar_year_range",
        rf"(?<!\d)(\d{{4}}){_RANGE_SEP}(\d{{4}})(?!\d)(?=\s*(?:年代|学年|年))",
        _joined(digits),
    ),
    _rule(
        "conjoined_year",
        r"(?<!\d)(\d{4})(?=\s*[和与及或至、]\s*\d{4}\s*年)",
        lambda m: digits(m.group(1)),
    ),
    _rule("calendar_year", r"(?<!\d)(\d{4})(?!\d)(?=\s*年)", lambda m: digits(m.group(1))),
    _rule(
        "countable_unit_range",
        rf"(?<![\d.])({_NUM}){_RANGE_SEP}({_NUM})(?![\d.])(?=\s*(?:{_UNITS}))",
        _joined(cardinal),
    ),
    _rule(
        "duration_year_range",
        rf"(?<!\d)(\d{{1,3}}){_RANGE_SEP}(\d{{1,3}})(?!\d)(?=\s*多?年(?!代))",
        _joined(cardinal),
    ),
    _rule(
        "bare_range",
        rf"(?<![\d.])({_NUM}){_RANGE_SEP}({_NUM})(?![\d.])(?!\s*(?:学年|年))",
        rf"\1{RANGE_CONNECTOR}\2",
    ),
    _rule("abbreviations", _abbreviation_pattern(), _abbreviation),
    _rule("han_latin_boundary", rf"({_HAN})\s*(?={_LATIN})", r"\1" + PAUSE_MARKER),
    _rule("latin_han_boundary", rf"(?<={_LATIN})\s*({_HAN})", PAUSE_MARKER + r"\1"),
)


def is_default_language(language_hint: str | None) -> bool:
    """True when the hint selects the default (Chinese) locale. Empty means default."""
    if not language_hint or not language_hint.strip():
        return True
    return language_hint.strip().lower().startswith(DEFAULT_LANGUAGE)


class NormalizationRuleSet:
    """An ordered, immutable pipeline of normalization rules."""

    def __init__(self, rules: tuple = DEFAULT_RULES):
        self.rules = tuple(rules)

    def names(self) -> list[str]:
        return [rule.name for rule in self.rules]

    def normalize(self, text: str, language_hint: str = DEFAULT_LANGUAGE) -> str:
        """Return `text` rewritten for speech. Never raises; empty stays empty.

        Numeric and year rules are tuned for the default locale only, so any
        other language just gets its URLs replaced.
        """
        if not is_default_language(language_hint):
            return _URL_RE.sub(URL_PLACEHOLDER, text)

        for rule in self.rules:
            rewritten = rule.apply(text)
            if rewritten != text:
                logger.debug("Rule %s rewrote text", rule.name)
            text = rewritten
        return text


_DEFAULT_RULE_SET = NormalizationRuleSet()


def normalize(text: str, language_hint: str = DEFAULT_LANGUAGE) -> str:
    """Normalize `text` with the default rule set."""
    return _DEFAULT_RULE_SET.normalize(text, language_hint)
