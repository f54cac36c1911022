"""Chinese numeral readings used by the normalization rules.

Three readings are used:
  cardinal("2025")   → "二千零二十五"   (quantities)
  digits("2025")     → "二零二五"       (calendar years, read one digit at a time)
  formal("18")       → "壹拾捌"         (大写 numerals, used for age ranges)
"""

import re

DIGITS = "零一二三四五六七八九"
FORMAL_DIGITS = "零壹贰叁肆伍陆柒捌玖"

_SMALL_UNITS = ("", "十", "百", "千")
_FORMAL_SMALL_UNITS = ("", "拾", "佰", "仟")
_BIG_UNITS = ("", "万", "亿", "万亿")

# Beyond 万亿 the cardinal reading stops being useful; read digit by digit.
_MAX_CARDINAL_DIGITS = 16

_NUMBER_RE = re.compile(r"^(\d+)(?:\.(\d+))?$")


def digits(value: str) -> str:
    """Read each ASCII digit as its own numeral word; other characters are dropped."""
    return "".join(DIGITS[int(ch)] for ch in value if ch.isdigit())


def _section(n: int, numerals: str, units: tuple) -> str:
    """Read 0 < n < 10000 with zeros collapsed to a single 零 between digits."""
    result = ""
    pending_zero = False
    for pos in range(3, -1, -1):
        d = n // 10 ** pos % 10
        if d == 0:
            if result:
                pending_zero = True
            continue
        if pending_zero:
            result += numerals[0]
            pending_zero = False
        result += numerals[d] + units[pos]
    return result


def _integer(value: str, numerals: str, units: tuple) -> str:
    if len(value) > 1 and value.startswith("0"):
        # Zero-padded runs ("007") are codes, not quantities.
        return "".join(numerals[int(ch)] for ch in value)
    if len(value) > _MAX_CARDINAL_DIGITS:
        return "".join(numerals[int(ch)] for ch in value)

    n = int(value)
    if n == 0:
        return numerals[0]

    sections = []
    while n:
        sections.append(n % 10000)
        n //= 10000

    out = ""
    skipped = False
    for idx in range(len(sections) - 1, -1, -1):
        sec = sections[idx]
        if sec == 0:
            skipped = True
            continue
        if out and (skipped or sec < 1000):
            out += numerals[0]
        out += _section(sec, numerals, units) + _BIG_UNITS[idx]
        skipped = False
    return out


def _read(value: str, numerals: str, units: tuple) -> str:
    match = _NUMBER_RE.match(value.strip())
    if not match:
        return value
    whole, fraction = match.groups()
    text = _integer(whole, numerals, units)
    if fraction:
        text += "点" + "".join(numerals[int(ch)] for ch in fraction)
    return text


def cardinal(value: str) -> str:
    """Read a decimal number string as a spoken quantity.

    "10" → "十", "25" → "二十五", "10005" → "一万零五", "2.5" → "二点五".
    Anything that is not a plain number is returned unchanged.
    """
    text = _read(value, DIGITS, _SMALL_UNITS)
    # 一十 → 十 only at the start: 十五, 十万, but 一百一十.
    if text.startswith("一十"):
        text = text[1:]
    return text


def formal(value: str) -> str:
    """Read a number with the formal (大写) numeral set: "25" → "贰拾伍"."""
    return _read(value, FORMAL_DIGITS, _FORMAL_SMALL_UNITS)
