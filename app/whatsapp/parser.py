"""
Quantity parser — understands the shorthand sellers type for WLD amounts.

Parses the formats users commonly enter in the trade form or paste
from chat:

  - "1000"              -> 1000
  - "1,000"             -> 1000
  - "12.5"              -> 12.5
  - "1.5k" or "1.5K"    -> 1500
  - "250 WLD"           -> 250
  - "two hundred"       -> 200
"""

import re
from decimal import Decimal, InvalidOperation


MULTIPLIERS = {
    "k": Decimal("1_000"),
    "m": Decimal("1_000_000"),
}

# Matches patterns like: 1,000 | 12.5 | 1.5k | .5
QUANTITY_PATTERN = re.compile(
    r"^((?:[0-9]{1,3}(?:,[0-9]{3})+|[0-9]+)?(?:\.[0-9]+)?)([km])?$",
    re.IGNORECASE,
)

UNIT_SUFFIX = re.compile(r"\s*wld$", re.IGNORECASE)

# ── Word-form number support ─────────────────────────────────────────────

_WORD_UNITS = {
    "zero": 0, "one": 1, "two": 2, "three": 3, "four": 4, "five": 5,
    "six": 6, "seven": 7, "eight": 8, "nine": 9, "ten": 10,
    "eleven": 11, "twelve": 12, "thirteen": 13, "fourteen": 14,
    "fifteen": 15, "sixteen": 16, "seventeen": 17, "eighteen": 18,
    "nineteen": 19, "twenty": 20, "thirty": 30, "forty": 40,
    "fifty": 50, "sixty": 60, "seventy": 70, "eighty": 80, "ninety": 90,
}

_WORD_SCALES = {
    "hundred": Decimal("100"),
    "thousand": Decimal("1_000"),
    "million": Decimal("1_000_000"),
}


def _parse_word_number(text: str) -> Decimal | None:
    """Parse an English word-form number like 'two hundred fifty'."""
    words = [w for w in text.strip().lower().replace("-", " ").split() if w != "and"]
    if not words:
        return None

    current = Decimal("0")
    result = Decimal("0")

    for word in words:
        if word in _WORD_UNITS:
            current += Decimal(_WORD_UNITS[word])
        elif word == "hundred":
            current = (current or Decimal("1")) * _WORD_SCALES["hundred"]
        elif word in ("thousand", "million"):
            result += (current or Decimal("1")) * _WORD_SCALES[word]
            current = Decimal("0")
        else:
            return None

    result += current
    return result if result > 0 else None


def parse_quantity(value: object) -> Decimal | None:
    """
    Parse a user-entered quantity into a positive, finite Decimal.

    Accepts numbers or text. Returns None for absent, non-numeric,
    non-finite, zero or negative input.
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, (int, float, Decimal)):
        try:
            quantity = Decimal(str(value))
        except InvalidOperation:
            return None
        if not quantity.is_finite() or quantity <= 0:
            return None
        return quantity

    if not isinstance(value, str):
        return None

    text = UNIT_SUFFIX.sub("", value.strip())
    cleaned = text.replace(" ", "")
    if not cleaned:
        return None

    match = QUANTITY_PATTERN.match(cleaned)
    if match and match.group(1) not in ("", "."):
        try:
            quantity = Decimal(match.group(1).replace(",", ""))
        except InvalidOperation:
            return None

        suffix = match.group(2)
        if suffix:
            quantity *= MULTIPLIERS[suffix.lower()]

        return quantity if quantity > 0 else None

    # Fallback: try word-form parsing
    return _parse_word_number(text)
