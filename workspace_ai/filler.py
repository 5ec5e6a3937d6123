"""
Filler phrases: politeness and "also"-style words that are never names.
"""

import re

FILLER_PHRASES = frozenset({
    "as well", "too", "also", "please", "thanks", "thank you", "pls", "thx", "kindly",
})

_TRAILING_FILLER = re.compile(
    r'[\s,]*\b(?:as well|too|also|please|thanks|thank you|pls|thx)\s*[.!]*\s*$',
    re.IGNORECASE,
)
_LEADING_FILLER = re.compile(r'^\s*(?:please|pls|kindly)\b[\s,]*', re.IGNORECASE)
_TRAILING_MARKS = re.compile(r'\s*[!?]+\s*$')


def strip_filler(text: str) -> str:
    """
    Remove leading and trailing filler phrases, repeatedly.

    "please move a.txt to new workspace as well, thanks" -> "move a.txt to new workspace"
    """
    text = (text or "").strip()
    while True:
        previous = text
        text = _TRAILING_MARKS.sub("", text)
        text = _TRAILING_FILLER.sub("", text)
        text = _LEADING_FILLER.sub("", text)
        text = text.strip()
        if text == previous:
            return text


def is_filler(phrase: str | None) -> bool:
    """True if ``phrase`` is made only of filler words."""
    cleaned = re.sub(r'[^\w\s]', ' ', (phrase or "").lower())
    cleaned = " ".join(cleaned.split())
    if not cleaned:
        return False
    if cleaned in FILLER_PHRASES:
        return True
    return strip_filler(cleaned) == ""
