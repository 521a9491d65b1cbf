"""
Card and Pokemon name normalization.

Every name extracted from a log line goes through clean_name() before it is
used as a key, so counting and classification agree on spelling.
"""
import re


_BRACKETED_RE = re.compile(r"\s*\([^()]*\)")
_LEADING_UNDERSCORE_CODE_RE = re.compile(r"^[A-Za-z0-9]+_\d+\s+")
_TRAILING_UNDERSCORE_CODE_RE = re.compile(r"\s+[A-Za-z0-9]+_\d+$")
# Runs of set codes go in one step; a name made only of set codes is not a name
_SET_NUMBERS_ONLY_RE = re.compile(r"^(?:[A-Z]{2,4}\s+\d+\s*)+$")
_TRAILING_SET_NUMBER_RE = re.compile(r"(?:\s+[A-Z]{2,4}\s+\d+)+$")
_LEADING_SET_NUMBER_RE = re.compile(r"^(?:[A-Z]{2,4}\s+\d+\s+)+")
_TRAILING_PUNCT_RE = re.compile(r"[\s.,;:]+$")
_WHITESPACE_RE = re.compile(r"\s+")

_CARD_ENTRY_RE = re.compile(r"^(.*?)\s*\((\d+)x\)\s*$")

_RULES = (
    _BRACKETED_RE,
    _LEADING_UNDERSCORE_CODE_RE,
    _TRAILING_UNDERSCORE_CODE_RE,
    _SET_NUMBERS_ONLY_RE,
    _TRAILING_SET_NUMBER_RE,
    _LEADING_SET_NUMBER_RE,
    _TRAILING_PUNCT_RE,
)


def clean_name(raw) -> str:
    """
    Normalize a raw token into a canonical card name.

    Strips set codes (sv10_185, PAL 123), bracketed asides such as a leading
    (sv7_28) or a trailing (3x), trailing punctuation and extra whitespace.
    Returns "" for anything that is not a string.
    """
    if not isinstance(raw, str):
        return ""

    name = _WHITESPACE_RE.sub(" ", raw).strip()
    # Apply until nothing changes so that clean_name(clean_name(x)) == clean_name(x)
    while True:
        previous = name
        for rule in _RULES:
            name = rule.sub("", name)
        name = _WHITESPACE_RE.sub(" ", name).strip()
        if name == previous:
            return name


def split_card_entry(entry) -> tuple[str, int]:
    """Split a stored "Name (Nx)" entry into (clean name, N)."""
    if not isinstance(entry, str):
        return "", 0
    match = _CARD_ENTRY_RE.match(entry.strip())
    if match:
        return clean_name(match.group(1)), int(match.group(2))
    return clean_name(entry), 1


def format_card_entry(name: str, count: int) -> str:
    return f"{name} ({count}x)"
