"""
Term normalization.

Turns raw query strings into comparable library keys:
case-folded, accents kept, punctuation stripped, whitespace collapsed.
"""
import re
import unicodedata

MIN_TERM_LENGTH = 2

# Anything that is not a word character, whitespace, hyphen or period.
# \w is Unicode-aware, so accented letters are kept.
_STRIP_RE = re.compile(r"[^\w\s.\-]")
_SPACE_RE = re.compile(r"\s+")


def normalize(raw: str) -> str:
    """
    Canonicalize a raw query string into a library key.

    Idempotent: normalize(normalize(s)) == normalize(s).
    """
    if not raw:
        return ""
    # NFC first so "e" + combining accent compares equal to "é";
    # casefold can expand characters (ß -> ss), so compose again afterwards.
    text = unicodedata.normalize("NFC", raw)
    text = unicodedata.normalize("NFC", text.casefold())
    text = _STRIP_RE.sub("", text)
    text = _SPACE_RE.sub(" ", text)
    return text.strip()


def extract_words(query: str) -> list[str]:
    """Split a query on whitespace and normalize each token, dropping short ones."""
    words = []
    for token in query.split():
        word = normalize(token)
        if len(word) >= MIN_TERM_LENGTH:
            words.append(word)
    return words


def is_learnable(query: str) -> bool:
    """True when a query normalizes to something long enough to track."""
    return len(normalize(query)) >= MIN_TERM_LENGTH
