import re
import unicodedata

from unidecode import unidecode

_INVISIBLE_RE = re.compile(r'[\u200B-\u200F\u202A-\u202E\u2060-\u206F\uFEFF]')
_WORD_RE = re.compile(r"[a-z0-9]+(?:'[a-z]+)?")


def strip_invisible(text):
    """NFKC-normalize and drop zero-width / bidi control characters."""
    text = unicodedata.normalize('NFKC', text)
    return _INVISIBLE_RE.sub('', text)


def fold(text):
    """Transliterated, case-folded form used for comparisons (never for display)."""
    return unidecode(strip_invisible(text)).casefold()


def tokenize(text):
    return _WORD_RE.findall(fold(text))
