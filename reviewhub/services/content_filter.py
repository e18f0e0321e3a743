"""PII redaction and profanity scoring for review bodies.

Pure functions only: no I/O after construction, same input gives the same
output, so the filter can run in any worker thread.
"""
import logging
import re
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from .normalize import fold, strip_invisible

logger = logging.getLogger(__name__)

SEVERE = 5
PROFANITY = 2
WATCHLIST = 1

# Base list; deployments extend it with PROFANITY_EXTRA_TERMS_FILE
DEFAULT_TERMS: Dict[str, int] = {
    'cunt': SEVERE,
    'motherfucker': SEVERE,
    'retard': SEVERE,
    'fuck': PROFANITY,
    'shit': PROFANITY,
    'bitch': PROFANITY,
    'asshole': PROFANITY,
    'bastard': PROFANITY,
    'dick': PROFANITY,
    'bullshit': PROFANITY,
    # finance-specific accusations; worth a moderator's look in bulk
    'scam': WATCHLIST,
    'fraud': WATCHLIST,
    'ponzi': WATCHLIST,
    'pyramid': WATCHLIST,
    'steal': WATCHLIST,
    'thief': WATCHLIST,
    'criminal': WATCHLIST,
}

_TIER_NAMES = {SEVERE: 'severe', PROFANITY: 'profanity', WATCHLIST: 'watchlist'}

LEET_MAP = str.maketrans({
    '0': 'o', '1': 'i', '3': 'e', '4': 'a', '5': 's', '7': 't', '8': 'b',
    '@': 'a', '$': 's', '!': 'i', '+': 't',
})

_LETTERS_RE = re.compile(r'[a-z]+')
_REPEAT_RE = re.compile(r'(.)\1+')
_SUFFIXES = ('ers', 'ing', 'er', 'ed', 'es', 's', 'y')

# Order matters: wider patterns first so a card number is not reported as a phone.
# Every pattern needs a digit or "@", placeholders contain neither.
PII_PATTERNS: Tuple[Tuple[str, re.Pattern, str], ...] = (
    ('email', re.compile(r'\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b'), '[email removed]'),
    ('card', re.compile(r'\b(?:\d[ -]?){12,18}\d\b'), '[card number removed]'),
    ('ssn', re.compile(r'\b\d{3}-\d{2}-\d{4}\b'), '[id number removed]'),
    ('phone', re.compile(r'\+\d[\d\s().-]{7,}\d'), '[phone removed]'),
    ('phone', re.compile(r'(?:\(\d{3}\)|\b\d{3})[\s.-]?\d{3}[\s.-]?\d{4}\b'), '[phone removed]'),
    ('account', re.compile(r'\b\d{8,}\b'), '[account number removed]'),
    ('address', re.compile(
        r'\b\d{1,5}\s+(?:[A-Za-z0-9]+\s+){0,4}'
        r'(?:Street|St|Avenue|Ave|Road|Rd|Boulevard|Blvd|Lane|Ln|Drive|Dr)\b\.?',
        re.IGNORECASE), '[address removed]'),
)


@dataclass(frozen=True)
class FilterFlag:
    kind: str       # 'pii' or 'profanity'
    category: str   # email, phone, ... / severe, profanity, watchlist
    weight: int = 0
    term: Optional[str] = None

    @property
    def reason(self):
        return f'{self.kind}:{self.category}'


@dataclass(frozen=True)
class FilterResult:
    clean: str
    flags: Tuple[FilterFlag, ...]
    severity: int

    def exceeds(self, threshold):
        return self.severity > threshold

    @property
    def pii_categories(self):
        return sorted({f.category for f in self.flags if f.kind == 'pii'})

    @property
    def reasons(self):
        seen = []
        for flag in self.flags:
            if flag.reason not in seen:
                seen.append(flag.reason)
        return seen


def _collapse(word):
    return _REPEAT_RE.sub(r'\1', word)


def _word_forms(word):
    forms = {word}
    for suffix in _SUFFIXES:
        if word.endswith(suffix) and len(word) - len(suffix) >= 3:
            forms.add(word[:-len(suffix)])
    return forms


def load_terms_file(path):
    """Read ``weight:term`` (or bare ``term``) lines; ``#`` starts a comment."""
    terms = {}
    with open(path, 'r', encoding='utf-8') as f:
        for line in f:
            t = line.split('#', 1)[0].strip()
            if not t:
                continue
            if ':' in t:
                weight, term = t.split(':', 1)
                terms[term.strip()] = int(weight)
            else:
                terms[t] = PROFANITY
    return terms


class ContentFilter:
    def __init__(self, terms=None, extra_terms_file=None):
        merged = dict(DEFAULT_TERMS if terms is None else terms)
        if extra_terms_file:
            extra = load_terms_file(extra_terms_file)
            logger.info("Loaded %d extra filter terms from %s", len(extra), extra_terms_file)
            merged.update(extra)
        # matching happens on collapsed forms, so "asshole" is stored as "ashole"
        self._terms = {_collapse(fold(term).translate(LEET_MAP)): weight for term, weight in merged.items()}

    def redact_pii(self, text):
        flags = []
        while True:
            before = text
            for category, pattern, placeholder in PII_PATTERNS:
                text, count = pattern.subn(placeholder, text)
                flags.extend(FilterFlag('pii', category) for _ in range(count))
            if text == before:
                return text, flags

    def score_profanity(self, text):
        flags = []
        detection = fold(text).translate(LEET_MAP)
        for raw_word in _LETTERS_RE.findall(detection):
            word = _collapse(raw_word)
            for form in _word_forms(word):
                weight = self._terms.get(form)
                if weight:
                    flags.append(FilterFlag('profanity', _TIER_NAMES.get(weight, 'custom'), weight, form))
                    break
        return flags

    def sanitize(self, text):
        clean = strip_invisible(text).strip()
        clean, pii_flags = self.redact_pii(clean)
        profanity_flags = self.score_profanity(clean)
        severity = sum(f.weight for f in profanity_flags)
        return FilterResult(clean=clean, flags=tuple(pii_flags + profanity_flags), severity=severity)


_default_filter = None


def sanitize(text):
    global _default_filter
    if _default_filter is None:
        _default_filter = ContentFilter()
    return _default_filter.sanitize(text)
