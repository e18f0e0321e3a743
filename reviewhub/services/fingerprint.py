"""SimHash fingerprints for near-duplicate review detection."""
import hashlib
from collections import Counter

from .normalize import tokenize

FINGERPRINT_BITS = 64
_MASK = (1 << FINGERPRINT_BITS) - 1


def _token_hash(token):
    digest = hashlib.blake2b(token.encode('utf-8'), digest_size=FINGERPRINT_BITS // 8).digest()
    return int.from_bytes(digest, 'big')


def fingerprint(text):
    """Return the 64-bit SimHash of ``text``.

    Tokens are normalized words weighted by how often they occur. For every
    bit position the weight is added when the token hash has the bit set and
    subtracted otherwise; the fingerprint bit is 1 where the sum is positive.
    Texts that differ only in case or whitespace yield the same value.
    """
    weights = Counter(tokenize(text))
    if not weights:
        return 0
    vector = [0] * FINGERPRINT_BITS
    for token, weight in weights.items():
        h = _token_hash(token)
        for i in range(FINGERPRINT_BITS):
            if (h >> i) & 1:
                vector[i] += weight
            else:
                vector[i] -= weight
    value = 0
    for i, total in enumerate(vector):
        if total > 0:
            value |= 1 << i
    return value & _MASK


def hamming_distance(a, b):
    return bin((a ^ b) & _MASK).count('1')
