from reviewhub.services.fingerprint import FINGERPRINT_BITS, fingerprint, hamming_distance
from reviewhub.services.normalize import fold, strip_invisible, tokenize

from conftest import LONG_REVIEW, REVIEW_TEXTS


def test_fingerprint_ignores_case_and_whitespace():
    a = fingerprint("Great  broker,\nFAST withdrawals")
    b = fingerprint("great broker, fast   withdrawals")
    assert a == b


def test_fingerprint_fits_in_64_bits():
    value = fingerprint(LONG_REVIEW)
    assert 0 <= value < 2 ** FINGERPRINT_BITS


def test_fingerprint_of_text_without_words_is_zero():
    assert fingerprint("") == 0
    assert fingerprint("!!! ... ???") == 0


def test_one_word_change_stays_close():
    """Swapping a single word in a long review moves only a few bits."""
    edited = LONG_REVIEW.replace("frustrating", "annoying")
    assert edited != LONG_REVIEW
    assert hamming_distance(fingerprint(LONG_REVIEW), fingerprint(edited)) <= 10


def test_unrelated_reviews_are_far_apart():
    prints = [fingerprint(t) for t in REVIEW_TEXTS]
    for i, a in enumerate(prints):
        for b in prints[i + 1:]:
            assert hamming_distance(a, b) > 10


def test_hamming_distance():
    assert hamming_distance(0, 0) == 0
    assert hamming_distance(0b1011, 0b0001) == 2
    assert hamming_distance(0, 2 ** 64 - 1) == 64


def test_normalization_helpers():
    assert strip_invisible("sc\u200bam\ufeff") == "scam"
    assert fold("Ĉafé BROKER") == "cafe broker"
    assert tokenize("Don't trust; 100% sure!") == ["don't", "trust", "100", "sure"]
