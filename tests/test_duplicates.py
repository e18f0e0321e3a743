from datetime import datetime, timedelta
from unittest import mock

from reviewhub.services.duplicates import DuplicateDetector, jaccard_similarity

NOW = datetime(2026, 5, 1, 12, 0)


def _detector(rows, **kwargs):
    store = mock.Mock()
    store.recent_fingerprints.return_value = rows
    return DuplicateDetector(store, **kwargs), store


def test_close_fingerprint_matches_without_text():
    detector, store = _detector([(1, 0b1111, NOW - timedelta(days=1), 'anything')])
    match = detector.find_near_duplicate(5, 0b0000, now=NOW)
    assert match.review_id == 1
    assert match.distance == 4
    store.recent_fingerprints.assert_called_once_with(5, NOW - timedelta(days=30))


def test_wider_distance_needs_shared_wording():
    """Fifteen bits apart: a match only when the word sets overlap."""
    far = (1 << 15) - 1
    rows = [
        (1, far, NOW - timedelta(days=2), 'spreads were tight and support answered fast'),
        (2, far, NOW - timedelta(days=1), 'completely different words about mobile charts'),
    ]
    detector, _ = _detector(rows)
    match = detector.find_near_duplicate(5, 0, text='spreads were tight and support replied fast', now=NOW)
    assert match.review_id == 1
    assert match.distance == 15

    detector, _ = _detector(rows[1:])
    assert detector.find_near_duplicate(5, 0, text='spreads were tight and support replied fast',
                                        now=NOW) is None


def test_outside_candidate_radius_never_matches():
    detector, _ = _detector([(1, (1 << 30) - 1, NOW, 'same words here')], candidate_radius=24)
    assert detector.find_near_duplicate(5, 0, text='same words here', now=NOW) is None


def test_closest_match_wins_and_ties_keep_the_earliest():
    rows = [
        (1, 0b111, NOW - timedelta(days=3), 'a'),
        (2, 0b1, NOW - timedelta(days=2), 'b'),
        (3, 0b10, NOW - timedelta(days=1), 'c'),
    ]
    detector, _ = _detector(rows)
    assert detector.find_near_duplicate(5, 0, now=NOW).review_id == 2


def test_jaccard_similarity():
    assert jaccard_similarity({'a', 'b'}, {'a', 'b'}) == 1.0
    assert jaccard_similarity({'a', 'b', 'c'}, {'a', 'b', 'd'}) == 0.5
    assert jaccard_similarity(set(), set()) == 0.0
