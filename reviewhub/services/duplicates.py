import logging
from dataclasses import dataclass
from datetime import datetime, timedelta

from .fingerprint import hamming_distance
from .normalize import tokenize

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NearDuplicate:
    review_id: int
    distance: int
    created_at: datetime


def jaccard_similarity(a, b):
    union = a | b
    if not union:
        return 0.0
    return len(a & b) / len(union)


class DuplicateDetector:
    """Similarity search over the broker's recent fingerprints.

    Not an exact lookup: anything within ``threshold`` bits counts, and a
    paraphrase near the boundary may be flagged; flagged reviews go to a
    moderator, nothing is dropped. A short review swings many bits for every
    edited word, so candidates up to ``candidate_radius`` bits away are also
    accepted when their word sets overlap by at least ``min_similarity``.
    Callers must hold the broker's critical section
    (``ReviewStore.serialized``) between this check and the write.
    """

    def __init__(self, store, window_days=30, threshold=10, candidate_radius=24, min_similarity=0.6):
        self.store = store
        self.window = timedelta(days=window_days)
        self.threshold = threshold
        self.candidate_radius = max(candidate_radius, threshold)
        self.min_similarity = min_similarity

    def _same_wording(self, tokens, body):
        return jaccard_similarity(tokens, set(tokenize(body))) >= self.min_similarity

    def find_near_duplicate(self, broker_id, fingerprint, text=None, now=None):
        now = now or datetime.utcnow()
        tokens = set(tokenize(text)) if text is not None else None
        best = None
        for review_id, other, created_at, body in self.store.recent_fingerprints(broker_id, now - self.window):
            distance = hamming_distance(fingerprint, other)
            if distance > self.threshold:
                if tokens is None or distance > self.candidate_radius:
                    continue
                if not self._same_wording(tokens, body):
                    continue
            # rows come oldest first, so ties keep the earliest review
            if best is None or distance < best.distance:
                best = NearDuplicate(review_id, distance, created_at)
        if best is not None:
            logger.info("Broker %s: fingerprint %016x is %d bits from review %s",
                        broker_id, fingerprint, best.distance, best.review_id)
        return best
