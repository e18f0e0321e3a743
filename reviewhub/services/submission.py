"""Entry point for a single review submission."""
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional, Tuple

from ..models.review import Review, ReviewStatus
from .errors import CaptchaRejected, RateLimitExceeded, ReviewValidationError, UnknownBroker
from .fingerprint import fingerprint
from .moderation import initial_status

logger = logging.getLogger(__name__)

MIN_BODY_LENGTH = 10
MAX_BODY_LENGTH = 1000
RATE_LIMIT_WINDOW = timedelta(hours=24)


@dataclass(frozen=True)
class ReviewCandidate:
    """What the user submitted, frozen at submit time."""
    broker_id: int
    author_id: int
    rating: int
    body_text: str
    captcha_token: str
    remote_ip: Optional[str] = None

    def validate(self):
        rating = self.rating
        if isinstance(rating, bool) or not isinstance(rating, int) or not 1 <= rating <= 5:
            raise ReviewValidationError('rating', 'Please provide a rating between 1 and 5 stars.')
        body = (self.body_text or '').strip()
        if len(body) < MIN_BODY_LENGTH:
            raise ReviewValidationError('body', f'Review must be at least {MIN_BODY_LENGTH} characters long.')
        if len(body) > MAX_BODY_LENGTH:
            raise ReviewValidationError('body', f'Review must be at most {MAX_BODY_LENGTH} characters long.')
        if not self.captcha_token:
            raise ReviewValidationError('captcha_token', 'Please complete the security verification.')


@dataclass(frozen=True)
class SubmissionResult:
    review_id: int
    status: ReviewStatus
    reasons: Tuple[str, ...] = ()

    def to_dict(self):
        return {'ok': True, 'review_id': self.review_id, 'status': self.status.value}


class SubmissionOrchestrator:
    """Runs the pipeline stages in order; nothing is written until all of them pass."""

    def __init__(self, store, captcha, content_filter, detector, cache, severity_threshold=3,
                 manual_review_new_authors=False, rate_limit_per_broker=3):
        self.store = store
        self.captcha = captcha
        self.content_filter = content_filter
        self.detector = detector
        self.cache = cache
        self.severity_threshold = severity_threshold
        self.manual_review_new_authors = manual_review_new_authors
        self.rate_limit_per_broker = rate_limit_per_broker

    def submit(self, candidate):
        candidate.validate()
        if self.store.get_active_broker(candidate.broker_id) is None:
            raise UnknownBroker()
        if not self.captcha.verify(candidate.captcha_token, remote_ip=candidate.remote_ip):
            raise CaptchaRejected()

        filtered = self.content_filter.sanitize(candidate.body_text)
        content_flagged = filtered.exceeds(self.severity_threshold)
        review_fingerprint = fingerprint(filtered.clean)
        reasons = list(filtered.reasons)
        if content_flagged:
            reasons.append('severity_over_threshold')

        with self.store.serialized(candidate.broker_id):
            now = datetime.utcnow()
            self._check_rate_limit(candidate, now)
            match = self.detector.find_near_duplicate(candidate.broker_id, review_fingerprint,
                                                      text=filtered.clean, now=now)
            needs_manual_review = (self.manual_review_new_authors
                                   and not self.store.has_approved_review(candidate.author_id))
            status = initial_status(content_flagged, match is not None, needs_manual_review)
            if match is not None:
                reasons.append(f'near_duplicate:{match.review_id}')
                if match.created_at >= now:
                    now = match.created_at + timedelta(microseconds=1)
            elif needs_manual_review and status == ReviewStatus.PENDING:
                reasons.append('manual_review:new_author')

            review = Review(
                broker_id=candidate.broker_id,
                author_id=candidate.author_id,
                rating=candidate.rating,
                body=filtered.clean,
                status=status,
                filter_severity=filtered.severity,
                flag_reasons=reasons,
                created_at=now,
                duplicate_of_id=match.review_id if match is not None else None,
            )
            review.fingerprint = review_fingerprint
            review_id = self.store.create(review, ip_address=candidate.remote_ip)

        logger.info("Review %s for broker %s by author %s landed as %s (%s)", review_id,
                    candidate.broker_id, candidate.author_id, status.value, ', '.join(reasons) or 'clean')
        if status == ReviewStatus.APPROVED:
            self.cache.invalidate(candidate.broker_id)
        return SubmissionResult(review_id=review_id, status=status, reasons=tuple(reasons))

    def _check_rate_limit(self, candidate, now):
        if not self.rate_limit_per_broker:
            return
        count = self.store.count_recent_by_author(candidate.author_id, candidate.broker_id,
                                                  now - RATE_LIMIT_WINDOW)
        if count >= self.rate_limit_per_broker:
            logger.info("Author %s hit the review limit for broker %s (%d in 24h)",
                        candidate.author_id, candidate.broker_id, count)
            raise RateLimitExceeded(self.rate_limit_per_broker, count)
