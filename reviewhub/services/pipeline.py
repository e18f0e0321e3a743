from flask import current_app

from .cache import CacheInvalidationCoordinator, build_backend
from .captcha import CaptchaVerifier
from .content_filter import ContentFilter
from .duplicates import DuplicateDetector
from .moderation import ModerationService
from .store import ReviewStore
from .submission import SubmissionOrchestrator


class ReviewPipeline:
    """Operations the site and the back office call."""

    def __init__(self, store, captcha, content_filter, detector, cache, per_page=10,
                 severity_threshold=3, manual_review_new_authors=False, rate_limit_per_broker=3):
        self.store = store
        self.cache = cache
        self.per_page = per_page
        self.submissions = SubmissionOrchestrator(
            store, captcha, content_filter, detector, cache,
            severity_threshold=severity_threshold,
            manual_review_new_authors=manual_review_new_authors,
            rate_limit_per_broker=rate_limit_per_broker,
        )
        self.moderation = ModerationService(store, cache)

    def submit_review(self, candidate):
        return self.submissions.submit(candidate)

    def list_approved_reviews(self, broker_id, page=1, per_page=None):
        return self.cache.list_approved(broker_id, page=max(1, page), per_page=per_page or self.per_page)

    def get_aggregate(self, broker_id):
        return self.cache.get_aggregate(broker_id)

    def moderate(self, review_id, new_status, notes=None, expected_status=None, user_id=None,
                 ip_address=None):
        return self.moderation.moderate(review_id, new_status, notes=notes, expected_status=expected_status,
                                        user_id=user_id, ip_address=ip_address)

    def rebuild_aggregates(self):
        broker_ids = self.store.broker_ids()
        for broker_id in broker_ids:
            self.cache.invalidate(broker_id)
        return len(broker_ids)


def init_pipeline(app, captcha=None, cache_backend=None, content_filter=None):
    config = app.config
    store = ReviewStore()
    cache = CacheInvalidationCoordinator(
        cache_backend or build_backend(config),
        store,
        ttl=config['CACHE_TTL_SECONDS'],
        eager=config['EAGER_AGGREGATE_REFRESH'],
    )
    pipeline = ReviewPipeline(
        store=store,
        captcha=captcha or CaptchaVerifier.from_config(config),
        content_filter=content_filter or ContentFilter(extra_terms_file=config.get('PROFANITY_EXTRA_TERMS_FILE')),
        detector=DuplicateDetector(store, window_days=config['DUPLICATE_WINDOW_DAYS'],
                                   threshold=config['DUPLICATE_HAMMING_THRESHOLD'],
                                   candidate_radius=config['DUPLICATE_CANDIDATE_RADIUS'],
                                   min_similarity=config['DUPLICATE_MIN_JACCARD']),
        cache=cache,
        per_page=config['REVIEWS_PER_PAGE'],
        severity_threshold=config['PROFANITY_SEVERITY_THRESHOLD'],
        manual_review_new_authors=config['MANUAL_REVIEW_NEW_AUTHORS'],
        rate_limit_per_broker=config['RATE_LIMIT_PER_BROKER'],
    )
    app.extensions['review_pipeline'] = pipeline
    return pipeline


def get_pipeline():
    return current_app.extensions['review_pipeline']
