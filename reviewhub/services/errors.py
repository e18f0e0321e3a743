"""Error taxonomy of the review pipeline.

Every error belongs to one of two categories the UI must keep apart:
``input`` (the submission or action was refused, fix and resubmit) and
``unavailable`` (something on our side failed, retry later).
"""

INPUT = 'input'
UNAVAILABLE = 'unavailable'


class ReviewPipelineError(Exception):
    code = 'review_error'
    category = INPUT
    http_status = 400
    default_message = 'The review could not be processed.'

    def __init__(self, message=None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self):
        return {
            'ok': False,
            'error': self.code,
            'category': self.category,
            'message': self.message,
        }


class ReviewValidationError(ReviewPipelineError):
    code = 'validation_error'
    http_status = 422

    def __init__(self, field, message):
        self.field = field
        super().__init__(message)

    def to_dict(self):
        data = super().to_dict()
        data['field'] = self.field
        return data


class UnknownBroker(ReviewPipelineError):
    code = 'unknown_broker'
    http_status = 404
    default_message = 'Unknown broker.'


class CaptchaRejected(ReviewPipelineError):
    code = 'captcha_rejected'
    http_status = 400
    default_message = 'Security verification failed. Please complete a new challenge and try again.'


class RateLimitExceeded(ReviewPipelineError):
    code = 'rate_limited'
    http_status = 429

    def __init__(self, limit, count):
        self.limit = limit
        self.count = count
        super().__init__(
            f'You have reached the maximum of {limit} reviews per broker in 24 hours.'
        )


class CaptchaServiceUnavailable(ReviewPipelineError):
    code = 'captcha_unavailable'
    category = UNAVAILABLE
    http_status = 503
    default_message = 'Security verification is temporarily unavailable. Please try again later.'


class PersistenceError(ReviewPipelineError):
    code = 'persistence_error'
    category = UNAVAILABLE
    http_status = 503
    default_message = 'Something went wrong on our side. Please try again.'


class ReviewNotFound(ReviewPipelineError):
    code = 'review_not_found'
    http_status = 404
    default_message = 'Review not found.'


class InvalidTransition(ReviewPipelineError):
    code = 'invalid_transition'
    http_status = 409

    def __init__(self, current_status, requested_status):
        self.current_status = current_status
        self.requested_status = requested_status
        super().__init__(
            f'A {current_status.value} review cannot be moved to {requested_status.value}.'
        )

    def to_dict(self):
        data = super().to_dict()
        data['current_status'] = self.current_status.value
        return data


class ModerationConflict(ReviewPipelineError):
    """The review changed since the moderator loaded it."""
    code = 'moderation_conflict'
    http_status = 409

    def __init__(self, review):
        self.review = review
        self.current_status = review.status
        super().__init__(
            f'Review {review.id} is now {review.status.value}; reload it before moderating.'
        )

    def to_dict(self):
        data = super().to_dict()
        data['current_status'] = self.current_status.value
        data['review'] = self.review.to_dict(include_moderation=True)
        return data
