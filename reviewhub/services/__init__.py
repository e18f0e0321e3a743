from .errors import (
    ReviewPipelineError, ReviewValidationError, UnknownBroker, CaptchaRejected,
    CaptchaServiceUnavailable, RateLimitExceeded, PersistenceError, ReviewNotFound,
    InvalidTransition, ModerationConflict,
)
from .pipeline import ReviewPipeline, init_pipeline, get_pipeline
from .submission import ReviewCandidate, SubmissionResult
