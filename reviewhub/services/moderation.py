"""Review lifecycle: automatic routing at submission and admin transitions."""
import logging
from dataclasses import dataclass

from ..models.review import Review, ReviewStatus
from .errors import InvalidTransition, ModerationConflict

logger = logging.getLogger(__name__)

# Moves an admin may make. Rejected is terminal.
ADMIN_TRANSITIONS = {
    ReviewStatus.PENDING: {ReviewStatus.APPROVED, ReviewStatus.REJECTED, ReviewStatus.FLAGGED},
    ReviewStatus.FLAGGED: {ReviewStatus.APPROVED, ReviewStatus.REJECTED},
    ReviewStatus.APPROVED: {ReviewStatus.FLAGGED},
    ReviewStatus.REJECTED: set(),
}


def initial_status(content_flagged, near_duplicate, needs_manual_review):
    """Where a freshly submitted review lands. Flag conditions win over everything."""
    if content_flagged or near_duplicate:
        return ReviewStatus.FLAGGED
    if needs_manual_review:
        return ReviewStatus.PENDING
    return ReviewStatus.APPROVED


def changes_visibility(old_status, new_status):
    return (old_status == ReviewStatus.APPROVED) != (new_status == ReviewStatus.APPROVED)


def check_admin_transition(current, requested):
    if requested not in ADMIN_TRANSITIONS[current]:
        raise InvalidTransition(current, requested)


@dataclass
class ModerationOutcome:
    review: Review
    changed: bool


class ModerationService:
    def __init__(self, store, cache):
        self.store = store
        self.cache = cache

    def moderate(self, review_id, new_status, notes=None, expected_status=None, user_id=None,
                 ip_address=None):
        """Apply an admin decision.

        ``expected_status`` is the status the moderator was looking at. If the
        review has moved on since, ``ModerationConflict`` carries the current
        state back. Asking for the status the review already has is a no-op.
        """
        review = self.store.get(review_id)
        current = review.status
        if expected_status is not None and current != expected_status:
            raise ModerationConflict(review)
        if current == new_status:
            logger.info("Review %s already %s, nothing to do", review_id, current.value)
            return ModerationOutcome(review, changed=False)
        check_admin_transition(current, new_status)

        # a concurrent moderator may still win between the read above and this write
        updated = self.store.update_status(review_id, current, new_status, admin_notes=notes,
                                           user_id=user_id, ip_address=ip_address)
        logger.info("Review %s moved %s -> %s by user %s", review_id, current.value, new_status.value, user_id)
        if changes_visibility(current, new_status):
            self.cache.invalidate(updated.broker_id)
        return ModerationOutcome(updated, changed=True)
