import pytest

from reviewhub.models import AuditLog, ReviewStatus
from reviewhub.services.errors import InvalidTransition, ModerationConflict, ReviewNotFound
from reviewhub.services.moderation import ADMIN_TRANSITIONS, changes_visibility, initial_status

from conftest import REVIEW_TEXTS

S = ReviewStatus


def test_initial_status_routing():
    assert initial_status(False, False, False) == S.APPROVED
    assert initial_status(False, False, True) == S.PENDING
    assert initial_status(True, False, False) == S.FLAGGED
    assert initial_status(False, True, False) == S.FLAGGED
    # flag conditions win over manual review
    assert initial_status(True, True, True) == S.FLAGGED


def test_rejected_is_terminal():
    assert ADMIN_TRANSITIONS[S.REJECTED] == set()
    assert S.PENDING not in ADMIN_TRANSITIONS[S.APPROVED]


def test_changes_visibility():
    assert changes_visibility(S.PENDING, S.APPROVED)
    assert changes_visibility(S.APPROVED, S.FLAGGED)
    assert not changes_visibility(S.FLAGGED, S.REJECTED)
    assert not changes_visibility(S.PENDING, S.FLAGGED)


def test_approve_flagged_review(pipeline, submit):
    flagged = submit("shit broker, shit support, total bullshit")
    assert flagged.status == S.FLAGGED

    outcome = pipeline.moderate(flagged.review_id, S.APPROVED, notes='context checked', user_id=None)
    assert outcome.changed
    assert outcome.review.status == S.APPROVED
    assert outcome.review.admin_notes == 'context checked'
    assert outcome.review.moderated_at is not None

    actions = [(a.action_type, a.from_status, a.to_status)
               for a in AuditLog.query.filter_by(review_id=flagged.review_id).order_by(AuditLog.id)]
    assert actions == [('review_created', None, 'flagged'), ('status_changed', 'flagged', 'approved')]


def test_same_status_is_a_noop(pipeline, submit):
    result = submit(REVIEW_TEXTS[0])
    outcome = pipeline.moderate(result.review_id, S.APPROVED)
    assert not outcome.changed
    assert AuditLog.query.filter_by(review_id=result.review_id, action_type='status_changed').count() == 0


def test_rejected_cannot_come_back(pipeline, submit):
    review_id = submit(REVIEW_TEXTS[0]).review_id
    pipeline.moderate(review_id, S.FLAGGED)
    pipeline.moderate(review_id, S.REJECTED)
    with pytest.raises(InvalidTransition) as exc:
        pipeline.moderate(review_id, S.APPROVED)
    assert exc.value.current_status == S.REJECTED
    assert exc.value.to_dict()['current_status'] == 'rejected'


def test_stale_expected_status_conflicts(pipeline, submit):
    """Two moderators load the same flagged review; the second one loses."""
    review_id = submit("shit broker, shit support, total bullshit").review_id
    pipeline.moderate(review_id, S.APPROVED, expected_status=S.FLAGGED)
    with pytest.raises(ModerationConflict) as exc:
        pipeline.moderate(review_id, S.REJECTED, expected_status=S.FLAGGED)
    assert exc.value.current_status == S.APPROVED
    payload = exc.value.to_dict()
    assert payload['review']['status'] == 'approved'
    assert pipeline.store.get(review_id).status == S.APPROVED


def test_compare_and_set_rejects_outdated_write(pipeline, submit):
    review_id = submit(REVIEW_TEXTS[1]).review_id
    with pytest.raises(ModerationConflict):
        pipeline.store.update_status(review_id, S.FLAGGED, S.REJECTED)
    assert pipeline.store.get(review_id).status == S.APPROVED


def test_unknown_review(pipeline):
    with pytest.raises(ReviewNotFound):
        pipeline.moderate(12345, S.APPROVED)


def test_later_action_without_notes_keeps_earlier_notes(pipeline, submit):
    review_id = submit("shit broker, shit support, total bullshit").review_id
    pipeline.moderate(review_id, S.APPROVED, notes='criticism is fair, language aside')
    outcome = pipeline.moderate(review_id, S.FLAGGED)
    assert outcome.review.status == S.FLAGGED
    assert outcome.review.admin_notes == 'criticism is fair, language aside'

    outcome = pipeline.moderate(review_id, S.REJECTED, notes='author confirmed spam')
    assert outcome.review.admin_notes == 'author confirmed spam'
