import logging

from flask import jsonify, request
from flask_login import current_user

from ..forms.review_forms import ModerationForm, form_error
from ..models.review import ReviewStatus
from ..services import ReviewValidationError, get_pipeline
from ..views.reviews import client_ip
from . import admin_bp
from .decorators import admin_required

logger = logging.getLogger(__name__)


@admin_bp.route('/reviews')
@admin_required
def reviews_list():
    """Moderation queue. Параметры: status (pending/flagged/...), page."""
    status_value = request.args.get('status')
    status = None
    if status_value:
        try:
            status = ReviewStatus(status_value)
        except ValueError:
            raise ReviewValidationError('status', f'Unknown status "{status_value}".')
    page = request.args.get('page', 1, type=int)
    reviews = get_pipeline().store.list_by_status(status, page=page, per_page=20)
    return jsonify(
        ok=True,
        items=[r.to_dict(include_moderation=True) for r in reviews.items],
        page=reviews.page,
        pages=reviews.pages,
        total=reviews.total,
    )


@admin_bp.route('/reviews/<int:review_id>')
@admin_required
def review_detail(review_id):
    store = get_pipeline().store
    review = store.get(review_id)
    return jsonify(
        ok=True,
        review=review.to_dict(include_moderation=True),
        audit=[entry.to_dict() for entry in store.audit_trail(review_id)],
    )


@admin_bp.route('/reviews/<int:review_id>/moderate', methods=['POST'])
@admin_required
def review_moderate(review_id):
    form = ModerationForm()
    if not form.validate_on_submit():
        raise form_error(form)

    expected = ReviewStatus(form.expected_status.data) if form.expected_status.data else None
    outcome = get_pipeline().moderate(
        review_id,
        ReviewStatus(form.status.data),
        notes=form.notes.data or None,
        expected_status=expected,
        user_id=current_user.id,
        ip_address=client_ip(),
    )
    return jsonify(ok=True, changed=outcome.changed, review=outcome.review.to_dict(include_moderation=True))
