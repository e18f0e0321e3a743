from flask import Blueprint, jsonify, request
from flask_login import current_user, login_required

from ..forms.review_forms import ReviewForm, form_error
from ..models.customer import Customer
from ..models.review import ReviewStatus
from ..services import ReviewCandidate, UnknownBroker, get_pipeline

reviews_bp = Blueprint('reviews', __name__)

SUBMISSION_MESSAGES = {
    ReviewStatus.APPROVED: 'Review submitted successfully! Thank you for sharing your experience.',
    ReviewStatus.PENDING: 'Review submitted. It will be published after admin approval.',
    ReviewStatus.FLAGGED: 'Review submitted. It is pending moderation due to content that requires review.',
}


def client_ip():
    # X-Forwarded-For is applied by ProxyFix only for TRUSTED_PROXY_COUNT hops
    return request.remote_addr or None


def _require_broker(broker_id):
    if get_pipeline().store.get_active_broker(broker_id) is None:
        raise UnknownBroker()


@reviews_bp.route('/brokers/<int:broker_id>/reviews', methods=['POST'])
@login_required
def submit_review(broker_id):
    # Отзывы пишут только покупатели, не админы
    if not isinstance(current_user, Customer):
        return jsonify(ok=False, error='forbidden', category='input',
                       message='Only registered customers can write reviews.'), 403

    form = ReviewForm()
    if not form.captcha_token.data:
        form.captcha_token.data = request.form.get('cf-turnstile-response')
    if not form.validate_on_submit():
        raise form_error(form)

    candidate = ReviewCandidate(
        broker_id=broker_id,
        author_id=current_user.id,
        rating=form.rating.data,
        body_text=form.body.data,
        captcha_token=form.captcha_token.data,
        remote_ip=client_ip(),
    )
    result = get_pipeline().submit_review(candidate)
    payload = result.to_dict()
    payload['message'] = SUBMISSION_MESSAGES[result.status]
    return jsonify(payload), 201


@reviews_bp.route('/brokers/<int:broker_id>/reviews', methods=['GET'])
def list_reviews(broker_id):
    """Approved reviews, newest first. Параметры: page."""
    _require_broker(broker_id)
    page = request.args.get('page', default=1, type=int) or 1
    result = get_pipeline().list_approved_reviews(broker_id, page=page)
    return jsonify(ok=True, **result)


@reviews_bp.route('/brokers/<int:broker_id>/reviews/aggregate', methods=['GET'])
def review_aggregate(broker_id):
    _require_broker(broker_id)
    aggregate = get_pipeline().get_aggregate(broker_id)
    return jsonify(ok=True, **aggregate.public_dict())
