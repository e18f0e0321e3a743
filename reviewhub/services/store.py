"""Persistence of reviews and their audit trail."""
import logging
from contextlib import contextmanager
from datetime import datetime
from functools import wraps

from sqlalchemy import func, update
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models.audit_log import AuditLog
from ..models.broker import Broker
from ..models.review import Review, ReviewStatus
from .errors import ModerationConflict, PersistenceError, ReviewNotFound
from .locks import BrokerLockRegistry

logger = logging.getLogger(__name__)


def _persistence(action):
    """Roll back and turn driver errors into ``PersistenceError``, logging full context."""
    def decorator(f):
        @wraps(f)
        def wrapper(*args, **kwargs):
            try:
                return f(*args, **kwargs)
            except SQLAlchemyError as e:
                db.session.rollback()
                logger.error("Review store %s failed (args=%r, kwargs=%r)", action, args[1:], kwargs,
                             exc_info=True)
                raise PersistenceError() from e
        return wrapper
    return decorator


def _page_dict(pagination):
    return {
        'items': [r.to_dict() for r in pagination.items],
        'page': pagination.page,
        'per_page': pagination.per_page,
        'total': pagination.total,
        'pages': pagination.pages,
        'has_next': pagination.has_next,
    }


class ReviewStore:
    def __init__(self, locks=None):
        self.locks = locks or BrokerLockRegistry()

    @_persistence('broker lookup')
    def get_active_broker(self, broker_id):
        return Broker.query.filter_by(id=broker_id, is_active=True).first()

    @_persistence('review lookup')
    def get(self, review_id):
        review = db.session.get(Review, review_id)
        if review is None:
            raise ReviewNotFound()
        return review

    @contextmanager
    def serialized(self, broker_id):
        """Critical section for one broker: read recent fingerprints, decide, write.

        In-process lock for worker threads plus a row lock on the broker for
        other processes (a no-op on SQLite). The row lock is released when
        ``create`` commits or when the block fails.
        """
        with self.locks.hold(broker_id):
            # end the read transaction opened by the pre-checks: its snapshot
            # may predate the previous holder's commit
            db.session.rollback()
            try:
                db.session.query(Broker.id).filter(Broker.id == broker_id).with_for_update().first()
            except SQLAlchemyError as e:
                db.session.rollback()
                logger.error("Could not lock broker %s", broker_id, exc_info=True)
                raise PersistenceError() from e
            try:
                yield
            except Exception:
                db.session.rollback()
                raise

    @_persistence('fingerprint scan')
    def recent_fingerprints(self, broker_id, since):
        """(review_id, fingerprint, created_at, body) for every review of the broker since ``since``."""
        rows = (db.session.query(Review.id, Review.fingerprint_hex, Review.created_at, Review.body)
                .filter(Review.broker_id == broker_id, Review.created_at >= since)
                .order_by(Review.created_at.asc(), Review.id.asc())
                .all())
        return [(review_id, int(fp_hex, 16), created_at, body) for review_id, fp_hex, created_at, body in rows]

    @_persistence('rate limit count')
    def count_recent_by_author(self, author_id, broker_id, since):
        return (Review.query
                .filter(Review.author_id == author_id,
                        Review.broker_id == broker_id,
                        Review.created_at >= since)
                .count())

    @_persistence('author history')
    def has_approved_review(self, author_id):
        return (db.session.query(Review.id)
                .filter(Review.author_id == author_id, Review.status == ReviewStatus.APPROVED)
                .first()) is not None

    def create(self, review, ip_address=None):
        """Persist a new review with its audit row; returns the id only after commit."""
        if review.duplicate_of_id is not None:
            original = self.get(review.duplicate_of_id)
            if original.created_at >= review.created_at:
                raise ValueError(
                    f'duplicate_of_id={original.id} must point to an earlier review'
                )
        try:
            db.session.add(review)
            db.session.flush()
            db.session.add(AuditLog(
                review_id=review.id,
                action_type='review_created',
                to_status=review.status.value,
                description='; '.join(review.flag_reasons or []) or None,
                ip_address=ip_address,
            ))
            db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.error("Failed to persist review (broker=%s, author=%s, status=%s)",
                         review.broker_id, review.author_id, review.status, exc_info=True)
            raise PersistenceError() from e
        logger.info("Stored review %s for broker %s as %s", review.id, review.broker_id, review.status.value)
        return review.id

    def update_status(self, review_id, from_status, to_status, admin_notes=None, user_id=None,
                      ip_address=None):
        """Compare-and-set the status; ``ModerationConflict`` if it is no longer ``from_status``."""
        values = {'status': to_status, 'moderated_at': datetime.utcnow()}
        # no notes means keep what the previous moderator wrote
        if admin_notes is not None:
            values['admin_notes'] = admin_notes
        try:
            result = db.session.execute(
                update(Review)
                .where(Review.id == review_id, Review.status == from_status)
                .values(**values)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                db.session.rollback()
                raise ModerationConflict(self.get(review_id))
            db.session.add(AuditLog(
                review_id=review_id,
                user_id=user_id,
                action_type='status_changed',
                from_status=from_status.value,
                to_status=to_status.value,
                description=admin_notes,
                ip_address=ip_address,
            ))
            db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.error("Failed to move review %s from %s to %s", review_id, from_status, to_status,
                         exc_info=True)
            raise PersistenceError() from e
        return self.get(review_id)

    @_persistence('approved list')
    def list_approved(self, broker_id, page=1, per_page=10):
        pagination = (Review.query
                      .filter_by(broker_id=broker_id, status=ReviewStatus.APPROVED)
                      .order_by(Review.created_at.desc(), Review.id.desc())
                      .paginate(page=page, per_page=per_page, error_out=False))
        return _page_dict(pagination)

    @_persistence('moderation queue')
    def list_by_status(self, status=None, page=1, per_page=20):
        query = Review.query
        if status is not None:
            query = query.filter_by(status=status)
        return query.order_by(Review.created_at.desc()).paginate(page=page, per_page=per_page, error_out=False)

    @_persistence('aggregate')
    def approved_stats(self, broker_id):
        count, average = (db.session.query(func.count(Review.id), func.avg(Review.rating))
                          .filter(Review.broker_id == broker_id, Review.status == ReviewStatus.APPROVED)
                          .one())
        return int(count or 0), float(average or 0)

    @_persistence('audit trail')
    def audit_trail(self, review_id):
        return (AuditLog.query
                .filter_by(review_id=review_id)
                .order_by(AuditLog.created_at.asc(), AuditLog.id.asc())
                .all())

    @_persistence('broker listing')
    def broker_ids(self):
        return [broker_id for (broker_id,) in db.session.query(Broker.id).all()]
