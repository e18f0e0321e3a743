import enum
from datetime import datetime
from sqlalchemy.orm import validates

from ..extensions import db
from .base import BaseModel, PreciseDateTime


class ReviewStatus(str, enum.Enum):
    PENDING = 'pending'
    APPROVED = 'approved'
    FLAGGED = 'flagged'
    REJECTED = 'rejected'


class Review(BaseModel):
    __tablename__ = 'reviews'

    broker_id = db.Column(db.Integer, db.ForeignKey('brokers.id'), nullable=False)
    author_id = db.Column(db.Integer, db.ForeignKey('customers.id'), nullable=False)
    rating = db.Column(db.Integer, nullable=False)
    body = db.Column(db.Text, nullable=False)  # уже очищенный текст, сырой текст не храним
    fingerprint_hex = db.Column(db.String(16), nullable=False)
    status = db.Column(
        db.Enum(ReviewStatus, native_enum=False, length=16,
                values_callable=lambda e: [m.value for m in e]),
        default=ReviewStatus.PENDING,
        nullable=False,
    )
    filter_severity = db.Column(db.Integer, default=0, nullable=False)
    flag_reasons = db.Column(db.JSON, nullable=True)
    created_at = db.Column(PreciseDateTime, default=datetime.utcnow, nullable=False)
    moderated_at = db.Column(PreciseDateTime, nullable=True)
    admin_notes = db.Column(db.Text, nullable=True)
    duplicate_of_id = db.Column(db.Integer, db.ForeignKey('reviews.id'), nullable=True)

    duplicate_of = db.relationship('Review', remote_side='Review.id')

    __table_args__ = (
        db.CheckConstraint('rating >= 1 AND rating <= 5', name='ck_reviews_rating_range'),
        db.Index('ix_reviews_broker_created', 'broker_id', 'created_at'),
        db.Index('ix_reviews_broker_status', 'broker_id', 'status'),
        db.Index('ix_reviews_author_broker', 'author_id', 'broker_id'),
    )

    @validates('fingerprint_hex')
    def _freeze_fingerprint(self, key, value):
        if self.fingerprint_hex is not None and value != self.fingerprint_hex:
            raise ValueError('review fingerprint cannot change once computed')
        return value

    @property
    def fingerprint(self):
        return int(self.fingerprint_hex, 16) if self.fingerprint_hex is not None else None

    @fingerprint.setter
    def fingerprint(self, value):
        self.fingerprint_hex = format(value, '016x')

    @property
    def is_public(self):
        return self.status == ReviewStatus.APPROVED

    def to_dict(self, include_moderation=False):
        data = {
            'id': self.id,
            'broker_id': self.broker_id,
            'author_id': self.author_id,
            'rating': self.rating,
            'body': self.body,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }
        if include_moderation:
            data.update({
                'status': self.status.value,
                'fingerprint': self.fingerprint_hex,
                'filter_severity': self.filter_severity,
                'flag_reasons': self.flag_reasons or [],
                'moderated_at': self.moderated_at.isoformat() if self.moderated_at else None,
                'admin_notes': self.admin_notes,
                'duplicate_of_id': self.duplicate_of_id,
            })
        return data

    def __repr__(self):
        return f'<Review {self.id} broker={self.broker_id} {self.status.value if self.status else None}>'
