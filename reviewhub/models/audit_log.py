from datetime import datetime
from ..extensions import db
from .base import BaseModel, PreciseDateTime


class AuditLog(BaseModel):
    """Append-only trail of everything that happened to a review."""
    __tablename__ = 'audit_log'

    review_id = db.Column(db.Integer, db.ForeignKey('reviews.id', ondelete='CASCADE'), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)  # NULL = pipeline
    action_type = db.Column(db.String(255), nullable=False)
    from_status = db.Column(db.String(16), nullable=True)
    to_status = db.Column(db.String(16), nullable=True)
    description = db.Column(db.Text)
    created_at = db.Column(PreciseDateTime, default=datetime.utcnow)
    ip_address = db.Column(db.String(45))

    user = db.relationship('User')

    def to_dict(self):
        return {
            'id': self.id,
            'review_id': self.review_id,
            'user_id': self.user_id,
            'action_type': self.action_type,
            'from_status': self.from_status,
            'to_status': self.to_status,
            'description': self.description,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'ip_address': self.ip_address,
        }
