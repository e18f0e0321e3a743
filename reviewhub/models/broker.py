from datetime import datetime
from ..extensions import db
from .base import BaseModel


class Broker(BaseModel):
    """Catalog entry a review is written about. Owned by the broker data import."""
    __tablename__ = 'brokers'

    slug = db.Column(db.String(255), unique=True, nullable=False)
    name = db.Column(db.String(255), nullable=False)
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    reviews = db.relationship('Review', backref='broker', lazy='dynamic')

    def __repr__(self):
        return f'<Broker {self.slug}>'


def addBroker(name, slug=None):
    broker = Broker(name=name, slug=slug or Broker.slugify(name))
    db.session.add(broker)
    db.session.commit()
    return broker
